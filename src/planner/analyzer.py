"""Page analyzer: screenshot + DOM snapshot in, requirement-linked scenarios out."""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from src.ai.client import AIClient, extract_json, image_block, text_block
from src.ai.prompts.planning import PLANNING_SYSTEM_PROMPT, build_planning_prompt
from src.browser.agent_browser import AgentBrowser
from src.models.test_plan import TestScenario

from .schema_validator import normalize_scenarios

logger = logging.getLogger(__name__)

ANALYZER_TEMPERATURE = 0.3
ANALYZER_MAX_TOKENS = 4096

# Punctuation kept literal in screenshot file names.
_URI_COMPONENT_SAFE = "!~*'()"


@dataclass
class PageCapture:
    url: str
    screenshot_base64: str
    dom_snapshot: str
    goals: Optional[str] = None


def analysis_screenshot_path(screenshot_dir: str | Path, url: str) -> str:
    return f"{screenshot_dir}/analyze-{quote(url, safe=_URI_COMPONENT_SAFE)[:50]}.png"


async def capture_page(
    browser: AgentBrowser, url: str, screenshot_dir: str | Path, goals: Optional[str] = None,
) -> PageCapture:
    await browser.open(url)
    await browser.wait_for_stability()
    path = analysis_screenshot_path(screenshot_dir, url)
    await browser.screenshot(path)
    dom = await browser.snapshot()
    try:
        screenshot_b64 = base64.b64encode(Path(path).read_bytes()).decode("ascii")
    except OSError:
        screenshot_b64 = ""
    return PageCapture(url=url, screenshot_base64=screenshot_b64, dom_snapshot=dom, goals=goals)


async def analyze_capture(
    capture: PageCapture, llm: AIClient, max_scenarios: int, step_limit: int,
) -> list[TestScenario]:
    """Ask the model for scenarios. Unparseable output yields no scenarios."""
    prompt = build_planning_prompt(capture.url, capture.dom_snapshot, capture.goals)
    content = (
        [image_block(capture.screenshot_base64), text_block(prompt)]
        if capture.screenshot_base64 else prompt
    )
    raw = await llm.chat(
        [
            {"role": "system", "content": PLANNING_SYSTEM_PROMPT},
            {"role": "user", "content": content},
        ],
        temperature=ANALYZER_TEMPERATURE,
        max_tokens=ANALYZER_MAX_TOKENS,
        label=f"Page analysis {capture.url}",
    )
    try:
        data = json.loads(extract_json(raw))
    except json.JSONDecodeError:
        logger.warning("Page analysis for %s returned invalid JSON", capture.url)
        return []
    return normalize_scenarios(data, capture.url, max_scenarios, step_limit)


async def analyze_page(
    browser: AgentBrowser,
    url: str,
    llm: AIClient,
    screenshot_dir: str | Path,
    max_scenarios: int,
    step_limit: int,
    goals: Optional[str] = None,
) -> list[TestScenario]:
    capture = await capture_page(browser, url, screenshot_dir, goals)
    return await analyze_capture(capture, llm, max_scenarios, step_limit)
