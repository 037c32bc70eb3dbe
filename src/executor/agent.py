"""Agent loop: observe, ask the model for one action, act, record; per scenario."""

from __future__ import annotations

import base64
import json
import logging
import os
import time
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse

from src.ai.client import AIClient, extract_json, image_block, text_block
from src.ai.prompts.agent import AGENT_SYSTEM_PROMPT, build_agent_prompt, build_completion_hint
from src.browser.agent_browser import AgentBrowser
from src.executor.action_runner import execute_action, format_action
from src.executor.outcome_detector import (
    detect_action_outcome,
    element_state_changed,
    is_same_page_target,
)
from src.models.site_model import ElementMeta, PageSnapshot
from src.models.test_plan import AgentAction, DoneAction, TestScenario, parse_agent_action
from src.models.test_result import AgentStep, Evidence, TestResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONSECUTIVE_FAILURES = 2
AGENT_TEMPERATURE = 0.1
AGENT_MAX_TOKENS = 1024

# Actions expected to produce a visible change when they work.
_CHANGE_EXPECTED = ("click", "navigate")


def _now_ms() -> int:
    return int(time.time() * 1000)


def max_consecutive_failures_from_env() -> int:
    raw = os.environ.get("MAX_CONSECUTIVE_FAILURES", "")
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_MAX_CONSECUTIVE_FAILURES
    return value if value > 0 else DEFAULT_MAX_CONSECUTIVE_FAILURES


def _read_base64(path: str) -> str:
    try:
        return base64.b64encode(Path(path).read_bytes()).decode("ascii")
    except OSError:
        return ""


async def _safe_page_snapshot(browser: AgentBrowser) -> Optional[PageSnapshot]:
    try:
        return await browser.take_page_snapshot()
    except Exception as e:
        logger.debug("Page snapshot failed: %s", e)
        return None


async def _safe_element_meta(browser: AgentBrowser, selector: str) -> Optional[ElementMeta]:
    try:
        return await browser.get_element_meta(selector)
    except Exception as e:
        logger.debug("Element meta failed for %s: %s", selector, e)
        return None


async def _ask_for_action(
    llm: AIClient, scenario: TestScenario, dom: str, screenshot_b64: str,
    history: list[tuple[str, str]], step_index: int, hint: str,
) -> AgentAction:
    prompt = build_agent_prompt(scenario, dom, history, step_index) + hint
    content = [image_block(screenshot_b64), text_block(prompt)] if screenshot_b64 else prompt
    raw = await llm.chat(
        [
            {"role": "system", "content": AGENT_SYSTEM_PROMPT},
            {"role": "user", "content": content},
        ],
        temperature=AGENT_TEMPERATURE,
        max_tokens=AGENT_MAX_TOKENS,
        label=f"Agent step {step_index + 1}",
    )
    return parse_agent_action(json.loads(extract_json(raw)))


async def _no_change_allowed(
    browser: AgentBrowser, action: AgentAction,
    before: PageSnapshot, meta_before: Optional[ElementMeta],
) -> bool:
    """A click that changes nothing is fine when it targets the current page or toggles itself."""
    if action.type != "click" or not action.selector or meta_before is None:
        return False
    if is_same_page_target(meta_before.href, before.url):
        return True
    meta_after = await _safe_element_meta(browser, action.selector)
    return element_state_changed(meta_before, meta_after)


async def _perform(
    browser: AgentBrowser, action: AgentAction, target_domain: str,
) -> tuple[bool, Optional[str]]:
    """Execute *action* and judge it by its observable effect."""
    before = await _safe_page_snapshot(browser)
    meta_before = None
    if action.type == "click" and action.selector:
        meta_before = await _safe_element_meta(browser, action.selector)

    try:
        await execute_action(browser, action, target_domain)
        await browser.wait_for_stability()
        after = await _safe_page_snapshot(browser)
        if before and after and action.type in _CHANGE_EXPECTED:
            outcome = detect_action_outcome(before, after)
            if outcome.type == "no_change" and not await _no_change_allowed(
                browser, action, before, meta_before,
            ):
                return False, f"No observable change after {action.type}. {outcome.details}"
    except Exception as e:
        return False, str(e)
    return True, None


async def run_scenario(
    browser: AgentBrowser,
    scenario: TestScenario,
    llm: AIClient,
    screenshot_dir: str | Path,
    on_step: Optional[Callable[[AgentStep], None]] = None,
    max_consecutive_failures: Optional[int] = None,
) -> TestResult:
    """Run one scenario to a verdict.

    Ends with the model's ``done`` verdict, ``fail`` after too many
    consecutive failed actions, or ``error`` when the model response is
    unusable or the step budget runs out.
    """
    start = time.time()
    shot_dir = str(screenshot_dir)
    threshold = max_consecutive_failures or max_consecutive_failures_from_env()
    target_domain = urlparse(scenario.start_url).hostname or ""
    steps: list[AgentStep] = []
    screenshots: list[str] = []
    history: list[tuple[str, str]] = []
    consecutive_failures = 0
    successful_actions = 0

    def _record(step: AgentStep) -> None:
        steps.append(step)
        screenshots.append(step.screenshot_path)
        if on_step:
            on_step(step)

    def _result(status: str, summary: str) -> TestResult:
        return TestResult(
            scenario=scenario,
            status=status,
            steps=steps,
            summary=summary,
            evidence=Evidence(screenshots=screenshots),
            duration_ms=int((time.time() - start) * 1000),
        )

    await browser.open(scenario.start_url)
    await browser.wait_for_stability()

    for i in range(scenario.max_steps):
        observation_path = f"{shot_dir}/scenario-{scenario.id}-step-{i}-before.png"
        await browser.screenshot(observation_path)
        dom = await browser.snapshot()
        screenshot_b64 = _read_base64(observation_path)

        hint = ""
        if i >= scenario.max_steps - 2 and successful_actions >= 2:
            hint = build_completion_hint(successful_actions)

        try:
            action = await _ask_for_action(llm, scenario, dom, screenshot_b64, history, i, hint)
        except Exception as e:
            logger.warning("[%s] Step %d: unusable model response: %s", scenario.id, i + 1, e)
            _record(AgentStep(
                index=i,
                action=DoneAction(type="done", result="fail",
                                  reasoning=f"Failed to get LLM action: {e}"),
                success=False,
                error=f"LLM error: {e}",
                screenshot_path=observation_path,
                timestamp=_now_ms(),
            ))
            return _result("error", f"LLM error: {e}")

        if action.type == "done":
            _record(AgentStep(
                index=i, action=action, success=True,
                screenshot_path=observation_path, timestamp=_now_ms(),
            ))
            return _result("pass" if action.result == "pass" else "fail", action.reasoning)

        success, error = await _perform(browser, action, target_domain)

        step_path = observation_path
        after_path = f"{shot_dir}/scenario-{scenario.id}-step-{i}.png"
        try:
            await browser.screenshot(after_path)
            step_path = after_path
        except Exception as e:
            logger.debug("After-action screenshot failed: %s", e)

        _record(AgentStep(
            index=i, action=action, success=success, error=error,
            screenshot_path=step_path, timestamp=_now_ms(),
        ))
        history.append((format_action(action), "success" if success else f"failed: {error or 'unknown error'}"))

        if not success:
            consecutive_failures += 1
            if consecutive_failures >= threshold:
                return _result(
                    "fail",
                    f"Stopped after {consecutive_failures} consecutive failures: {error or 'unknown error'}",
                )
        else:
            consecutive_failures = 0
            if action.type not in ("wait", "assert"):
                successful_actions += 1

    return _result("error", f"Test did not complete within {scenario.max_steps} steps")
