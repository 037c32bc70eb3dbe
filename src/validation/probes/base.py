"""Shared probe plumbing."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from src.browser.agent_browser import AgentBrowser
from src.models.config import ValidationConfig
from src.models.validation import ProbeKind, ValidationProbeResult
from src.validation.events import ProgressCallback

DESKTOP_VIEWPORT = (1366, 900)
MOBILE_VIEWPORT = (390, 844)


@dataclass
class ProbeContext:
    browser: AgentBrowser
    url: str
    screenshot_dir: str
    config: ValidationConfig
    on_progress: Optional[ProgressCallback] = None


def probe_screenshot_path(context: ProbeContext, name: str) -> str:
    return str(Path(context.screenshot_dir) / f"probe-{name}-{int(time.time() * 1000)}.png")


def error_result(
    probe_id: str, kind: ProbeKind, label: str, error: Exception,
    evidence: list[str], covered: list[str],
) -> ValidationProbeResult:
    return ValidationProbeResult(
        id=probe_id,
        kind=kind,
        status="error",
        summary=f"{label} probe failed: {error}",
        evidence=evidence,
        covered_requirement_ids=covered,
    )


async def open_at_desktop(context: ProbeContext) -> None:
    await context.browser.open(context.url)
    await context.browser.set_viewport_size(*DESKTOP_VIEWPORT)
    await context.browser.wait_for_stability()
