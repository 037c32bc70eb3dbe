"""Responsive probe: desktop width constraint and mobile stacking."""

from __future__ import annotations

from src.models.validation import ValidationProbeResult
from src.validation.events import emit_log

from .base import (
    DESKTOP_VIEWPORT,
    MOBILE_VIEWPORT,
    ProbeContext,
    error_result,
    probe_screenshot_path,
)

PROBE_ID = "probe-responsive-layout"
COVERED = ["REQ-022"]
DESKTOP_MAX_CONTAINER_PX = 630
MOBILE_FULL_WIDTH_RATIO = 0.6

_LAYOUT_JS = """
(() => {
    const vw = window.innerWidth;
    const candidates = Array.from(document.querySelectorAll("main, [role='main'], form, .converter, .container, body > div"));
    const widths = candidates.map((el) => Math.round(el.getBoundingClientRect().width)).filter((w) => w > 0 && w <= vw);
    const primaryContainerWidth = widths.length > 0 ? Math.max(...widths) : vw;
    const controls = Array.from(document.querySelectorAll("input, select, button")).slice(0, 6);
    let stacked = false;
    if (controls.length >= 2) {
        const first = controls[0].getBoundingClientRect();
        const second = controls[1].getBoundingClientRect();
        stacked = Math.abs(first.left - second.left) < 20 && second.top - first.top > 18;
    }
    const fullWidth = controls.filter((el) => el.getBoundingClientRect().width >= vw * 0.8).length;
    return {
        viewportWidth: vw,
        primaryContainerWidth,
        stacked,
        fullWidthControlRatio: controls.length > 0 ? fullWidth / controls.length : 0,
    };
})()
"""


def grade_layout(desktop: dict, mobile: dict) -> str:
    checks = [
        desktop["primaryContainerWidth"] <= DESKTOP_MAX_CONTAINER_PX,
        bool(mobile["stacked"]),
        mobile["fullWidthControlRatio"] >= MOBILE_FULL_WIDTH_RATIO,
    ]
    passed = sum(checks)
    if passed == len(checks):
        return "pass"
    return "partial" if passed >= 1 else "fail"


async def _measure(context: ProbeContext, viewport: tuple[int, int], name: str, evidence: list[str]) -> dict:
    await context.browser.set_viewport_size(*viewport)
    await context.browser.wait_for_stability()
    metrics = await context.browser.eval_json(_LAYOUT_JS)
    shot = probe_screenshot_path(context, f"responsive-{name}")
    await context.browser.screenshot(shot)
    evidence.append(shot)
    return metrics


async def run_responsive_probe(context: ProbeContext) -> ValidationProbeResult:
    evidence: list[str] = []
    emit_log(context.on_progress, "Running responsive design probe...")
    try:
        await context.browser.open(context.url)
        await context.browser.wait_for_stability()
        desktop = await _measure(context, DESKTOP_VIEWPORT, "desktop", evidence)
        mobile = await _measure(context, MOBILE_VIEWPORT, "mobile", evidence)

        status = grade_layout(desktop, mobile)
        summary = (
            "Responsive probe confirmed desktop width constraint and mobile stacked/full-width behavior."
            if status == "pass"
            else "Responsive probe detected incomplete compliance for desktop/mobile layout constraints."
        )
        ratio = mobile["fullWidthControlRatio"]
        return ValidationProbeResult(
            id=PROBE_ID,
            kind="responsive",
            status=status,
            summary=summary,
            evidence=evidence,
            covered_requirement_ids=COVERED,
            metrics={
                "desktopContainerWidth": desktop["primaryContainerWidth"],
                "mobileContainerWidth": mobile["primaryContainerWidth"],
                "mobileFullWidthControlRatio": round(ratio, 3),
            },
            findings=[
                f"Desktop container width: {desktop['primaryContainerWidth']}px (target <= 600px)",
                f"Mobile stacked layout: {'yes' if mobile['stacked'] else 'no'}",
                f"Mobile full-width controls ratio: {ratio * 100:.0f}%",
            ],
        )
    except Exception as e:
        return error_result(PROBE_ID, "responsive", "Responsive", e, evidence, COVERED)
