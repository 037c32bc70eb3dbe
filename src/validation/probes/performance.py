"""Performance probe: page load time and event-loop latency against budgets."""

from __future__ import annotations

from src.models.validation import ValidationProbeResult
from src.validation.events import emit_log

from .base import ProbeContext, error_result, open_at_desktop, probe_screenshot_path

PROBE_ID = "probe-performance-budgets"
COVERED = ["REQ-020", "REQ-021"]

_PERF_JS = """
(async () => {
    const nav = performance.getEntriesByType("navigation")[0];
    let loadTimeMs = nav && nav.loadEventEnd > 0 ? nav.loadEventEnd : 0;
    if (!loadTimeMs && performance.timing) {
        const t = performance.timing;
        loadTimeMs = Math.max(0, t.loadEventEnd - t.navigationStart);
    }
    const rafSamples = [];
    let prev = performance.now();
    await new Promise((resolve) => {
        const frame = (ts) => {
            rafSamples.push(ts - prev);
            prev = ts;
            if (rafSamples.length >= 6) { resolve(undefined); return; }
            requestAnimationFrame(frame);
        };
        requestAnimationFrame(frame);
    });
    const loopSamples = [];
    for (let i = 0; i < 4; i++) {
        const start = performance.now();
        await new Promise((resolve) => setTimeout(resolve, 0));
        loopSamples.push(performance.now() - start);
    }
    const avg = (xs) => xs.length ? xs.reduce((a, b) => a + b, 0) / xs.length : 0;
    return {loadTimeMs, uiLatencyMs: avg(loopSamples), rafAvgMs: avg(rafSamples)};
})()
"""


def within_budget(observed: float, budget: float) -> bool:
    """Zero means the browser reported nothing, which is not a pass."""
    return 0 < observed <= budget


def grade_performance(load_ms: float, ui_ms: float, load_budget: float, ui_budget: float) -> str:
    passed = sum([within_budget(load_ms, load_budget), within_budget(ui_ms, ui_budget)])
    return {2: "pass", 1: "partial"}.get(passed, "fail")


async def run_performance_probe(context: ProbeContext) -> ValidationProbeResult:
    evidence: list[str] = []
    emit_log(context.on_progress, "Running performance probe...")
    config = context.config
    try:
        await open_at_desktop(context)
        metrics = await context.browser.eval_json(_PERF_JS)
        load_ms = float(metrics["loadTimeMs"])
        ui_ms = float(metrics["uiLatencyMs"])
        raf_ms = float(metrics["rafAvgMs"])

        shot = probe_screenshot_path(context, "performance")
        await context.browser.screenshot(shot)
        evidence.append(shot)

        return ValidationProbeResult(
            id=PROBE_ID,
            kind="performance",
            status=grade_performance(load_ms, ui_ms, config.perf_load_budget_ms, config.perf_ui_budget_ms),
            summary=f"Performance probe measured load={load_ms:.1f}ms and ui={ui_ms:.1f}ms.",
            evidence=evidence,
            covered_requirement_ids=COVERED,
            metrics={
                "loadTimeMs": round(load_ms, 2),
                "uiLatencyMs": round(ui_ms, 2),
                "rafAvgMs": round(raf_ms, 2),
            },
            findings=[
                f"Load time budget: {config.perf_load_budget_ms}ms; observed {load_ms:.1f}ms",
                f"UI latency budget: {config.perf_ui_budget_ms}ms; observed {ui_ms:.1f}ms",
            ],
        )
    except Exception as e:
        return error_result(PROBE_ID, "performance", "Performance", e, evidence, COVERED)
