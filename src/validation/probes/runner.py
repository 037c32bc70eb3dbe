"""Runs the deterministic probes in a fixed order."""

from __future__ import annotations

from src.models.validation import ValidationProbeResult
from src.validation.events import emit_log

from .accessibility import run_accessibility_probe
from .base import ProbeContext
from .keyboard import run_keyboard_probe
from .performance import run_performance_probe
from .responsive import run_responsive_probe

PROBES = (run_keyboard_probe, run_responsive_probe, run_performance_probe, run_accessibility_probe)

_STATUS_LEVELS = {"pass": "info", "partial": "warn"}


async def run_validation_probes(context: ProbeContext) -> list[ValidationProbeResult]:
    if not context.config.enable_probes:
        emit_log(context.on_progress, "Validation probes disabled by configuration.")
        return []

    emit_log(context.on_progress, "Running deterministic validation probes...")
    results: list[ValidationProbeResult] = []
    for probe in PROBES:
        result = await probe(context)
        results.append(result)
        emit_log(
            context.on_progress,
            f"  Probe {result.kind}: {result.status} - {result.summary}",
            _STATUS_LEVELS.get(result.status, "error"),
        )

    passed = sum(1 for r in results if r.status == "pass")
    failed = sum(1 for r in results if r.status in ("fail", "error"))
    emit_log(
        context.on_progress,
        f"Probe execution complete: {passed} passed, {failed} failed/error, {len(results)} total.",
        "warn" if failed else "info",
    )
    return results
