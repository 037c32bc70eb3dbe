"""Accessibility probe: axe-core WCAG 2 A/AA scan of the landing page."""

from __future__ import annotations

from axe_playwright_python.async_playwright import Axe

from src.models.validation import ValidationProbeResult
from src.validation.events import emit_log

from .base import ProbeContext, error_result, open_at_desktop, probe_screenshot_path

PROBE_ID = "probe-accessibility-axe"
COVERED = ["REQ-017", "REQ-019"]
WCAG_TAGS = ["wcag2a", "wcag2aa"]
CONTRAST_RULE = "color-contrast"
LABEL_RULES = ("aria-input-field-name", "label", "form-field-multiple-labels", "button-name")
MAX_FINDINGS = 8


def grade_violations(violations: list[dict]) -> tuple[str, dict[str, float]]:
    contrast = [v for v in violations if v.get("id") == CONTRAST_RULE]
    labels = [v for v in violations if v.get("id") in LABEL_RULES]
    severe = [v for v in violations if v.get("impact") in ("critical", "serious")]
    if not contrast and not labels:
        status = "pass"
    elif severe:
        status = "fail"
    else:
        status = "partial"
    return status, {
        "totalViolations": float(len(violations)),
        "contrastViolations": float(len(contrast)),
        "labelViolations": float(len(labels)),
        "seriousOrCriticalViolations": float(len(severe)),
    }


def format_violation(violation: dict) -> str:
    nodes = violation.get("nodes") or []
    targets = nodes[0].get("target") if nodes else None
    target = targets[0] if targets else None
    return f"{violation.get('id')} on {target}" if target else str(violation.get("id"))


async def run_accessibility_probe(context: ProbeContext) -> ValidationProbeResult:
    evidence: list[str] = []
    emit_log(context.on_progress, "Running accessibility probe...")
    try:
        await open_at_desktop(context)
        page = await context.browser.get_playwright_page()
        results = await Axe().run(page, options={"runOnly": {"type": "tag", "values": WCAG_TAGS}})
        violations = results.response.get("violations") or []

        shot = probe_screenshot_path(context, "accessibility")
        await context.browser.screenshot(shot)
        evidence.append(shot)

        status, metrics = grade_violations(violations)
        if status == "pass":
            summary = "Accessibility probe found no WCAG A/AA contrast or label violations."
        else:
            summary = (
                f"Accessibility probe found {len(violations)} violation(s), including "
                f"{int(metrics['contrastViolations'])} contrast and "
                f"{int(metrics['labelViolations'])} labeling issue(s)."
            )
        return ValidationProbeResult(
            id=PROBE_ID,
            kind="accessibility",
            status=status,
            summary=summary,
            evidence=evidence,
            covered_requirement_ids=COVERED,
            metrics=metrics,
            findings=[format_violation(v) for v in violations[:MAX_FINDINGS]],
        )
    except Exception as e:
        return error_result(PROBE_ID, "accessibility", "Accessibility", e, evidence, COVERED)
