"""Keyboard probe: does Tab move focus between distinct controls?"""

from __future__ import annotations

from src.models.validation import ValidationProbeResult
from src.validation.events import emit_log

from .base import ProbeContext, error_result, open_at_desktop, probe_screenshot_path

PROBE_ID = "probe-keyboard-navigation"
COVERED = ["REQ-018"]
TAB_PRESSES = 4

_ACTIVE_ELEMENT_JS = """
(() => {
    const el = document.activeElement;
    if (!el) return {tag: "", role: "", id: "", name: "", text: ""};
    return {
        tag: el.tagName ? el.tagName.toLowerCase() : "",
        role: el.getAttribute ? (el.getAttribute("role") || "") : "",
        id: el.id || "",
        name: el.getAttribute ? (el.getAttribute("name") || "") : "",
        text: (el.textContent || "").trim().slice(0, 40),
    };
})()
"""


def format_focus_target(target: dict) -> str:
    base = target.get("id") or target.get("name") or target.get("text") or target.get("tag") or "unknown"
    role = target.get("role")
    return f"{base} [{role}]" if role else base


async def run_keyboard_probe(context: ProbeContext) -> ValidationProbeResult:
    evidence: list[str] = []
    emit_log(context.on_progress, "Running keyboard accessibility probe...")
    browser = context.browser
    try:
        await open_at_desktop(context)

        focus_path: list[str] = []
        for _ in range(TAB_PRESSES):
            await browser.press("Tab")
            await browser.wait_for_stability()
            focus_path.append(format_focus_target(await browser.eval_json(_ACTIVE_ELEMENT_JS) or {}))

        await browser.press("Enter")
        await browser.wait_for_stability()
        await browser.press("Escape")
        await browser.wait_for_stability()

        shot = probe_screenshot_path(context, "keyboard")
        await browser.screenshot(shot)
        evidence.append(shot)

        unique_targets = {t for t in focus_path if t}
        status = "pass" if len(unique_targets) >= 2 else "partial"
        summary = (
            f"Keyboard probe observed {len(unique_targets)} focus transitions via Tab/Enter/Escape."
            if status == "pass"
            else "Keyboard probe executed, but focus movement evidence was limited."
        )
        return ValidationProbeResult(
            id=PROBE_ID,
            kind="keyboard",
            status=status,
            summary=summary,
            evidence=evidence,
            covered_requirement_ids=COVERED,
            findings=[f"Tab {i + 1}: {t}" for i, t in enumerate(focus_path)],
            metrics={"focusTargetsObserved": float(len(unique_targets))},
        )
    except Exception as e:
        return error_result(PROBE_ID, "keyboard", "Keyboard", e, evidence, COVERED)
