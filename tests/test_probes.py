"""Tests for the deterministic validation probes."""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from src.validation.probes.accessibility import format_violation, grade_violations, run_accessibility_probe
from src.validation.probes.base import ProbeContext
from src.validation.probes.keyboard import format_focus_target, run_keyboard_probe
from src.validation.probes.performance import grade_performance, run_performance_probe, within_budget
from src.validation.probes.responsive import grade_layout, run_responsive_probe
from src.validation.probes.runner import run_validation_probes

from conftest import FakeBrowser

GOOD_DESKTOP = {"viewportWidth": 1366, "primaryContainerWidth": 600, "stacked": False, "fullWidthControlRatio": 0}
GOOD_MOBILE = {"viewportWidth": 390, "primaryContainerWidth": 390, "stacked": True, "fullWidthControlRatio": 0.75}


def _focus(id_: str = "", role: str = "", tag: str = "button") -> dict:
    return {"tag": tag, "role": role, "id": id_, "name": "", "text": ""}


def _axe_returning(violations: list[dict]) -> Mock:
    axe = Mock()
    axe.return_value.run = AsyncMock(return_value=Mock(response={"violations": violations}))
    return axe


@pytest.fixture
def context_for(validation_config, screenshot_dir):
    def build(browser: FakeBrowser, **config_updates) -> ProbeContext:
        config = validation_config.model_copy(update={"enable_probes": True, **config_updates})
        return ProbeContext(browser=browser, url="https://example.com/", screenshot_dir=str(screenshot_dir), config=config)

    return build


class TestGraders:
    """Tests for the pure grading helpers."""

    def test_layout_grades(self):
        assert grade_layout(GOOD_DESKTOP, GOOD_MOBILE) == "pass"
        assert grade_layout({**GOOD_DESKTOP, "primaryContainerWidth": 1200}, GOOD_MOBILE) == "partial"
        assert grade_layout(
            {**GOOD_DESKTOP, "primaryContainerWidth": 1200},
            {**GOOD_MOBILE, "stacked": False, "fullWidthControlRatio": 0.1},
        ) == "fail"

    def test_zero_measurement_is_not_within_budget(self):
        assert not within_budget(0, 2000)
        assert within_budget(2000, 2000)
        assert not within_budget(2001, 2000)

    def test_performance_grades(self):
        assert grade_performance(900, 20, 2000, 100) == "pass"
        assert grade_performance(5000, 20, 2000, 100) == "partial"
        assert grade_performance(0, 0, 2000, 100) == "fail"

    def test_violation_grades(self):
        assert grade_violations([{"id": "region", "impact": "moderate"}])[0] == "pass"
        assert grade_violations([{"id": "label", "impact": "moderate"}])[0] == "partial"
        status, metrics = grade_violations([
            {"id": "color-contrast", "impact": "serious"},
            {"id": "button-name", "impact": "minor"},
        ])
        assert status == "fail"
        assert metrics["contrastViolations"] == 1.0
        assert metrics["labelViolations"] == 1.0
        assert metrics["seriousOrCriticalViolations"] == 1.0

    def test_format_violation(self):
        assert format_violation({"id": "label", "nodes": [{"target": ["#email"]}]}) == "label on #email"
        assert format_violation({"id": "label", "nodes": []}) == "label"

    def test_format_focus_target(self):
        assert format_focus_target(_focus("save", role="button")) == "save [button]"
        assert format_focus_target(_focus()) == "button"
        assert format_focus_target({}) == "unknown"


@pytest.mark.asyncio
class TestProbes:
    """Tests for the individual probes against a scripted browser."""

    async def test_keyboard_pass(self, context_for):
        browser = FakeBrowser(eval_results=[_focus("a"), _focus("b"), _focus("a"), _focus("c")])
        result = await run_keyboard_probe(context_for(browser))

        assert result.status == "pass"
        assert result.metrics == {"focusTargetsObserved": 3.0}
        assert result.findings[0] == "Tab 1: a"
        assert result.covered_requirement_ids == ["REQ-018"]
        assert len(result.evidence) == 1
        assert [c[1] for c in browser.called("press")] == ["Tab"] * 4 + ["Enter", "Escape"]

    async def test_keyboard_partial_when_focus_stuck(self, context_for):
        browser = FakeBrowser(eval_results=[_focus("a")] * 4)
        result = await run_keyboard_probe(context_for(browser))
        assert result.status == "partial"

    async def test_responsive_measures_both_viewports(self, context_for):
        browser = FakeBrowser(eval_results=[GOOD_DESKTOP, GOOD_MOBILE])
        result = await run_responsive_probe(context_for(browser))

        assert result.status == "pass"
        assert browser.called("set_viewport_size") == [("set_viewport_size", 1366, 900), ("set_viewport_size", 390, 844)]
        assert len(result.evidence) == 2
        assert result.metrics["mobileFullWidthControlRatio"] == 0.75

    async def test_performance_uses_configured_budgets(self, context_for):
        browser = FakeBrowser(eval_results=[{"loadTimeMs": 1500.5, "uiLatencyMs": 50, "rafAvgMs": 16.7}])
        result = await run_performance_probe(context_for(browser, perf_load_budget_ms=1000))

        assert result.status == "partial"
        assert result.metrics["loadTimeMs"] == 1500.5
        assert "Load time budget: 1000ms; observed 1500.5ms" in result.findings

    async def test_accessibility_with_axe(self, context_for):
        violations = [{"id": "color-contrast", "impact": "serious", "nodes": [{"target": [".muted"]}]}]
        with patch("src.validation.probes.accessibility.Axe", _axe_returning(violations)):
            result = await run_accessibility_probe(context_for(FakeBrowser()))

        assert result.status == "fail"
        assert result.findings == ["color-contrast on .muted"]
        assert result.covered_requirement_ids == ["REQ-017", "REQ-019"]

    async def test_failure_becomes_error_result(self, context_for):
        browser = FakeBrowser()
        browser.fail_on["open"] = RuntimeError("net::ERR_CONNECTION_REFUSED")
        result = await run_keyboard_probe(context_for(browser))

        assert result.status == "error"
        assert result.summary == "Keyboard probe failed: net::ERR_CONNECTION_REFUSED"
        assert result.evidence == []


@pytest.mark.asyncio
class TestRunValidationProbes:
    """Tests for the probe runner."""

    async def test_disabled(self, context_for):
        events = []
        context = context_for(FakeBrowser(), enable_probes=False)
        context.on_progress = events.append

        assert await run_validation_probes(context) == []
        assert events[0]["message"] == "Validation probes disabled by configuration."

    async def test_runs_in_fixed_order(self, context_for):
        browser = FakeBrowser(eval_results=[
            _focus("a"), _focus("b"), _focus("c"), _focus("d"),
            GOOD_DESKTOP, GOOD_MOBILE,
            {"loadTimeMs": 800, "uiLatencyMs": 10, "rafAvgMs": 16},
        ])
        events = []
        context = context_for(browser)
        context.on_progress = events.append

        with patch("src.validation.probes.accessibility.Axe", _axe_returning([])):
            results = await run_validation_probes(context)

        assert [r.kind for r in results] == ["keyboard", "responsive", "performance", "accessibility"]
        assert all(r.status == "pass" for r in results)
        assert events[-1]["message"] == "Probe execution complete: 4 passed, 0 failed/error, 4 total."
