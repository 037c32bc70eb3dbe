"""Phase 6: scenario execution in browser batches, then the deterministic probes."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from src.ai.client import AIClient
from src.browser.agent_browser import AgentBrowser, create_agent_browser
from src.executor.action_runner import format_action
from src.executor.agent import run_scenario
from src.models.config import ValidationConfig
from src.models.test_plan import TestScenario
from src.models.test_result import (
    AgentStep,
    ExecutedStep,
    ScenarioRunSummary,
    ScenarioStepSummary,
    TestExecutionSummary,
    TestResult,
)
from src.utils.async_utils import close_quietly, heartbeat, with_timeout
from src.validation.events import ProgressCallback, emit, emit_log, emit_phase_complete, emit_phase_start
from src.validation.probes.base import ProbeContext
from src.validation.probes.runner import run_validation_probes

logger = logging.getLogger(__name__)

PHASE = "execution"

BrowserFactory = Callable[[ValidationConfig], AgentBrowser]


def step_result_text(step: AgentStep) -> str:
    return "success" if step.success else f"failed: {step.error or 'unknown'}"


def record_result(summary: TestExecutionSummary, result: TestResult) -> None:
    """Fold one scenario result into the shared execution summary."""
    scenario = result.scenario
    summary.pages_visited.append(scenario.start_url)
    for step in result.steps:
        summary.steps_executed.append(ExecutedStep(
            type=step.action.type,
            selector=step.action.selector,
            result=step_result_text(step),
            screenshot=step.screenshot_path or None,
        ))
    summary.screenshots.extend(result.evidence.screenshots)
    summary.scenario_runs.append(ScenarioRunSummary(
        scenario_id=scenario.id,
        title=scenario.title,
        status=result.status,
        summary=result.summary,
        requirement_ids=list(scenario.requirement_ids or []),
        steps=[
            ScenarioStepSummary(action=format_action(s.action), success=s.success, error=s.error)
            for s in result.steps
        ],
    ))
    if result.status in ("fail", "error"):
        summary.errors.append(f"{scenario.title}: {result.summary}")


class ScenarioExecutor:
    """Runs scenarios in batches of ``parallel_browsers``, one fresh browser each."""

    def __init__(
        self,
        config: ValidationConfig,
        llm: AIClient,
        screenshot_dir: str | Path,
        summary: TestExecutionSummary,
        on_progress: Optional[ProgressCallback] = None,
        browser_factory: BrowserFactory = create_agent_browser,
    ):
        self.config = config
        self.llm = llm
        self.screenshot_dir = screenshot_dir
        self.summary = summary
        self.on_progress = on_progress
        self.browser_factory = browser_factory
        self.completed = 0
        self.active = 0
        self.total = 0

    def _tick(self) -> None:
        emit_log(
            self.on_progress,
            f"Execution heartbeat: {self.completed}/{self.total} scenarios complete, {self.active} active",
        )

    def _on_step(self, scenario: TestScenario) -> Callable[[AgentStep], None]:
        def log_step(step: AgentStep) -> None:
            selector = f" {step.action.selector}" if step.action.selector else ""
            emit_log(
                self.on_progress,
                f"  [{scenario.id}] Step {step.index}: {step.action.type}{selector} → "
                f"{'OK' if step.success else 'FAIL'}",
                "info" if step.success else "warn",
            )
        return log_step

    async def run_one(self, scenario: TestScenario, index: int) -> TestResult:
        browser = self.browser_factory(self.config)
        emit_log(self.on_progress, f"Running scenario {index + 1}/{self.total}: {scenario.title}")
        emit(self.on_progress, "scenario_start", scenario=scenario.to_json_dict(), index=index, total=self.total)
        self.active += 1
        try:
            result = await with_timeout(
                run_scenario(browser, scenario, self.llm, self.screenshot_dir, on_step=self._on_step(scenario)),
                self.config.scenario_timeout_ms,
                f"Scenario {scenario.id}",
            )
        except Exception as e:
            logger.warning("Scenario %s raised: %s", scenario.id, e)
            result = TestResult(scenario=scenario, status="error", summary=f"Scenario failed: {e}")
        finally:
            self.active -= 1
            await close_quietly(browser, f"Browser close ({scenario.id})")

        self.completed += 1
        record_result(self.summary, result)
        emit_log(
            self.on_progress,
            f"  Scenario {index + 1} complete: {result.status}",
            "info" if result.status == "pass" else "warn",
        )
        emit(
            self.on_progress, "scenario_complete",
            scenarioId=scenario.id, status=result.status, summary=result.summary,
            stepsExecuted=len(result.steps), index=index, total=self.total,
        )
        return result

    async def run_all(self, scenarios: list[TestScenario]) -> list[TestResult]:
        self.total = len(scenarios)
        results: list[TestResult] = []
        if not scenarios:
            return results
        concurrency = min(self.config.parallel_browsers, len(scenarios))
        async with heartbeat(self._tick):
            for start in range(0, len(scenarios), concurrency):
                batch = scenarios[start:start + concurrency]
                results.extend(await asyncio.gather(
                    *(self.run_one(s, start + i) for i, s in enumerate(batch))
                ))
        return results

    async def run_probes(self, url: str) -> None:
        """Run the probes on one extra browser and fold them into the summary."""
        browser = self.browser_factory(self.config)
        try:
            probes = await run_validation_probes(ProbeContext(
                browser=browser,
                url=url,
                screenshot_dir=str(self.screenshot_dir),
                config=self.config,
                on_progress=self.on_progress,
            ))
        except Exception as e:
            emit_log(self.on_progress, f"Validation probes failed: {e}", "error")
            self.summary.errors.append(f"Validation probes failed: {e}")
            return
        finally:
            await close_quietly(browser, "Probe browser close")

        self.summary.probe_results.extend(probes)
        if probes:
            self.summary.pages_visited.append(url)
        for probe in probes:
            self.summary.screenshots.extend(probe.evidence)
            if probe.status == "error":
                self.summary.errors.append(f"Probe {probe.kind}: {probe.summary}")


async def run_execution_phase(
    config: ValidationConfig,
    scenarios: list[TestScenario],
    llm: AIClient,
    screenshot_dir: str | Path,
    summary: TestExecutionSummary,
    on_progress: Optional[ProgressCallback] = None,
    browser_factory: BrowserFactory = create_agent_browser,
) -> list[TestResult]:
    logger.info("--- Stage 6: Execution (%d scenarios) ---", len(scenarios))
    emit_phase_start(on_progress, PHASE)
    emit_log(on_progress, f"Executing {len(scenarios)} test scenarios...")

    executor = ScenarioExecutor(config, llm, screenshot_dir, summary, on_progress, browser_factory)
    results = await executor.run_all(scenarios)

    passed = sum(1 for r in results if r.status == "pass")
    failed = sum(1 for r in results if r.status == "fail")
    errored = sum(1 for r in results if r.status == "error")
    emit_log(on_progress, f"Execution complete: {passed} passed, {failed} failed, {errored} errors")

    await executor.run_probes(scenarios[0].start_url if scenarios else config.url)

    emit_phase_complete(on_progress, PHASE)
    return results
