"""Validation orchestrator: runs the eight phases in order and persists the run."""

from __future__ import annotations

import asyncio
import logging
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from src.ai.client import AIClient, set_debug_dir
from src.browser.agent_browser import create_agent_browser
from src.errors import PhaseError
from src.models.config import ValidationConfig
from src.models.test_result import TestExecutionSummary
from src.models.validation import TraceabilityReport
from src.phases.cross_validation import run_cross_validation_phase
from src.phases.discovery import run_discovery_phase
from src.phases.execution import BrowserFactory, run_execution_phase
from src.phases.extraction import run_extraction_phase
from src.phases.parsing import run_parsing_phase
from src.phases.planning import run_planning_phase
from src.phases.reporting import run_reporting_phase
from src.phases.rubric import run_rubric_phase
from src.storage.local import LocalRunStore
from src.utils.async_utils import attempt_and_log, close_quietly
from src.validation.events import ProgressCallback, emit, emit_log

logger = logging.getLogger(__name__)


@dataclass
class ValidationRunResult:
    report: TraceabilityReport
    report_path: str
    markdown_path: str


def new_run_id() -> str:
    return f"validation-{int(time.time() * 1000)}"


def screenshot_dir_for(timestamp: str) -> Path:
    return Path(tempfile.gettempdir()) / f"validation-screenshots-{timestamp}"


async def persist_screenshots(
    store: LocalRunStore,
    run_id: str,
    summary: TestExecutionSummary,
    on_progress: Optional[ProgressCallback] = None,
) -> int:
    """Copy every screenshot the summary references into the run store.

    References are rewritten in place to the stored copies. A screenshot
    that cannot be saved keeps its original path. Returns the number saved.
    """
    stored: dict[str, str] = {}

    async def _persist(path: Optional[str]) -> Optional[str]:
        if not path:
            return path
        if path not in stored:
            saved = await attempt_and_log(
                lambda: asyncio.to_thread(store.save_screenshot, run_id, path, len(stored), Path(path).stem),
                f"Persist screenshot {path}",
            )
            if saved is None:
                return path
            stored[path] = saved["localPath"]
        return stored[path]

    summary.screenshots = [await _persist(p) for p in summary.screenshots]
    for step in summary.steps_executed:
        step.screenshot = await _persist(step.screenshot)
    for probe in summary.probe_results:
        probe.evidence = [await _persist(p) for p in probe.evidence]

    emit_log(on_progress, f"Persisted {len(stored)} screenshots to local run {run_id}")
    return len(stored)


async def run_validation(
    config: ValidationConfig,
    on_progress: Optional[ProgressCallback] = None,
    llm: Optional[AIClient] = None,
    browser_factory: BrowserFactory = create_agent_browser,
    store: Optional[LocalRunStore] = None,
) -> ValidationRunResult:
    """Validate ``config.url`` against ``config.spec_file``.

    Phase failures emit ``validation_error``, mark the local run failed and
    surface as :class:`PhaseError`.
    """
    start = time.time()
    run_id = new_run_id()
    screenshot_dir = screenshot_dir_for(datetime.now().strftime("%Y-%m-%dT%H-%M-%S"))
    screenshot_dir.mkdir(parents=True, exist_ok=True)
    Path(config.output_dir).mkdir(parents=True, exist_ok=True)

    store = store or LocalRunStore(config.runs_dir)
    set_debug_dir(store.run_dir(run_id) / "debug")
    llm = llm or AIClient(model=config.ai_model, max_tokens=config.ai_max_tokens)
    store.create_run(run_id, config.url, goals=f"Validate against {config.spec_file}")
    logger.info("=== Starting validation run %s for %s ===", run_id, config.url)

    summary = TestExecutionSummary()
    phase = "parsing"
    try:
        document = await run_parsing_phase(config.spec_file, on_progress)

        phase = "extraction"
        requirements = await run_extraction_phase(document, llm, on_progress)

        phase = "rubric"
        rubric = await run_rubric_phase(requirements, llm, on_progress)

        phase = "discovery"
        browser = browser_factory(config)
        try:
            discovery = await run_discovery_phase(config, browser, screenshot_dir, summary, on_progress)

            phase = "planning"
            scenarios = await run_planning_phase(
                config, requirements, discovery.sitemap, browser, llm, screenshot_dir, on_progress,
            )
        finally:
            await close_quietly(browser, "Discovery browser close")

        phase = "execution"
        await run_execution_phase(
            config, scenarios, llm, screenshot_dir, summary, on_progress, browser_factory,
        )
        await persist_screenshots(store, run_id, summary, on_progress)

        phase = "cross_validation"
        results = await run_cross_validation_phase(requirements, rubric, summary, llm, on_progress)

        phase = "reporting"
        reporting = await run_reporting_phase(
            config.spec_file, config.url, requirements, rubric, results,
            summary, config.output_dir, on_progress,
        )
    except Exception as e:
        logger.error("Validation failed during %s: %s", phase, e)
        emit(on_progress, "validation_error", message=str(e), phase=phase)
        try:
            store.fail_run(run_id, str(e))
        except (KeyError, OSError) as store_error:
            logger.warning("Could not mark run %s failed: %s", run_id, store_error)
        raise PhaseError(phase, e) from e

    report = reporting.report
    store.complete_run(run_id, report.overall_score, report.summary, report.to_json_dict())
    logger.info("=== Validation complete in %.1fs: score %d/100, coverage %d%% ===",
                time.time() - start, report.overall_score, report.coverage_score)
    return ValidationRunResult(
        report=report,
        report_path=reporting.report_path,
        markdown_path=reporting.markdown_path,
    )


class Orchestrator:
    """Synchronous front for :func:`run_validation`."""

    def __init__(self, config: ValidationConfig):
        self.config = config
        self.store = LocalRunStore(config.runs_dir)

    def run(self, on_progress: Optional[ProgressCallback] = None) -> ValidationRunResult:
        return asyncio.run(run_validation(self.config, on_progress, store=self.store))
