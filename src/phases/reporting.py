"""Phase 8: traceability report generation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from src.models.test_result import TestExecutionSummary
from src.models.validation import Requirement, RequirementResult, Rubric, TraceabilityReport
from src.reporter.reporter import Reporter, generate_traceability_report
from src.validation.events import ProgressCallback, emit, emit_log, emit_phase_complete, emit_phase_start

logger = logging.getLogger(__name__)

PHASE = "reporting"


@dataclass
class ReportingResult:
    report: TraceabilityReport
    report_path: str
    markdown_path: str


async def run_reporting_phase(
    spec_file: str,
    url: str,
    requirements: list[Requirement],
    rubric: Rubric,
    results: list[RequirementResult],
    summary: TestExecutionSummary,
    output_dir: str,
    on_progress: Optional[ProgressCallback] = None,
) -> ReportingResult:
    logger.info("--- Stage 8: Reporting ---")
    emit_phase_start(on_progress, PHASE)
    emit_log(on_progress, "Generating traceability report...")

    report = generate_traceability_report(
        spec_file=spec_file,
        url=url,
        requirements=requirements,
        rubric=rubric,
        results=results,
        probe_results=summary.probe_results,
    )
    paths = Reporter(output_dir).save(report)
    emit_log(on_progress, f"Report saved to {paths['json']}")

    emit(
        on_progress, "validation_complete",
        report=report.to_json_dict(), reportPath=paths["json"], markdownPath=paths["markdown"],
    )
    emit_phase_complete(on_progress, PHASE)
    return ReportingResult(report=report, report_path=paths["json"], markdown_path=paths["markdown"])
