"""Traceability report assembly and persistence."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

from src.coverage.scorer import (
    calculate_coverage_score,
    calculate_overall_score,
    generate_summary,
    summarize_probes,
)
from src.models.validation import (
    Requirement,
    RequirementResult,
    Rubric,
    TraceabilityReport,
    ValidationProbeResult,
)

from .json_report import generate_json_report
from .markdown_report import generate_markdown_report

logger = logging.getLogger(__name__)


def generate_traceability_report(
    spec_file: str,
    url: str,
    requirements: list[Requirement],
    rubric: Rubric,
    results: list[RequirementResult],
    probe_results: Optional[list[ValidationProbeResult]] = None,
    timestamp: Optional[int] = None,
) -> TraceabilityReport:
    probes = list(probe_results or [])
    overall = calculate_overall_score(results, rubric)
    coverage = calculate_coverage_score(results)
    return TraceabilityReport(
        spec_file=spec_file,
        url=url,
        requirements=requirements,
        rubric=rubric,
        results=results,
        probe_results=probes,
        probe_summary=summarize_probes(probes),
        overall_score=overall,
        coverage_score=coverage,
        summary=generate_summary(results, overall, coverage),
        timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
    )


class Reporter:
    """Writes the JSON and Markdown forms of a traceability report."""

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)

    def save(self, report: TraceabilityReport) -> dict[str, str]:
        """Write both formats. Returns format -> file path."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        json_path = generate_json_report(report, self.output_dir)
        logger.info("JSON report: %s", json_path)
        md_path = generate_markdown_report(report, self.output_dir)
        logger.info("Markdown report: %s", md_path)
        return {"json": str(json_path), "markdown": str(md_path)}
