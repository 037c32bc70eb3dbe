"""Markdown report output."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from src.models.validation import RequirementResult, TraceabilityReport

from .json_report import report_stem

STATUS_LABELS = {
    "pass": "[PASS]",
    "partial": "[PARTIAL]",
    "fail": "[FAIL]",
    "not_tested": "[NOT TESTED]",
}

# First keyword hit wins.
_NOT_TESTED_GROUPS = (
    (("not measured", "timing"), "Missing Performance Measurements"),
    (("responsive",), "Missing Responsive Evidence"),
    (("contrast", "wcag"), "Missing Accessibility Tooling/Evidence"),
    (("keyboard",), "Missing Keyboard Interaction Evidence"),
    (("loading",), "Loading State Not Observed"),
    (("error",), "Error Path Not Exercised"),
)
OTHER_GAPS = "Other Evidence Gaps"


def classify_not_tested_reason(reasoning: str) -> str:
    lower = reasoning.lower()
    for keywords, group in _NOT_TESTED_GROUPS:
        if any(k in lower for k in keywords):
            return group
    return OTHER_GAPS


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _format_date(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def generate_markdown_summary(report: TraceabilityReport) -> str:
    lines = [
        "# Traceability Report",
        "",
        f"**Specification:** {report.spec_file}",
        f"**URL:** {report.url}",
        f"**Date:** {_format_date(report.timestamp)}",
        "",
        "## Summary",
        "",
        f"- **Overall Score:** {report.overall_score}/100",
        f"- **Coverage:** {report.coverage_score}%",
        f"- {report.summary}",
        "",
        "## Results by Requirement",
        "",
    ]

    results_by_id = {r.requirement_id: r for r in report.results}
    for req in report.requirements:
        result = results_by_id.get(req.id)
        if result is None:
            continue
        lines += [
            f"### {req.id}: {req.summary}",
            "",
            f"**Status:** {STATUS_LABELS[result.status]} (Score: {_format_number(result.score)}/100)",
            "",
            f"**Reasoning:** {result.reasoning}",
            "",
        ]
        if result.evidence:
            lines.append("**Evidence:**")
            lines += [f"- {e}" for e in result.evidence]
            lines.append("")

    if report.probe_results:
        lines += ["## Probe Coverage", ""]
        if report.probe_summary:
            lines += [
                f"- **Probes:** {report.probe_summary.total}",
                f"- **Passed:** {report.probe_summary.passed}",
                f"- **Failed/Error:** {report.probe_summary.failed}",
                "",
            ]
        for probe in report.probe_results:
            lines += [f"### {probe.kind} ({probe.status})", "", probe.summary, ""]
            if probe.covered_requirement_ids:
                lines.append(f"- Requirements: {', '.join(probe.covered_requirement_ids)}")
            if probe.metrics:
                metrics = ", ".join(f"{k}={_format_number(v)}" for k, v in probe.metrics.items())
                lines.append(f"- Metrics: {metrics}")
            lines.append("")

    not_tested = [r for r in report.results if r.status == "not_tested"]
    if not_tested:
        grouped: dict[str, list[RequirementResult]] = {}
        for result in not_tested:
            grouped.setdefault(classify_not_tested_reason(result.reasoning), []).append(result)
        lines += ["## Remaining Not Tested (Grouped)", ""]
        for reason, group in grouped.items():
            lines += [f"### {reason}", ""]
            lines += [f"- {r.requirement_id}: {r.reasoning}" for r in group]
            lines.append("")

    return "\n".join(lines)


def generate_markdown_report(report: TraceabilityReport, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{report_stem(report.timestamp)}.md"
    path.write_text(generate_markdown_summary(report), encoding="utf-8")
    return path
