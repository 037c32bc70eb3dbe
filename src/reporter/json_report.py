"""JSON report output."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from src.models.validation import TraceabilityReport

REPORT_PREFIX = "traceability-report"


def report_stem(timestamp_ms: int) -> str:
    """``traceability-report-YYYY-MM-DDTHH-MM-SS`` for a UTC epoch-ms timestamp."""
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return f"{REPORT_PREFIX}-{moment.strftime('%Y-%m-%dT%H-%M-%S')}"


def generate_json_report(report: TraceabilityReport, output_dir: Path) -> Path:
    """Write the machine-readable report (camelCase keys) and return its path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{report_stem(report.timestamp)}.json"
    with open(path, "w", encoding="utf-8") as f:
        json.dump(report.model_dump(by_alias=True, exclude_none=True), f, indent=2, default=str)
    return path
