"""Tests for JSON report generation."""

import json
from pathlib import Path

from src.reporter.json_report import generate_json_report, report_stem
from src.reporter.reporter import generate_traceability_report


class TestReportStem:
    """Tests for report_stem."""

    def test_epoch(self):
        assert report_stem(0) == "traceability-report-1970-01-01T00-00-00"

    def test_uses_utc(self):
        assert report_stem(1700000000000) == "traceability-report-2023-11-14T22-13-20"


class TestGenerateJsonReport:
    """Tests for generate_json_report."""

    def test_camel_case_document(self, requirements, rubric, tmp_path: Path):
        report = generate_traceability_report(
            "spec.md", "https://example.com", requirements, rubric, [], timestamp=0,
        )

        path = generate_json_report(report, tmp_path / "nested")

        assert path.parent.exists()
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["specFile"] == "spec.md"
        assert data["overallScore"] == 0
        assert data["rubric"]["maxScore"] == 6
        assert data["requirements"][0]["sourceLocation"]["file"] == "spec.md"
        assert data["requirements"][0]["acceptanceCriteria"] == ["Criterion 1"]
        assert "probeSummary" not in data
