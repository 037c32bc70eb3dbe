"""Integration tests for the validation pipeline.

These drive run_validation end to end with a scripted reasoning service and
scripted browsers, checking the hand-offs between phases, the progress
event stream and the local run record.
"""

from pathlib import Path

import pytest

from src.errors import PhaseError
from src.models.test_result import ExecutedStep, TestExecutionSummary
from src.models.validation import ValidationProbeResult
from src.orchestrator import persist_screenshots, run_validation
from src.storage.local import LocalRunStore

from conftest import PNG_BYTES, FakeBrowser, ScriptedLLM

EXTRACTED = {"requirements": [
    {
        "id": "anything",
        "sourceLocation": {"line": 5, "section": "Adding items"},
        "rawText": "Users can add a todo with the Add button.",
        "summary": "Add a todo",
        "category": "functional",
        "priority": "must",
        "testable": True,
        "acceptanceCriteria": ["A new todo appears in the list"],
    },
    {
        "id": "anything",
        "sourceLocation": {"line": 9, "section": "Accessibility"},
        "rawText": "All controls are reachable by keyboard.",
        "summary": "Keyboard reachable controls",
        "category": "accessibility",
        "priority": "should",
        "testable": True,
        "acceptanceCriteria": ["Tab reaches every control"],
    },
]}

RUBRIC = {"criteria": [
    {"requirementId": "REQ-001", "criterion": "Todo added", "weight": 3,
     "passCondition": "Todo listed", "failCondition": "Nothing added"},
    {"requirementId": "REQ-002", "criterion": "Keyboard", "weight": 1,
     "passCondition": "Focus moves", "failCondition": "Focus trapped"},
]}

PLANNED = {"scenarios": [
    {"id": "add-todo", "title": "Add a todo", "description": "Type and press Add",
     "maxSteps": 3, "requirementIds": ["REQ-001"]},
]}

AGENT_DONE = {"type": "done", "result": "pass", "reasoning": "The todo appeared in the list"}

CROSS_VALIDATED = {"results": [
    {"requirementId": "REQ-001", "status": "pass", "score": 100, "evidence": ["add-todo passed"],
     "reasoning": "Scenario add-todo added an item"},
]}


class BrowserFactory:
    def __init__(self):
        self.browsers: list[FakeBrowser] = []
        self.fail_on: dict[str, Exception] = {}

    def __call__(self, config) -> FakeBrowser:
        browser = FakeBrowser()
        browser.fail_on.update(self.fail_on)
        self.browsers.append(browser)
        return browser


@pytest.fixture
def store(validation_config) -> LocalRunStore:
    return LocalRunStore(validation_config.runs_dir)


@pytest.mark.integration
@pytest.mark.asyncio
class TestRunValidation:
    """End-to-end runs through all eight phases."""

    async def test_successful_run(self, validation_config, store):
        llm = ScriptedLLM([EXTRACTED, RUBRIC, PLANNED, AGENT_DONE, CROSS_VALIDATED])
        factory = BrowserFactory()
        events = []

        result = await run_validation(validation_config, events.append, llm=llm, browser_factory=factory, store=store)

        report = result.report
        assert [r.id for r in report.requirements] == ["REQ-001", "REQ-002"]
        assert report.requirements[0].source_location.file == validation_config.spec_file
        assert [r.status for r in report.results] == ["pass", "not_tested"]
        # (1.0 * 3 + 0 * 1) / 4
        assert report.overall_score == 75
        assert report.coverage_score == 50
        assert Path(result.report_path).exists()
        assert Path(result.markdown_path).exists()

        # Discovery browser, one scenario browser, one probe browser.
        assert len(factory.browsers) == 3
        assert all(b.closed for b in factory.browsers)

        starts = [e["phase"] for e in events if e["type"] == "validation_phase_start"]
        assert starts == [
            "parsing", "extraction", "rubric", "discovery",
            "planning", "execution", "cross_validation", "reporting",
        ]
        assert events[-1]["type"] == "validation_phase_complete"
        assert any(e["type"] == "validation_complete" for e in events)

        [run] = store.list_runs()
        assert run.status == "completed"
        assert run.score == 75
        assert run.report["overallScore"] == 75
        assert len(run.screenshots) >= 2
        assert all(Path(s.local_path).exists() for s in run.screenshots)

    async def test_extraction_failure_marks_run_failed(self, validation_config, store):
        llm = ScriptedLLM(["not json", "still not json"])
        events = []

        with pytest.raises(PhaseError) as exc_info:
            await run_validation(validation_config, events.append, llm=llm, browser_factory=BrowserFactory(), store=store)

        assert exc_info.value.phase == "extraction"
        assert "Failed to extract requirements after 2 attempts" in exc_info.value.message
        [error_event] = [e for e in events if e["type"] == "validation_error"]
        assert error_event["phase"] == "extraction"
        [run] = store.list_runs()
        assert run.status == "failed"
        assert "Failed to extract requirements" in run.error

    async def test_discovery_failure_closes_browser(self, validation_config, store):
        llm = ScriptedLLM([EXTRACTED, RUBRIC])
        factory = BrowserFactory()
        factory.fail_on["open"] = RuntimeError("net::ERR_CONNECTION_REFUSED")

        with pytest.raises(PhaseError) as exc_info:
            await run_validation(validation_config, llm=llm, browser_factory=factory, store=store)

        assert exc_info.value.phase == "discovery"
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert factory.browsers[0].closed

    async def test_missing_spec_fails_in_parsing(self, validation_config, store, tmp_path):
        config = validation_config.model_copy(update={"spec_file": str(tmp_path / "missing.md")})

        with pytest.raises(PhaseError) as exc_info:
            await run_validation(config, llm=ScriptedLLM(), browser_factory=BrowserFactory(), store=store)

        assert exc_info.value.phase == "parsing"


@pytest.mark.asyncio
class TestPersistScreenshots:
    """Tests for copying evidence into the local run."""

    async def test_references_rewritten(self, store, tmp_path):
        shot = tmp_path / "step-0.png"
        shot.write_bytes(PNG_BYTES)
        missing = str(tmp_path / "never-written.png")
        store.create_run("run-1", "https://example.com")
        summary = TestExecutionSummary(
            screenshots=[str(shot), str(shot), missing],
            steps_executed=[ExecutedStep(type="click", selector="#add", result="success", screenshot=str(shot))],
            probe_results=[ValidationProbeResult(
                id="p1", kind="keyboard", status="pass", summary="ok", evidence=[str(shot)],
            )],
        )

        saved = await persist_screenshots(store, "run-1", summary)

        assert saved == 1
        stored = summary.screenshots[0]
        assert stored != str(shot)
        assert Path(stored).read_bytes() == PNG_BYTES
        assert summary.screenshots == [stored, stored, missing]
        assert summary.steps_executed[0].screenshot == stored
        assert summary.probe_results[0].evidence == [stored]
        assert len(store.get_run("run-1").screenshots) == 1

    async def test_steps_without_screenshots(self, store):
        store.create_run("run-1", "https://example.com")
        summary = TestExecutionSummary(
            steps_executed=[ExecutedStep(type="wait", result="success")],
        )
        assert await persist_screenshots(store, "run-1", summary) == 0
        assert summary.steps_executed[0].screenshot is None
