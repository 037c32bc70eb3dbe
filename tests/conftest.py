"""Pytest configuration and shared fixtures."""

import json
from pathlib import Path
from typing import Any, Optional

import pytest

from src.models.config import ValidationConfig
from src.models.site_model import ElementMeta, LinkInfo, PageSnapshot
from src.models.test_plan import TestScenario
from src.models.validation import Requirement, Rubric, RubricCriterion, SourceLocation

PNG_BYTES = (
    b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01'
    b'\x00\x00\x00\x01\x08\x02\x00\x00\x00\x90wS\xde\x00\x00'
    b'\x00\x0cIDATx\x9cc\x00\x01\x00\x00\x05\x00\x01\r\n-'
    b'\xb4\x00\x00\x00\x00IEND\xaeB`\x82'
)


# ============================================================================
# Fakes
# ============================================================================


def make_snapshot(url: str = "https://example.com/", **overrides: Any) -> PageSnapshot:
    """A page snapshot with fixed hashes; override any field."""
    fields = {
        "url": url,
        "dom_hash": "dom-a",
        "visible_text_hash": "text-a",
        "interactive_state_hash": "state-a",
        "element_count": 10,
        "text_length": 100,
        "dialog_count": 0,
    }
    fields.update(overrides)
    return PageSnapshot(**fields)


class FakeBrowser:
    """Scripted stand-in for AgentBrowser.

    Page snapshots are served from ``snapshots`` in order (the last one
    repeats). ``fail_on`` maps a method name to an exception to raise.
    """

    def __init__(
        self,
        snapshots: Optional[list[PageSnapshot]] = None,
        dom: str = '<button id="save">Save</button>',
        element_meta: Optional[ElementMeta] = None,
        links: Optional[list[LinkInfo]] = None,
        texts: Optional[dict[str, str]] = None,
        eval_results: Optional[list[Any]] = None,
    ):
        self.snapshots = list(snapshots or [make_snapshot()])
        self.dom = dom
        self.element_meta = element_meta
        self.links = links or []
        self.texts = texts or {}
        self.eval_results = list(eval_results or [])
        self.fail_on: dict[str, Exception] = {}
        self.calls: list[tuple] = []
        self.closed = False

    def _call(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise self.fail_on[name]

    def called(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def open(self, url: str) -> None:
        self._call("open", url)

    async def snapshot(self) -> str:
        self._call("snapshot")
        return self.dom

    async def click(self, selector: str) -> None:
        self._call("click", selector)

    async def fill(self, selector: str, value: str) -> None:
        self._call("fill", selector, value)

    async def hover(self, selector: str) -> None:
        self._call("hover", selector)

    async def press(self, key: str) -> None:
        self._call("press", key)

    async def screenshot(self, path: str) -> str:
        self._call("screenshot", path)
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        Path(path).write_bytes(PNG_BYTES)
        return path

    async def take_page_snapshot(self) -> PageSnapshot:
        self._call("take_page_snapshot")
        if len(self.snapshots) > 1:
            return self.snapshots.pop(0)
        return self.snapshots[0]

    async def get_element_meta(self, selector: str) -> Optional[ElementMeta]:
        self._call("get_element_meta", selector)
        return self.element_meta

    async def eval_json(self, script: str) -> Any:
        self._call("eval_json")
        return self.eval_results.pop(0) if self.eval_results else {}

    async def set_viewport_size(self, width: int, height: int) -> None:
        self._call("set_viewport_size", width, height)

    async def wait_for_stability(self, window_ms: int = 300, max_ms: int = 3000) -> bool:
        self._call("wait_for_stability")
        return True

    async def get_links(self) -> list[LinkInfo]:
        self._call("get_links")
        return self.links

    async def fetch_text(self, url: str) -> Optional[str]:
        self._call("fetch_text", url)
        return self.texts.get(url)

    async def get_playwright_page(self) -> Any:
        self._call("get_playwright_page")
        return object()

    async def close(self) -> None:
        self._call("close")
        self.closed = True


class ScriptedLLM:
    """Returns queued responses from ``chat`` in order.

    A queued Exception is raised instead of returned. Dicts are sent as JSON.
    """

    def __init__(self, responses: Optional[list[Any]] = None):
        self.responses = list(responses or [])
        self.calls: list[dict[str, Any]] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    async def chat(self, messages: list[dict], **kwargs: Any) -> str:
        self.calls.append({"messages": messages, **kwargs})
        if not self.responses:
            raise AssertionError("ScriptedLLM ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, (dict, list)):
            return json.dumps(response)
        return response

    def user_text(self, call_index: int = -1) -> str:
        """All text the user turns carried in one call."""
        parts = []
        for message in self.calls[call_index]["messages"]:
            if message["role"] != "user":
                continue
            content = message["content"]
            if isinstance(content, str):
                parts.append(content)
            else:
                parts.extend(block.get("text", "") for block in content)
        return "\n".join(parts)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def spec_file(tmp_path: Path) -> Path:
    """A small Markdown specification on disk."""
    path = tmp_path / "spec.md"
    path.write_text(
        "# Todo App\n\nA simple todo list.\n\n"
        "## Adding items\n\nUsers can add a todo with the Add button.\n\n"
        "## Accessibility\n\nAll controls are reachable by keyboard.\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def validation_config(tmp_path: Path, spec_file: Path) -> ValidationConfig:
    """A validation config writing everything under tmp_path."""
    return ValidationConfig(
        spec_file=str(spec_file),
        url="https://example.com",
        output_dir=str(tmp_path / "reports"),
        runs_dir=str(tmp_path / "runs"),
        max_pages=5,
        parallel_browsers=2,
        gap_rounds=0,
        enable_probes=False,
    )


# ============================================================================
# Requirement Fixtures
# ============================================================================


def make_requirement(index: int, **overrides: Any) -> Requirement:
    fields = {
        "id": f"REQ-{index:03d}",
        "source_location": SourceLocation(file="spec.md", line=index),
        "raw_text": f"Requirement text {index}",
        "summary": f"Requirement {index}",
        "category": "functional",
        "priority": "must",
        "testable": True,
        "acceptance_criteria": [f"Criterion {index}"],
    }
    fields.update(overrides)
    return Requirement(**fields)


@pytest.fixture
def requirements() -> list[Requirement]:
    return [make_requirement(1), make_requirement(2, category="ui"), make_requirement(3, priority="should")]


@pytest.fixture
def rubric(requirements: list[Requirement]) -> Rubric:
    criteria = [
        RubricCriterion(
            requirement_id=r.id,
            criterion=f"Check {r.id}",
            weight=w,
            pass_condition="Works",
            fail_condition="Broken",
        )
        for r, w in zip(requirements, (3, 2, 1))
    ]
    return Rubric(criteria=criteria, max_score=6)


@pytest.fixture
def scenario() -> TestScenario:
    return TestScenario(
        id="scenario-add",
        title="Add a todo",
        description="Type a todo and press Add",
        start_url="https://example.com/",
        max_steps=3,
        requirement_ids=["REQ-001"],
    )


@pytest.fixture
def fake_browser() -> FakeBrowser:
    return FakeBrowser()


@pytest.fixture
def scripted_llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def screenshot_dir(tmp_path: Path) -> Path:
    path = tmp_path / "shots"
    path.mkdir()
    return path
