"""Tests for scenario normalization and plan validation."""

import pytest

from src.models.test_plan import TestScenario
from src.planner.schema_validator import (
    dedupe_scenario_ids,
    normalize_scenario,
    normalize_scenarios,
    random_scenario_id,
    validate_scenarios,
)

URL = "https://example.com/"


class TestNormalizeScenario:
    """Tests for normalize_scenario."""

    def test_defaults_filled(self):
        scenario = normalize_scenario({}, URL, step_limit=10)
        assert scenario.id.startswith("scenario-")
        assert scenario.title == "Untitled scenario"
        assert scenario.priority == "medium"
        assert scenario.category == "interaction"
        assert scenario.max_steps == 6
        assert scenario.requirement_ids is None
        assert scenario.start_url == URL

    @pytest.mark.parametrize("proposed,limit,expected", [
        (3, 10, 3),
        (20, 10, 8),
        (7, 5, 5),
        (0, 10, 6),
        ("lots", 10, 6),
        (True, 10, 6),
    ])
    def test_step_budget_clamped(self, proposed, limit, expected):
        scenario = normalize_scenario({"maxSteps": proposed}, URL, step_limit=limit)
        assert scenario.max_steps == expected

    def test_requirement_ids_filtered_and_capped(self):
        ids = ["REQ-001", 7, None] + [f"REQ-{i:03d}" for i in range(2, 20)]
        scenario = normalize_scenario({"requirementIds": ids}, URL, step_limit=10)
        assert scenario.requirement_ids[0] == "REQ-001"
        assert len(scenario.requirement_ids) == 10
        assert all(isinstance(r, str) for r in scenario.requirement_ids)

    def test_non_list_requirement_ids(self):
        scenario = normalize_scenario({"requirementIds": "REQ-001"}, URL, step_limit=10)
        assert scenario.requirement_ids is None


class TestNormalizeScenarios:
    """Tests for normalize_scenarios."""

    @pytest.mark.parametrize("data", [None, [], "text", {"scenarios": "nope"}, {}])
    def test_malformed_yields_empty(self, data):
        assert normalize_scenarios(data, URL, max_scenarios=5, step_limit=10) == []

    def test_caps_count_and_skips_non_objects(self):
        data = {"scenarios": [{"id": "a"}, "junk", {"id": "b"}, {"id": "c"}]}
        scenarios = normalize_scenarios(data, URL, max_scenarios=3, step_limit=10)
        assert [s.id for s in scenarios] == ["a", "b"]


class TestDedupeScenarioIds:
    """Tests for dedupe_scenario_ids."""

    def test_suffixes_taken_ids(self):
        taken = {"login"}
        scenarios = [
            TestScenario(id="login", title="A", start_url=URL),
            TestScenario(id="login", title="B", start_url=URL),
            TestScenario(id="search", title="C", start_url=URL),
        ]
        result = dedupe_scenario_ids(scenarios, taken)
        assert [s.id for s in result] == ["login-2", "login-3", "search"]
        assert taken == {"login", "login-2", "login-3", "search"}
        assert scenarios[0].id == "login"


class TestValidateScenarios:
    """Tests for validate_scenarios."""

    def test_clean_plan(self):
        assert validate_scenarios([TestScenario(id="a", title="A", start_url=URL)]) == []

    def test_reports_problems(self):
        warnings = validate_scenarios([
            TestScenario(id="a", title="A", start_url=URL, priority="urgent"),
            TestScenario(id="a", title="B", start_url=URL, category="misc", max_steps=0),
        ])
        assert "a: unexpected priority 'urgent'" in warnings
        assert "Duplicate scenario id: a" in warnings
        assert "a: unexpected category 'misc'" in warnings
        assert "a: max_steps must be positive" in warnings


def test_random_scenario_ids_differ():
    ids = {random_scenario_id() for _ in range(20)}
    assert len(ids) > 1
    assert all(len(i) == len("scenario-") + 6 for i in ids)
