"""Scenario normalization for page-analysis output, plus plan-level checks."""

from __future__ import annotations

import logging
import secrets
import string
from typing import Any, Optional

from src.models.test_plan import TestScenario

logger = logging.getLogger(__name__)

VALID_PRIORITIES = {"critical", "high", "medium", "low"}
VALID_CATEGORIES = {"forms", "navigation", "auth", "content", "interaction", "e2e"}
DEFAULT_SCENARIO_STEPS = 6
ANALYZER_STEP_CAP = 8
MAX_REQUIREMENT_IDS = 10

_ID_ALPHABET = string.ascii_lowercase + string.digits


def random_scenario_id() -> str:
    return "scenario-" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and value > 0:
        return int(value)
    return None


def normalize_scenario(raw: dict, start_url: str, step_limit: int) -> TestScenario:
    """Fill defaults and clamp the step budget of one model-proposed scenario.

    ``max_steps = min(proposed or 6, 8, step_limit)``. Requirement IDs keep
    only strings, at most ten; a missing or non-list value stays None.
    """
    requirement_ids = raw.get("requirementIds")
    if isinstance(requirement_ids, list):
        requirement_ids = [r for r in requirement_ids if isinstance(r, str)][:MAX_REQUIREMENT_IDS]
    else:
        requirement_ids = None

    proposed_steps = _positive_int(raw.get("maxSteps")) or DEFAULT_SCENARIO_STEPS
    return TestScenario(
        id=str(raw.get("id") or random_scenario_id()),
        title=str(raw.get("title") or "Untitled scenario"),
        description=str(raw.get("description") or ""),
        start_url=start_url,
        priority=str(raw.get("priority") or "medium"),
        category=str(raw.get("category") or "interaction"),
        max_steps=max(1, min(proposed_steps, ANALYZER_STEP_CAP, step_limit)),
        requirement_ids=requirement_ids,
    )


def normalize_scenarios(
    data: Any, start_url: str, max_scenarios: int, step_limit: int,
) -> list[TestScenario]:
    """Turn decoded analyzer JSON into scenarios; anything malformed yields []."""
    if not isinstance(data, dict):
        return []
    raw_scenarios = data.get("scenarios")
    if not isinstance(raw_scenarios, list):
        return []
    return [
        normalize_scenario(raw, start_url, step_limit)
        for raw in raw_scenarios[:max_scenarios]
        if isinstance(raw, dict)
    ]


def dedupe_scenario_ids(scenarios: list[TestScenario], taken: set[str]) -> list[TestScenario]:
    """Suffix IDs already in *taken* (``-2``, ``-3``...). *taken* is updated in place."""
    result = []
    for scenario in scenarios:
        candidate = scenario.id
        suffix = 2
        while candidate in taken:
            candidate = f"{scenario.id}-{suffix}"
            suffix += 1
        taken.add(candidate)
        result.append(scenario if candidate == scenario.id else scenario.model_copy(update={"id": candidate}))
    return result


def validate_scenarios(scenarios: list[TestScenario]) -> list[str]:
    """Return warnings for a planned scenario list. Empty means clean."""
    warnings = []
    seen: set[str] = set()
    for s in scenarios:
        if s.id in seen:
            warnings.append(f"Duplicate scenario id: {s.id}")
        seen.add(s.id)
        if s.priority not in VALID_PRIORITIES:
            warnings.append(f"{s.id}: unexpected priority '{s.priority}'")
        if s.category not in VALID_CATEGORIES:
            warnings.append(f"{s.id}: unexpected category '{s.category}'")
        if s.max_steps < 1:
            warnings.append(f"{s.id}: max_steps must be positive")
    return warnings
