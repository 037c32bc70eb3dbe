"""Requirement score and coverage calculation."""

from __future__ import annotations

import logging
import math

from src.models.validation import ProbeSummary, RequirementResult, Rubric, ValidationProbeResult

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT = 1.0


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def calculate_overall_score(results: list[RequirementResult], rubric: Rubric) -> int:
    """Weighted mean of requirement scores, 0-100.

    Requirements without a rubric criterion count with weight 1.
    """
    if not results or rubric.max_score == 0:
        return 0
    weights = {c.requirement_id: c.weight for c in rubric.criteria}
    total_weight = 0.0
    weighted = 0.0
    for result in results:
        weight = weights.get(result.requirement_id) or DEFAULT_WEIGHT
        weighted += (result.score / 100) * weight
        total_weight += weight
    if total_weight == 0:
        return 0
    return round_half_up(weighted / total_weight * 100)


def calculate_coverage_score(results: list[RequirementResult]) -> int:
    """Percentage of requirements that were tested at all."""
    if not results:
        return 0
    tested = sum(1 for r in results if r.status != "not_tested")
    return round_half_up(tested / len(results) * 100)


def summarize_probes(probe_results: list[ValidationProbeResult]) -> ProbeSummary | None:
    if not probe_results:
        return None
    return ProbeSummary(
        total=len(probe_results),
        passed=sum(1 for p in probe_results if p.status == "pass"),
        failed=sum(1 for p in probe_results if p.status in ("fail", "error")),
    )


def generate_summary(results: list[RequirementResult], overall_score: int, coverage_score: int) -> str:
    total = len(results)
    counts = {status: sum(1 for r in results if r.status == status)
              for status in ("pass", "partial", "fail", "not_tested")}
    parts = [f"{total - counts['not_tested']}/{total} requirements tested."]

    status_parts = []
    if counts["pass"]:
        status_parts.append(f"{counts['pass']} passed")
    if counts["partial"]:
        status_parts.append(f"{counts['partial']} partial")
    if counts["fail"]:
        status_parts.append(f"{counts['fail']} failed")
    if status_parts:
        parts.append(", ".join(status_parts) + ".")

    parts.append(f"Overall score: {overall_score}/100.")
    parts.append(f"Coverage: {coverage_score}%.")
    return " ".join(parts)
