"""Cross-validation: judge the execution evidence against every requirement."""

from __future__ import annotations

import logging

from src.ai.client import AIClient, llm_timeout_ms
from src.ai.prompts.cross_validation import (
    CROSS_VALIDATION_SYSTEM_PROMPT,
    build_cross_validation_prompt,
)
from src.models.test_result import TestExecutionSummary
from src.models.validation import (
    CrossValidationResults,
    Requirement,
    RequirementResult,
    RubricCriterion,
)

from .structured import request_validated

logger = logging.getLogger(__name__)

CROSS_VALIDATION_ATTEMPTS = 3
CROSS_VALIDATION_MAX_TOKENS = 8000
NOT_COVERED_REASONING = "Requirement was not covered by test execution"


def not_tested_result(requirement_id: str) -> RequirementResult:
    return RequirementResult(
        requirement_id=requirement_id,
        status="not_tested",
        score=0,
        evidence=[],
        reasoning=NOT_COVERED_REASONING,
    )


def align_results(
    requirements: list[Requirement], results: list[RequirementResult],
) -> list[RequirementResult]:
    """One result per requirement, in requirement order. Unknown IDs are dropped."""
    by_id = {r.requirement_id: r for r in results}
    return [by_id.get(req.id) or not_tested_result(req.id) for req in requirements]


async def cross_validate(
    requirements: list[Requirement],
    criteria: list[RubricCriterion],
    summary: TestExecutionSummary,
    llm: AIClient,
) -> list[RequirementResult]:
    """Return exactly one RequirementResult per requirement.

    Up to three attempts, each bounded by CROSS_VALIDATION_TIMEOUT_MS
    (falling back to LLM_TIMEOUT_MS). Raises ReasoningResponseError once
    they are exhausted.
    """
    response = await request_validated(
        llm,
        CROSS_VALIDATION_SYSTEM_PROMPT,
        build_cross_validation_prompt(requirements, criteria, summary),
        CrossValidationResults,
        attempts=CROSS_VALIDATION_ATTEMPTS,
        failure_message="Failed to cross-validate",
        temperature=0.2,
        max_tokens=CROSS_VALIDATION_MAX_TOKENS,
        timeout_ms=llm_timeout_ms("CROSS_VALIDATION_TIMEOUT_MS"),
        label="Cross-validation request",
        retry_request_errors=True,
    )
    returned = {r.requirement_id for r in response.results}
    missing = sum(1 for req in requirements if req.id not in returned)
    results = align_results(requirements, response.results)
    if missing:
        logger.info("Backfilled %d requirement(s) missing from the cross-validation response", missing)
    return results
