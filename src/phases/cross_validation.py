"""Phase 7: cross-validation of execution evidence against requirements."""

from __future__ import annotations

import logging
from typing import Optional

from src.ai.client import AIClient
from src.models.test_result import TestExecutionSummary
from src.models.validation import Requirement, RequirementResult, Rubric
from src.validation.cross_validator import cross_validate
from src.validation.events import ProgressCallback, emit, emit_log, emit_phase_complete, emit_phase_start

logger = logging.getLogger(__name__)

PHASE = "cross_validation"


async def run_cross_validation_phase(
    requirements: list[Requirement],
    rubric: Rubric,
    summary: TestExecutionSummary,
    llm: AIClient,
    on_progress: Optional[ProgressCallback] = None,
) -> list[RequirementResult]:
    logger.info("--- Stage 7: Cross-validation ---")
    emit_phase_start(on_progress, PHASE)
    emit_log(on_progress, "Cross-validating results against requirements...")

    results = await cross_validate(requirements, rubric.criteria, summary, llm)

    for i, result in enumerate(results):
        emit(on_progress, "requirement_validated", result=result.to_json_dict(), index=i, total=len(results))

    emit_phase_complete(on_progress, PHASE)
    return results
