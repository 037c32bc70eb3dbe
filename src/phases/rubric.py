"""Phase 3: rubric generation."""

from __future__ import annotations

import logging
from typing import Optional

from src.ai.client import AIClient
from src.models.validation import Requirement, Rubric
from src.validation.events import ProgressCallback, emit, emit_log, emit_phase_complete, emit_phase_start
from src.validation.rubric_generator import generate_rubric

logger = logging.getLogger(__name__)

PHASE = "rubric"


async def run_rubric_phase(
    requirements: list[Requirement], llm: AIClient, on_progress: Optional[ProgressCallback] = None,
) -> Rubric:
    logger.info("--- Stage 3: Rubric ---")
    emit_phase_start(on_progress, PHASE)
    emit_log(on_progress, "Generating test rubric...")

    rubric = await generate_rubric(requirements, llm)

    emit(on_progress, "rubric_generated", rubric=rubric.to_json_dict())
    emit_log(
        on_progress,
        f"Generated rubric with {len(rubric.criteria)} criteria (max score: {rubric.max_score:g})",
    )
    emit_phase_complete(on_progress, PHASE)
    return rubric
