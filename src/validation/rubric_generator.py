"""Rubric generation: one weighted criterion per requirement."""

from __future__ import annotations

import logging

from src.ai.client import AIClient
from src.ai.prompts.rubric import RUBRIC_SYSTEM_PROMPT, build_rubric_prompt
from src.models.validation import Requirement, Rubric

from .structured import request_validated

logger = logging.getLogger(__name__)

RUBRIC_ATTEMPTS = 2
RUBRIC_MAX_TOKENS = 4000


async def generate_rubric(requirements: list[Requirement], llm: AIClient) -> Rubric:
    rubric = await request_validated(
        llm,
        RUBRIC_SYSTEM_PROMPT,
        build_rubric_prompt(requirements),
        Rubric,
        attempts=RUBRIC_ATTEMPTS,
        failure_message="Failed to generate rubric",
        temperature=0.2,
        max_tokens=RUBRIC_MAX_TOKENS,
        label="Rubric generation",
    )
    # The model's own maxScore is not trusted.
    rubric.max_score = sum(c.weight for c in rubric.criteria)
    logger.info("Generated rubric with %d criteria (max score %s)", len(rubric.criteria), rubric.max_score)
    return rubric
