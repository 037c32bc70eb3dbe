"""Requirement extraction from a parsed specification document."""

from __future__ import annotations

import logging

from src.ai.client import AIClient
from src.ai.prompts.extraction import EXTRACTION_SYSTEM_PROMPT, build_extraction_prompt
from src.models.document import ParsedDocument
from src.models.validation import ExtractedRequirements, Requirement

from .structured import request_validated

logger = logging.getLogger(__name__)

EXTRACTION_ATTEMPTS = 2
EXTRACTION_MAX_TOKENS = 8000


def requirement_id(index: int) -> str:
    return f"REQ-{index + 1:03d}"


def _renumber(file_path: str):
    """Assign sequential IDs and pin every source location to the document."""

    def prepare(data: dict) -> dict:
        requirements = data.get("requirements")
        if not isinstance(requirements, list):
            return data
        for index, item in enumerate(requirements):
            if not isinstance(item, dict):
                continue
            item["id"] = requirement_id(index)
            location = item.get("sourceLocation") or item.get("source_location") or {}
            if not isinstance(location, dict):
                location = {}
            item.pop("source_location", None)
            item["sourceLocation"] = {**location, "file": file_path}
        return data

    return prepare


async def extract_requirements(document: ParsedDocument, llm: AIClient) -> list[Requirement]:
    """Extract requirements with up to two attempts.

    Raises ReasoningResponseError when neither attempt yields valid JSON.
    """
    prompt = build_extraction_prompt(document.file_path, document.raw_content, document.sections)
    extracted = await request_validated(
        llm,
        EXTRACTION_SYSTEM_PROMPT,
        prompt,
        ExtractedRequirements,
        attempts=EXTRACTION_ATTEMPTS,
        failure_message="Failed to extract requirements",
        temperature=0.2,
        max_tokens=EXTRACTION_MAX_TOKENS,
        label="Requirement extraction",
        prepare=_renumber(document.file_path),
    )
    logger.info("Extracted %d requirements from %s", len(extracted.requirements), document.file_path)
    return extracted.requirements
