"""Phase 2: requirement extraction."""

from __future__ import annotations

import logging
from typing import Optional

from src.ai.client import AIClient
from src.models.document import ParsedDocument
from src.models.validation import Requirement
from src.validation.events import ProgressCallback, emit, emit_log, emit_phase_complete, emit_phase_start
from src.validation.extractor import extract_requirements

logger = logging.getLogger(__name__)

PHASE = "extraction"


async def run_extraction_phase(
    document: ParsedDocument, llm: AIClient, on_progress: Optional[ProgressCallback] = None,
) -> list[Requirement]:
    logger.info("--- Stage 2: Extraction ---")
    emit_phase_start(on_progress, PHASE)
    emit_log(on_progress, "Extracting requirements via LLM...")

    requirements = await extract_requirements(document, llm)

    emit(
        on_progress, "requirements_extracted",
        requirements=[r.to_json_dict() for r in requirements],
        totalCount=len(requirements),
    )
    emit_log(on_progress, f"Extracted {len(requirements)} requirements")
    emit_phase_complete(on_progress, PHASE)
    return requirements
