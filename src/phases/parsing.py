"""Phase 1: read the specification document."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from src.models.document import ParsedDocument
from src.parsers.document import parse_document
from src.validation.events import ProgressCallback, emit_log, emit_phase_complete, emit_phase_start

logger = logging.getLogger(__name__)

PHASE = "parsing"


async def run_parsing_phase(spec_file: str | Path, on_progress: Optional[ProgressCallback] = None) -> ParsedDocument:
    logger.info("--- Stage 1: Parsing ---")
    emit_phase_start(on_progress, PHASE)
    emit_log(on_progress, f"Parsing specification: {spec_file}")

    document = parse_document(spec_file)
    emit_log(
        on_progress,
        f"Parsed {len(document.sections)} sections from {document.metadata.line_count} lines",
    )

    emit_phase_complete(on_progress, PHASE)
    return document
