"""Progress events: timestamped dicts handed to the caller's progress callback."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[dict[str, Any]], None]

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def emit(callback: Optional[ProgressCallback], event_type: str, **fields: Any) -> dict[str, Any]:
    """Stamp an event with its type and epoch-ms timestamp and deliver it.

    ``log`` events are also written to this module's logger. A failing
    callback never interrupts the run.
    """
    event = {"type": event_type, **fields, "timestamp": int(time.time() * 1000)}
    if event_type == "log":
        logger.log(_LOG_LEVELS.get(fields.get("level", "info"), logging.INFO), "%s", fields.get("message", ""))
    if callback is not None:
        try:
            callback(event)
        except Exception as e:
            logger.debug("Progress callback failed for %s: %s", event_type, e)
    return event


def emit_log(callback: Optional[ProgressCallback], message: str, level: str = "info") -> None:
    emit(callback, "log", message=message, level=level)


def emit_phase_start(callback: Optional[ProgressCallback], phase: str) -> None:
    emit(callback, "validation_phase_start", phase=phase)


def emit_phase_complete(callback: Optional[ProgressCallback], phase: str) -> None:
    emit(callback, "validation_phase_complete", phase=phase)
