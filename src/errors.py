"""Exception hierarchy for the validation engine."""

from __future__ import annotations

from typing import Any, Optional


class ValidationEngineError(Exception):
    """Base exception for all validation engine errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class DocumentParseError(ValidationEngineError):
    """Raised when a specification document cannot be read."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message)
        self.file_path = file_path


class ReasoningResponseError(ValidationEngineError):
    """Raised when the reasoning service never returned a usable response."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class OperationTimeoutError(ValidationEngineError):
    """Raised when a bounded operation exceeds its deadline."""

    def __init__(self, label: str, timeout_ms: int):
        super().__init__(f"{label} timed out after {timeout_ms}ms")
        self.label = label
        self.timeout_ms = timeout_ms


class ActionError(ValidationEngineError):
    """Raised when an agent action cannot be carried out."""

    def __init__(self, message: str, action_type: Optional[str] = None):
        super().__init__(message)
        self.action_type = action_type


class PhaseError(ValidationEngineError):
    """A phase-fatal error, tagged with the phase that raised it."""

    def __init__(self, phase: str, cause: BaseException):
        super().__init__(str(cause))
        self.phase = phase
        self.cause = cause
