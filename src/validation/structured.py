"""Schema-validated JSON requests with corrective retries."""

from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from src.ai.client import AIClient, parse_json_response
from src.errors import ReasoningResponseError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

CORRECTIVE_PROMPT = (
    "Your previous response was invalid JSON. Error: {error}\n\n"
    "Please output ONLY valid JSON matching the schema. No markdown, no explanation."
)


def describe_validation_error(error: ValidationError) -> str:
    issues = []
    for item in error.errors():
        loc = ".".join(str(part) for part in item.get("loc", ()))
        issues.append(f"{loc}: {item['msg']}" if loc else item["msg"])
    return "Schema validation failed: " + ", ".join(issues)


async def request_validated(
    llm: AIClient,
    system_prompt: str,
    user_prompt: str,
    model: type[M],
    *,
    attempts: int,
    failure_message: str,
    temperature: float = 0.2,
    max_tokens: int = 8000,
    timeout_ms: Optional[int] = None,
    label: str = "AI request",
    prepare: Optional[Callable[[dict], dict]] = None,
    retry_request_errors: bool = False,
) -> M:
    """Ask for JSON matching *model*, re-prompting with the last error.

    *prepare* may rewrite the decoded object before validation. Request
    errors (API failures, timeouts) are retried only when
    *retry_request_errors* is set; otherwise they propagate.

    Raises ReasoningResponseError("{failure_message} after N attempts: ...").
    """
    last_error: Optional[str] = None
    for attempt in range(attempts):
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        if attempt > 0 and last_error:
            messages.append({"role": "user", "content": CORRECTIVE_PROMPT.format(error=last_error)})

        try:
            raw = await llm.chat(
                messages, temperature=temperature, max_tokens=max_tokens,
                timeout_ms=timeout_ms, label=label,
            )
        except Exception as e:
            if not retry_request_errors:
                raise
            last_error = str(e)
            logger.warning("%s attempt %d/%d failed: %s", label, attempt + 1, attempts, e)
            continue

        try:
            data = parse_json_response(raw)
            if prepare is not None and isinstance(data, dict):
                data = prepare(data)
            return model.model_validate(data)
        except ValidationError as e:
            last_error = describe_validation_error(e)
        except (ValueError, TypeError) as e:
            last_error = str(e)
        logger.warning("%s attempt %d/%d rejected: %s", label, attempt + 1, attempts, last_error)

    raise ReasoningResponseError(f"{failure_message} after {attempts} attempts: {last_error}", attempts)
