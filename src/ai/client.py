"""Claude API client wrapper for the validation engine."""

from __future__ import annotations

import json
import logging
import os
import re
import time
from pathlib import Path
from typing import Any, Optional

import anthropic

from src.utils.async_utils import with_timeout

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_LLM_TIMEOUT_MS = 90000

Message = dict[str, Any]

# Debug directory, set by the orchestrator at startup
_debug_dir: Path | None = None

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def set_debug_dir(path: Path) -> None:
    """Set the directory for dumping AI exchanges and parse failures."""
    global _debug_dir
    _debug_dir = path
    _debug_dir.mkdir(parents=True, exist_ok=True)


def _get_debug_dir() -> Path:
    global _debug_dir
    if _debug_dir is None:
        _debug_dir = Path(".ui-qa-runs") / "debug"
    _debug_dir.mkdir(parents=True, exist_ok=True)
    return _debug_dir


def llm_timeout_ms(env_var: str | None = None) -> int:
    """Resolve a request timeout from *env_var*, then LLM_TIMEOUT_MS, then the default."""
    for name in (env_var, "LLM_TIMEOUT_MS"):
        if not name:
            continue
        raw = os.environ.get(name)
        if raw:
            try:
                return int(raw)
            except ValueError:
                logger.warning("Ignoring non-integer %s=%r", name, raw)
    return DEFAULT_LLM_TIMEOUT_MS


def extract_json(text: str) -> str:
    """Pull the JSON payload out of a response that may wrap it in prose or fences."""
    fenced = _FENCED_JSON_RE.search(text)
    if fenced:
        return fenced.group(1).strip()
    match = _JSON_OBJECT_RE.search(text)
    if match:
        return match.group(0)
    return text


def image_block(image_base64: str, media_type: str = "image/png") -> dict[str, Any]:
    """Build an image content block for a user message."""
    return {
        "type": "image",
        "source": {"type": "base64", "media_type": media_type, "data": image_base64},
    }


def text_block(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def _content_blocks(content: Any) -> list[dict[str, Any]]:
    if isinstance(content, str):
        return [text_block(content)]
    return list(content)


def _to_api_messages(messages: list[Message]) -> tuple[str, list[Message]]:
    """Split system messages out and merge consecutive same-role turns."""
    system_parts: list[str] = []
    merged: list[Message] = []
    for message in messages:
        role = message["role"]
        content = message["content"]
        if role == "system":
            system_parts.append(content if isinstance(content, str) else json.dumps(content))
            continue
        if merged and merged[-1]["role"] == role:
            merged[-1]["content"] = _content_blocks(merged[-1]["content"]) + _content_blocks(content)
        else:
            merged.append({"role": role, "content": content})
    return "\n\n".join(system_parts), merged


class AIClient:
    """Wrapper around the Anthropic Claude API.

    The validation phases only depend on :meth:`chat`, which takes a list of
    ``{"role", "content"}`` messages and returns the response text.
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 8000,
        timeout_ms: Optional[int] = None,
    ):
        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise EnvironmentError(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Please set it before running a validation."
            )
        self.client = anthropic.AsyncAnthropic(api_key=api_key, timeout=600.0)
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_ms = timeout_ms if timeout_ms is not None else llm_timeout_ms()
        self._call_count = 0

    @property
    def call_count(self) -> int:
        return self._call_count

    async def chat(
        self,
        messages: list[Message],
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        timeout_ms: Optional[int] = None,
        label: str = "AI request",
    ) -> str:
        """Send a conversation to Claude and return the text response."""
        self._call_count += 1
        call_number = self._call_count
        tokens = max_tokens or self.max_tokens
        system_prompt, api_messages = _to_api_messages(messages)
        logger.debug(
            "Calling AI (call #%d, model=%s, max_tokens=%d, messages=%d)",
            call_number, self.model, tokens, len(api_messages),
        )

        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": tokens,
            "temperature": temperature,
            "messages": api_messages,
        }
        if system_prompt:
            request["system"] = system_prompt

        try:
            call_start = time.time()
            response = await with_timeout(
                self.client.messages.create(**request),
                self.timeout_ms if timeout_ms is None else timeout_ms,
                label,
            )
            text = "".join(
                block.text for block in response.content if getattr(block, "type", "text") == "text"
            )
            logger.debug("AI response received in %.1fs (%d chars)",
                         time.time() - call_start, len(text))
            if response.stop_reason == "max_tokens":
                logger.warning(
                    "AI response was truncated at max_tokens=%d; JSON may be incomplete.",
                    tokens,
                )
            self._save_exchange_log(call_number, system_prompt, api_messages, text, None)
            return text
        except anthropic.APIError as e:
            logger.error("Claude API error: %s", e)
            self._save_exchange_log(call_number, system_prompt, api_messages, "", str(e))
            raise

    # ------------------------------------------------------------------
    # Debug logging
    # ------------------------------------------------------------------

    @staticmethod
    def _save_exchange_log(
        call_number: int,
        system_prompt: str,
        messages: list[Message],
        response_text: str,
        error: str | None,
    ) -> None:
        """Write the full exchange to the debug directory. Never raises."""
        try:
            debug_dir = _get_debug_dir()
            ts = time.strftime("%Y%m%d_%H%M%S")
            log_file = debug_dir / f"ai_call_{ts}_{call_number:03d}.log"
            with open(log_file, "w", encoding="utf-8") as f:
                f.write(f"=== AI CALL #{call_number} at {time.strftime('%Y-%m-%d %H:%M:%S')} ===\n\n")
                f.write(f"=== SYSTEM PROMPT ({len(system_prompt)} chars) ===\n{system_prompt}\n")
                for i, message in enumerate(messages):
                    f.write(f"\n=== MESSAGE {i + 1} ({message['role']}) ===\n")
                    for block in _content_blocks(message["content"]):
                        if block.get("type") == "image":
                            f.write("[IMAGE ATTACHED]\n")
                        else:
                            f.write(block.get("text", ""))
                            f.write("\n")
                f.write(f"\n=== RESPONSE ({len(response_text)} chars) ===\n")
                f.write(response_text or "(empty)")
                if error:
                    f.write(f"\n\n=== ERROR ===\n{error}\n")
            logger.debug("AI exchange logged to %s", log_file)
        except Exception as log_err:
            logger.debug("Failed to save AI exchange log: %s", log_err)


# ----------------------------------------------------------------------
# JSON parsing with LLM quirk handling
# ----------------------------------------------------------------------


def _escape_control_chars(s: str) -> str:
    return "".join(
        f"\\u{ord(ch):04x}" if ord(ch) < 0x20 and ch not in ("\n", "\r") else ch
        for ch in s
    )


def parse_json_response(text: str) -> Any:
    """Parse a reasoning-service response as JSON.

    Strips code fences and surrounding prose, then retries once with
    comments, trailing commas and raw control characters cleaned up.
    Raises ValueError when nothing parseable remains.
    """
    candidate = extract_json(text.strip())
    try:
        return json.loads(candidate, strict=False)
    except json.JSONDecodeError:
        pass

    cleaned = re.sub(r"(?<=[\s,\]\}])//[^\n]*", "", candidate)
    cleaned = re.sub(r"^//[^\n]*", "", cleaned, flags=re.MULTILINE)
    cleaned = re.sub(r",\s*([}\]])", r"\1", cleaned)
    cleaned = _escape_control_chars(cleaned)
    first, last = cleaned.find("{"), cleaned.rfind("}")
    if first != -1 and last > first:
        cleaned = cleaned[first:last + 1]

    try:
        return json.loads(cleaned, strict=False)
    except json.JSONDecodeError as e:
        _save_parse_failure(text, cleaned, str(e))
        raise ValueError(f"AI returned invalid JSON: {e}") from e


def _save_parse_failure(raw_response: str, cleaned: str, error: str) -> None:
    try:
        debug_dir = _get_debug_dir()
        fail_file = debug_dir / f"parse_failure_{time.strftime('%Y%m%d_%H%M%S')}.log"
        with open(fail_file, "w", encoding="utf-8") as f:
            f.write(f"=== JSON PARSE FAILURE ===\n\nError: {error}\n\n")
            f.write(f"=== CLEANED TEXT ({len(cleaned)} chars) ===\n{cleaned}\n\n")
            f.write(f"=== FULL RAW RESPONSE ({len(raw_response)} chars) ===\n{raw_response}")
        logger.debug("JSON parse failure details saved to %s", fail_file)
    except Exception as log_err:
        logger.debug("Failed to save parse failure log: %s", log_err)
