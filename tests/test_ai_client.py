"""Tests for AI client."""

import asyncio
import os
from unittest.mock import AsyncMock, Mock, patch

import pytest

from src.ai.client import (
    AIClient,
    _to_api_messages,
    extract_json,
    llm_timeout_ms,
    parse_json_response,
    set_debug_dir,
)
from src.errors import OperationTimeoutError


def _response(text: str, stop_reason: str = "end_turn") -> Mock:
    block = Mock()
    block.type = "text"
    block.text = text
    response = Mock()
    response.content = [block]
    response.stop_reason = stop_reason
    return response


class TestAIClientInit:
    """Tests for AIClient construction."""

    def test_init_requires_api_key(self):
        """Test AIClient raises error when API key is missing."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(EnvironmentError, match="ANTHROPIC_API_KEY"):
                AIClient()

    @patch("anthropic.AsyncAnthropic")
    def test_init_with_api_key(self, mock_anthropic):
        """Test AIClient initializes with valid API key."""
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}, clear=True):
            client = AIClient()
        assert client.model == "claude-sonnet-4-20250514"
        assert client.max_tokens == 8000
        assert client.timeout_ms == 90000
        assert client.call_count == 0
        mock_anthropic.assert_called_once()

    @patch("anthropic.AsyncAnthropic")
    def test_timeout_from_environment(self, mock_anthropic):
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "k", "LLM_TIMEOUT_MS": "1234"}, clear=True):
            assert AIClient().timeout_ms == 1234


@pytest.mark.asyncio
class TestAIClientChat:
    """Tests for AIClient.chat."""

    @patch("anthropic.AsyncAnthropic")
    async def test_chat_splits_system_prompt(self, mock_anthropic_class, tmp_path):
        mock_client = Mock()
        mock_client.messages.create = AsyncMock(return_value=_response("hello"))
        mock_anthropic_class.return_value = mock_client
        set_debug_dir(tmp_path / "debug")

        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            client = AIClient()
        text = await client.chat(
            [{"role": "system", "content": "Be terse"}, {"role": "user", "content": "Hi"}],
            temperature=0.1,
            max_tokens=50,
        )

        assert text == "hello"
        assert client.call_count == 1
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["system"] == "Be terse"
        assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]
        assert kwargs["temperature"] == 0.1
        assert kwargs["max_tokens"] == 50
        assert list((tmp_path / "debug").glob("ai_call_*.log"))

    @patch("anthropic.AsyncAnthropic")
    async def test_chat_times_out_with_label(self, mock_anthropic_class, tmp_path):
        async def slow(**kwargs):
            await asyncio.sleep(1)
            return _response("late")

        mock_client = Mock()
        mock_client.messages.create = slow
        mock_anthropic_class.return_value = mock_client
        set_debug_dir(tmp_path / "debug")

        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            client = AIClient()
        with pytest.raises(OperationTimeoutError, match="Rubric generation timed out after 10ms"):
            await client.chat([{"role": "user", "content": "Hi"}], timeout_ms=10, label="Rubric generation")


class TestMessageConversion:
    """Tests for _to_api_messages."""

    def test_merges_consecutive_user_turns(self):
        system, messages = _to_api_messages([
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "first"},
            {"role": "user", "content": "second"},
        ])
        assert system == "sys"
        assert len(messages) == 1
        assert messages[0]["content"] == [
            {"type": "text", "text": "first"},
            {"type": "text", "text": "second"},
        ]

    def test_keeps_alternating_turns(self):
        _, messages = _to_api_messages([
            {"role": "user", "content": "a"},
            {"role": "assistant", "content": "b"},
            {"role": "user", "content": "c"},
        ])
        assert [m["role"] for m in messages] == ["user", "assistant", "user"]


class TestJsonHelpers:
    """Tests for JSON extraction from model output."""

    def test_extract_from_fence(self):
        assert extract_json('Sure!\n```json\n{"a": 1}\n```\nDone') == '{"a": 1}'

    def test_extract_from_prose(self):
        assert extract_json('Here you go: {"a": {"b": 2}} thanks') == '{"a": {"b": 2}}'

    def test_extract_passthrough(self):
        assert extract_json("no json here") == "no json here"

    def test_parse_tolerates_trailing_commas(self):
        assert parse_json_response('{"items": [1, 2,],}') == {"items": [1, 2]}

    def test_parse_raises_value_error(self, tmp_path):
        set_debug_dir(tmp_path / "debug")
        with pytest.raises(ValueError, match="invalid JSON"):
            parse_json_response("{not json at all")

    def test_llm_timeout_prefers_specific_variable(self):
        env = {"CROSS_VALIDATION_TIMEOUT_MS": "5000", "LLM_TIMEOUT_MS": "7000"}
        with patch.dict(os.environ, env, clear=True):
            assert llm_timeout_ms("CROSS_VALIDATION_TIMEOUT_MS") == 5000
            assert llm_timeout_ms() == 7000
        with patch.dict(os.environ, {}, clear=True):
            assert llm_timeout_ms("CROSS_VALIDATION_TIMEOUT_MS") == 90000
