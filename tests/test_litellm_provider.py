"""Tests for maker.providers.litellm_provider — LiteLLM adapter."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from maker.providers.litellm_provider import (
    LiteLLMProvider,
    extract_json_text,
    parse_json_object,
)
from maker.schemas.config import ProviderConfig
from maker.schemas.messages import CompletionRequest, Message, ResponseFormat, Role

# Shorthand for the mock target
_ACOMP = "maker.providers.litellm_provider.litellm.acompletion"
_SLEEP = "maker.providers.litellm_provider.asyncio.sleep"


# ── Helpers ───────────────────────────────────────────────────


def _make_config(**overrides) -> ProviderConfig:
    """Create a ProviderConfig with sensible defaults."""
    defaults = {
        "provider": "openai",
        "model": "openai/gpt-4o-mini",
        "api_key_env": "OPENAI_API_KEY",
        "max_tokens": 1024,
        "timeout": 60,
    }
    defaults.update(overrides)
    return ProviderConfig(**defaults)


def _make_response(
    content: str | None = '{"answer": "Paris", "confidence": "high"}',
    prompt_tokens: int = 100,
    completion_tokens: int = 20,
) -> SimpleNamespace:
    """Build a mock LiteLLM ModelResponse-like object."""
    message = SimpleNamespace(content=content, tool_calls=None)
    choice = SimpleNamespace(message=message, finish_reason="stop", index=0)
    usage = SimpleNamespace(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
    )
    return SimpleNamespace(choices=[choice], usage=usage, model="gpt-4o-mini")


def _request(structured: bool = True, temperature: float = 0.0) -> CompletionRequest:
    return CompletionRequest.from_prompt(
        "Capital of France?", temperature=temperature, structured=structured,
    )


@pytest.fixture
def provider() -> LiteLLMProvider:
    with patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test"}):
        return LiteLLMProvider(_make_config())


# ── JSON extraction ───────────────────────────────────────────


class TestJsonExtraction:
    def test_plain_json(self):
        assert parse_json_object('{"answer": "Paris"}') == {"answer": "Paris"}

    def test_fenced_block(self):
        text = 'Sure!\n\n```json\n{"answer": "Paris"}\n```\n'
        assert extract_json_text(text) == '{"answer": "Paris"}'
        assert parse_json_object(text) == {"answer": "Paris"}

    def test_embedded_in_prose(self):
        text = 'The result is {"answer": "Paris", "confidence": "high"} as requested.'
        assert parse_json_object(text) == {"answer": "Paris", "confidence": "high"}

    def test_arrays_and_garbage_are_rejected(self):
        assert parse_json_object("[1, 2, 3]") is None
        assert parse_json_object("not json at all") is None
        assert parse_json_object("") is None


# ── LiteLLMProvider init ──────────────────────────────────────


class TestLiteLLMProviderInit:
    def test_init_from_config(self, provider):
        assert provider.model_id == "openai/gpt-4o-mini"
        assert provider.provider_id == "openai"
        assert provider._api_key == "sk-test"

    def test_explicit_key_wins_over_env(self):
        with patch.dict("os.environ", {"OPENAI_API_KEY": "sk-env"}):
            provider = LiteLLMProvider(_make_config(api_key="sk-explicit"))
        assert provider._api_key == "sk-explicit"

    def test_missing_api_key_is_empty_string(self):
        provider = LiteLLMProvider(_make_config(api_key_env="NONEXISTENT_KEY_12345"))
        assert provider._api_key == ""


# ── LiteLLMProvider.complete() ────────────────────────────────


class TestLiteLLMProviderComplete:
    @pytest.mark.asyncio()
    async def test_structured_completion(self, provider):
        with patch(_ACOMP, new_callable=AsyncMock) as mock:
            mock.return_value = _make_response()
            result = await provider.complete(_request())

        assert result.content == {"answer": "Paris", "confidence": "high"}
        assert result.raw == '{"answer": "Paris", "confidence": "high"}'
        assert result.usage is not None
        assert result.usage.prompt_tokens == 100
        assert result.usage.completion_tokens == 20
        assert result.usage.total_tokens == 120

    @pytest.mark.asyncio()
    async def test_json_mode_kwargs(self, provider):
        with patch(_ACOMP, new_callable=AsyncMock) as mock:
            mock.return_value = _make_response()
            await provider.complete(_request(temperature=0.1))

        kwargs = mock.call_args[1]
        assert kwargs["model"] == "openai/gpt-4o-mini"
        assert kwargs["temperature"] == 0.1
        assert kwargs["max_tokens"] == 1024
        assert kwargs["timeout"] == 60.0
        assert kwargs["api_key"] == "sk-test"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0]["role"] == "system"
        assert "valid JSON" in kwargs["messages"][0]["content"]
        assert kwargs["messages"][1] == {"role": "user", "content": "Capital of France?"}

    @pytest.mark.asyncio()
    async def test_json_instruction_appended_to_existing_system_message(self, provider):
        request = CompletionRequest(
            messages=[
                Message(role=Role.SYSTEM, content="You are terse."),
                Message(role=Role.USER, content="Hi"),
            ],
            response_format=ResponseFormat.JSON_OBJECT,
        )
        with patch(_ACOMP, new_callable=AsyncMock) as mock:
            mock.return_value = _make_response()
            await provider.complete(request)

        messages = mock.call_args[1]["messages"]
        assert len(messages) == 2
        assert messages[0]["content"].startswith("You are terse.")
        assert "valid JSON" in messages[0]["content"]

    @pytest.mark.asyncio()
    async def test_text_mode(self, provider):
        with patch(_ACOMP, new_callable=AsyncMock) as mock:
            mock.return_value = _make_response(content="Paris")
            result = await provider.complete(_request(structured=False))

        assert result.content == "Paris"
        kwargs = mock.call_args[1]
        assert "response_format" not in kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "Capital of France?"}]

    @pytest.mark.asyncio()
    async def test_invalid_json_falls_back_to_raw_text(self, provider):
        with patch(_ACOMP, new_callable=AsyncMock) as mock:
            mock.return_value = _make_response(content="I think it is Paris.")
            result = await provider.complete(_request())

        assert result.content == "I think it is Paris."

    @pytest.mark.asyncio()
    async def test_request_max_tokens_overrides_config(self, provider):
        request = _request().model_copy(update={"max_tokens": 64})
        with patch(_ACOMP, new_callable=AsyncMock) as mock:
            mock.return_value = _make_response()
            await provider.complete(request)

        assert mock.call_args[1]["max_tokens"] == 64

    @pytest.mark.asyncio()
    async def test_azure_settings_passed(self):
        config = _make_config(
            provider="azure", model="azure/my-deployment",
            api_key_env="AZURE_API_KEY",
            api_base="https://x.openai.azure.com/",
            api_version="2024-02-15-preview",
        )
        with patch.dict("os.environ", {"AZURE_API_KEY": "az-key"}):
            provider = LiteLLMProvider(config)

        with patch(_ACOMP, new_callable=AsyncMock) as mock:
            mock.return_value = _make_response()
            await provider.complete(_request())

        kwargs = mock.call_args[1]
        assert kwargs["api_base"] == "https://x.openai.azure.com/"
        assert kwargs["api_version"] == "2024-02-15-preview"
        assert kwargs["api_key"] == "az-key"

    @pytest.mark.asyncio()
    async def test_api_base_not_passed_when_empty(self, provider):
        with patch(_ACOMP, new_callable=AsyncMock) as mock:
            mock.return_value = _make_response()
            await provider.complete(_request())

        assert "api_base" not in mock.call_args[1]
        assert "api_version" not in mock.call_args[1]

    @pytest.mark.asyncio()
    async def test_empty_response_content(self, provider):
        with patch(_ACOMP, new_callable=AsyncMock) as mock:
            mock.return_value = _make_response(content=None)
            result = await provider.complete(_request())

        assert result.content == ""
        assert result.raw == ""

    @pytest.mark.asyncio()
    async def test_missing_usage(self, provider):
        response = _make_response()
        response.usage = None
        with patch(_ACOMP, new_callable=AsyncMock) as mock:
            mock.return_value = response
            result = await provider.complete(_request())

        assert result.usage is None


# ── Retry ─────────────────────────────────────────────────────


class TestLiteLLMProviderRetry:
    @pytest.mark.asyncio()
    async def test_retries_on_rate_limit(self, provider):
        import litellm as litellm_mod

        mock_acomp = AsyncMock(side_effect=[
            litellm_mod.RateLimitError(
                message="rate limited", model="test",
                llm_provider="test",
            ),
            _make_response(),
        ])
        with (
            patch(_ACOMP, mock_acomp),
            patch(_SLEEP, new_callable=AsyncMock) as mock_sleep,
        ):
            result = await provider.complete(_request())

        assert result.content["answer"] == "Paris"
        assert mock_acomp.call_count == 2
        mock_sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio()
    async def test_retries_on_server_error(self, provider):
        import litellm as litellm_mod

        mock_acomp = AsyncMock(side_effect=[
            litellm_mod.InternalServerError(
                message="server error", model="test",
                llm_provider="test",
            ),
            litellm_mod.ServiceUnavailableError(
                message="unavailable", model="test",
                llm_provider="test",
            ),
            _make_response(),
        ])
        with (
            patch(_ACOMP, mock_acomp),
            patch(_SLEEP, new_callable=AsyncMock) as mock_sleep,
        ):
            await provider.complete(_request())

        assert mock_acomp.call_count == 3
        assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio()
    async def test_auth_error_not_retried(self, provider):
        import litellm as litellm_mod

        mock_acomp = AsyncMock(
            side_effect=litellm_mod.AuthenticationError(
                message="bad key", model="test",
                llm_provider="test",
            ),
        )
        with patch(_ACOMP, mock_acomp), pytest.raises(
            RuntimeError, match="Authentication failed",
        ):
            await provider.complete(_request())

        assert mock_acomp.call_count == 1

    @pytest.mark.asyncio()
    async def test_bad_request_not_retried(self, provider):
        import litellm as litellm_mod

        mock_acomp = AsyncMock(
            side_effect=litellm_mod.BadRequestError(
                message="invalid params", model="test",
                llm_provider="test",
            ),
        )
        with patch(_ACOMP, mock_acomp), pytest.raises(
            RuntimeError, match="Bad request",
        ):
            await provider.complete(_request())

        assert mock_acomp.call_count == 1

    @pytest.mark.asyncio()
    async def test_all_retries_exhausted(self, provider):
        import litellm as litellm_mod

        mock_acomp = AsyncMock(
            side_effect=litellm_mod.RateLimitError(
                message="rate limited", model="test",
                llm_provider="test",
            ),
        )
        with (
            patch(_ACOMP, mock_acomp),
            patch(_SLEEP, new_callable=AsyncMock),
            pytest.raises(RuntimeError, match="failed after 3"),
        ):
            await provider.complete(_request())

        assert mock_acomp.call_count == 3

    @pytest.mark.asyncio()
    async def test_timeout_raises_timeout_error(self, provider):
        mock_acomp = AsyncMock(side_effect=TimeoutError())
        with (
            patch(_ACOMP, mock_acomp),
            patch(_SLEEP, new_callable=AsyncMock),
            pytest.raises(TimeoutError, match="timed out"),
        ):
            await provider.complete(_request())

        assert mock_acomp.call_count == 3


class TestRoundTripThroughJson:
    @pytest.mark.asyncio()
    async def test_fenced_reply_is_decoded(self, provider):
        payload = {"final_answer": "Berlin", "confidence": "medium"}
        reply = f"```json\n{json.dumps(payload)}\n```"
        with patch(_ACOMP, new_callable=AsyncMock) as mock:
            mock.return_value = _make_response(content=reply)
            result = await provider.complete(_request())

        assert result.content == payload
