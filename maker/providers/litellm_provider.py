"""LiteLLM adapter implementing the ModelProvider interface.

Routes completion requests to any LLM provider via LiteLLM's unified API.
Handles JSON-mode requests, JSON extraction from the reply, token usage
mapping, timeouts, and retry with exponential backoff.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from typing import Any

import litellm

# Suppress LiteLLM's "Give Feedback / Get Help" and "Provider List" banners
litellm.suppress_debug_info = True

from maker.providers.base import ModelProvider
from maker.schemas.config import ProviderConfig
from maker.schemas.messages import (
    CompletionRequest,
    CompletionResponse,
    ResponseFormat,
    Role,
    TokenUsage,
)

logger = logging.getLogger(__name__)

# Fenced ```json ... ``` block
_JSON_BLOCK_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)

# Outermost {...} or [...] span
_JSON_SPAN_RE = re.compile(r"(\{.*\}|\[.*\])", re.DOTALL)

_JSON_INSTRUCTION = "You must respond with valid JSON only. No other text."

# Max retries for transient failures
_MAX_RETRIES = 3
_BASE_BACKOFF = 1.0  # seconds


def _short_error_reason(error: Exception | None) -> str:
    """Extract a short, user-friendly reason from a LiteLLM error."""
    error_str = str(error).lower()
    if "rate" in error_str or "429" in error_str:
        return "rate limit"
    if "overloaded" in error_str or "529" in error_str:
        return "overloaded"
    if "timeout" in error_str or isinstance(error, TimeoutError):
        return "timeout"
    if "503" in error_str or "unavailable" in error_str:
        return "service unavailable"
    if "500" in error_str or "internal" in error_str:
        return "server error"
    if "connection" in error_str:
        return "connection error"
    return str(error)[:80]


def extract_json_text(text: str) -> str:
    """Pull the JSON part out of a reply that may wrap it in prose or fences."""
    block = _JSON_BLOCK_RE.search(text)
    if block:
        return block.group(1).strip()
    span = _JSON_SPAN_RE.search(text)
    if span:
        return span.group(1)
    return text


def parse_json_object(text: str) -> dict[str, Any] | None:
    """Decode a JSON object from model output, or None when there is none."""
    if not text:
        return None
    for candidate in (text, extract_json_text(text)):
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return None


class LiteLLMProvider(ModelProvider):
    """Universal oracle powered by LiteLLM.

    Routes calls to any provider (OpenAI, Anthropic, Azure OpenAI, ...)
    through litellm.acompletion().
    """

    def __init__(self, config: ProviderConfig) -> None:
        super().__init__(config)
        # Explicit key wins over the environment
        self._api_key = config.api_key or (
            os.environ.get(config.api_key_env, "") if config.api_key_env else ""
        )

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Send a completion request via LiteLLM.

        Args:
            request: Messages, temperature, length cap and output format.

        Returns:
            CompletionResponse with decoded JSON content when requested and
            available, otherwise the raw text.

        Raises:
            TimeoutError: If the call exceeds timeout after all retries.
            RuntimeError: If the call fails after all retries.
        """
        kwargs = self._build_completion_kwargs(request)
        response = await self._call_with_retry(kwargs)

        raw = self._extract_content(response)
        content: str | dict[str, Any] = raw
        if request.response_format == ResponseFormat.JSON_OBJECT:
            parsed = parse_json_object(raw)
            if parsed is not None:
                content = parsed
            else:
                logger.debug("JSON extraction failed for %s, using raw text", self.model_id)

        return CompletionResponse(
            content=content,
            raw=raw,
            usage=self._build_token_usage(response),
        )

    def _build_completion_kwargs(self, request: CompletionRequest) -> dict:
        """Build the kwargs dict for litellm.acompletion."""
        messages = [
            {"role": m.role.value, "content": m.content} for m in request.messages
        ]

        kwargs: dict = {
            "model": self._config.model,
            "messages": messages,
            "temperature": request.temperature,
            "max_tokens": request.max_tokens or self._config.max_tokens,
            "timeout": float(self._config.timeout),
        }

        if self._api_key:
            kwargs["api_key"] = self._api_key
        if self._config.api_base:
            kwargs["api_base"] = self._config.api_base
        if self._config.api_version:
            kwargs["api_version"] = self._config.api_version

        if request.response_format == ResponseFormat.JSON_OBJECT:
            kwargs["response_format"] = {"type": "json_object"}
            # Providers without a native JSON mode still need the instruction
            if messages and messages[0]["role"] == Role.SYSTEM.value:
                messages[0]["content"] = f"{messages[0]['content']}\n\n{_JSON_INSTRUCTION}"
            else:
                messages.insert(0, {"role": Role.SYSTEM.value, "content": _JSON_INSTRUCTION})

        return kwargs

    async def _call_with_retry(self, kwargs: dict) -> litellm.ModelResponse:
        """Call litellm.acompletion with exponential backoff retry.

        Retries on transient errors (rate limits, server errors, timeouts).
        Non-retryable errors (auth, invalid request) are raised immediately.

        Raises:
            TimeoutError: If all retries time out.
            RuntimeError: If all retries fail with non-timeout errors.
        """
        last_error: Exception | None = None

        for attempt in range(_MAX_RETRIES):
            try:
                return await litellm.acompletion(**kwargs)
            except TimeoutError:
                last_error = TimeoutError(
                    f"Model call timed out after {kwargs.get('timeout')}s "
                    f"(attempt {attempt + 1}/{_MAX_RETRIES})"
                )
            except litellm.AuthenticationError:
                raise RuntimeError(
                    f"Authentication failed for {self._config.model}. "
                    f"Check that {self._config.api_key_env or 'the API key'} is set correctly."
                ) from None
            except litellm.BadRequestError as e:
                raise RuntimeError(
                    f"Bad request to {self._config.model}: {e}"
                ) from e
            except (
                litellm.RateLimitError,
                litellm.ServiceUnavailableError,
                litellm.InternalServerError,
                litellm.APIConnectionError,
            ) as e:
                last_error = e

            if attempt < _MAX_RETRIES - 1:
                backoff = _BASE_BACKOFF * (2**attempt)
                logger.warning(
                    "Retry %d/%d for %s (%s, backoff: %.1fs)",
                    attempt + 1,
                    _MAX_RETRIES,
                    self._config.model,
                    _short_error_reason(last_error),
                    backoff,
                )
                await asyncio.sleep(backoff)

        if isinstance(last_error, TimeoutError):
            raise last_error
        raise RuntimeError(
            f"Model call to {self._config.model} failed after {_MAX_RETRIES} "
            f"retries: {last_error}"
        ) from last_error

    def _extract_content(self, response: litellm.ModelResponse) -> str:
        """Extract text content from a LiteLLM response."""
        if not response.choices:
            return ""
        message = response.choices[0].message
        return (message.content or "") if message else ""

    def _build_token_usage(self, response: litellm.ModelResponse) -> TokenUsage | None:
        """Build TokenUsage from the LiteLLM response usage data."""
        usage = getattr(response, "usage", None)
        if usage is None:
            return None
        prompt_tokens = getattr(usage, "prompt_tokens", 0) or 0
        completion_tokens = getattr(usage, "completion_tokens", 0) or 0
        total_tokens = getattr(usage, "total_tokens", 0) or (prompt_tokens + completion_tokens)
        return TokenUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
        )
