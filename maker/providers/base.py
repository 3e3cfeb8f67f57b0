"""Oracle interface for the MAKER pipeline.

Defines the single capability every pipeline component depends on: an
async ``complete(request)`` call. The pipeline never calls provider SDKs
directly; it only sees objects satisfying this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable

from maker.schemas.config import ProviderConfig
from maker.schemas.messages import CompletionRequest, CompletionResponse


@runtime_checkable
class Oracle(Protocol):
    """Anything that can complete a prompt.

    User-supplied providers only need this one coroutine method; they do not
    have to subclass ModelProvider.
    """

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Complete a chat request."""
        ...


class ModelProvider(ABC):
    """Base class for configured, network-backed oracles.

    Initialized from a ProviderConfig. Exposes identity and a single async
    complete() method that all providers must implement.
    """

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config

    # ── Identity ──────────────────────────────────────────────

    @property
    def provider_id(self) -> str:
        """Provider identifier (e.g. 'anthropic', 'openai', 'azure')."""
        return self._config.provider

    @property
    def model_id(self) -> str:
        """LiteLLM model identifier used for routing."""
        return self._config.model

    @property
    def config(self) -> ProviderConfig:
        """The full ProviderConfig backing this provider."""
        return self._config

    # ── Core interface ────────────────────────────────────────

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Send a completion request and return the parsed response.

        When ``request.response_format`` is ``json_object`` the provider
        should ask the model for JSON and return the decoded object as
        ``content``. If the reply cannot be decoded, ``content`` falls back
        to the raw text so callers can treat it as a format failure.

        Raises:
            TimeoutError: If the model call exceeds the timeout.
            RuntimeError: If the model call fails after all retries.
        """
