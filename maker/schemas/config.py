"""Configuration schemas for the MAKER pipeline.

One section per component (decomposition, voting, red flags, synthesis)
plus the top-level MakerConfig that also selects the oracle provider.
Values may be built in code or loaded from TOML via
``maker.providers.registry.load_maker_config``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, Field

from maker.schemas.voting import RedFlagResult


class DecompositionConfig(BaseModel):
    """Settings for question classification and decomposition."""

    enabled: bool = Field(default=True, description="Whether decomposition is enabled")
    max_sub_questions: int = Field(
        default=8, gt=0, description="Upper bound on sub-questions per plan"
    )
    classifier: Literal["auto"] | Callable[..., Any] = Field(
        default="auto",
        description=(
            "'auto' to classify with the oracle, or a callable "
            "(question, context) -> Classification (sync or async)"
        ),
    )
    prompt: str | None = Field(
        default=None,
        description="Custom decomposition template using {{ question }} and {{ context }}",
    )


class VotingConfig(BaseModel):
    """Settings for first-to-ahead-by-K voting."""

    k: int = Field(default=3, ge=1, description="Required lead over the runner-up")
    max_votes: int = Field(default=100, gt=0, description="Safety cutoff per sub-question")
    timeout: float | None = Field(
        default=None,
        gt=0,
        description=(
            "Wall-clock limit in seconds for one voting session; when it elapses "
            "sampling stops and the cutoff result is returned (None = no limit)"
        ),
    )
    samples: int = Field(
        default=5, ge=0, description="Deprecated: sample count for collect_votes()"
    )
    temperatures: list[float] | None = Field(
        default=None, description="Deprecated: temperature schedule for collect_votes()"
    )


class RedFlagConfig(BaseModel):
    """Settings for the red-flag admission filter."""

    max_tokens: int = Field(
        default=750, gt=0, description="Estimated-token ceiling (4 chars per token)"
    )
    min_chars: int = Field(default=5, ge=0, description="Minimum trimmed answer length")
    custom_validator: Callable[[str], RedFlagResult] | None = Field(
        default=None,
        description="Extra check run only when no built-in check fired",
    )


class SynthesisConfig(BaseModel):
    """Settings for merging sub-answers."""

    enabled: bool = Field(default=True, description="Whether to synthesize decomposed answers")
    language: str = Field(default="English", description="Language of the final answer")
    prompt: str | None = Field(
        default=None,
        description=(
            "Custom synthesis template using {{ question }}, {{ original_question }} "
            "(alias {{ originalQuestion }}), {{ answers }} and {{ language }}"
        ),
    )


class AzureConfig(BaseModel):
    """Azure OpenAI deployment settings."""

    endpoint: str = Field(description="Resource endpoint, e.g. https://x.openai.azure.com/")
    api_version: str = Field(description="API version, e.g. 2024-02-15-preview")
    deployment: str = Field(default="", description="Deployment name (empty = model name)")


class ProviderConfig(BaseModel):
    """Resolved connection settings for a LiteLLM-backed oracle.

    Built from a MakerConfig by ``maker.providers.registry.create_provider``.
    """

    provider: str = Field(description="Provider tag (e.g. 'openai', 'anthropic', 'azure')")
    model: str = Field(description="LiteLLM model identifier (e.g. 'anthropic/claude-...')")
    api_key_env: str = Field(default="", description="Environment variable holding the API key")
    api_key: str = Field(default="", description="Explicit API key (overrides api_key_env)")
    api_base: str = Field(default="", description="Custom API base URL (empty = provider default)")
    api_version: str = Field(default="", description="API version (Azure only)")
    max_tokens: int = Field(default=1024, gt=0, description="Default output-length cap")
    timeout: int = Field(default=120, gt=0, description="Transport timeout in seconds")


class MakerConfig(BaseModel):
    """Top-level configuration for a Maker instance."""

    provider: Any = Field(
        default="openai",
        description=(
            "Provider tag ('openai', 'anthropic', 'azure', 'litellm') or an "
            "object implementing async complete(request)"
        ),
    )
    api_key: str = Field(default="", description="API key (empty = read from api_key_env)")
    api_key_env: str = Field(
        default="", description="Environment variable holding the key (empty = provider default)"
    )
    model: str = Field(default="gpt-4o-mini", description="Model identifier")
    base_url: str = Field(default="", description="Custom API base URL (empty = provider default)")
    max_tokens: int = Field(
        default=1024, gt=0, description="Default output-length cap per oracle call"
    )
    azure: AzureConfig | None = Field(
        default=None, description="Required when provider is 'azure'"
    )

    decomposition: DecompositionConfig = Field(default_factory=DecompositionConfig)
    voting: VotingConfig = Field(default_factory=VotingConfig)
    red_flags: RedFlagConfig = Field(default_factory=RedFlagConfig)
    synthesis: SynthesisConfig = Field(default_factory=SynthesisConfig)
