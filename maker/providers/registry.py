"""Provider resolution and TOML configuration loader.

Resolves the ``provider`` setting of a MakerConfig (a tag string or a
ready-made oracle object) into one concrete oracle, and loads MakerConfig
values from defaults.toml or a user-supplied TOML file.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from maker.providers.base import Oracle
from maker.providers.litellm_provider import LiteLLMProvider
from maker.schemas.config import (
    AzureConfig,
    DecompositionConfig,
    MakerConfig,
    ProviderConfig,
    RedFlagConfig,
    SynthesisConfig,
    VotingConfig,
)

logger = logging.getLogger(__name__)

# Default config directory relative to the maker package
_CONFIG_DIR = Path(__file__).parent.parent / "config"

# Provider tag → (LiteLLM model prefix, default API key env var)
PROVIDERS: dict[str, tuple[str, str]] = {
    "openai": ("openai", "OPENAI_API_KEY"),
    "anthropic": ("anthropic", "ANTHROPIC_API_KEY"),
    "azure": ("azure", "AZURE_API_KEY"),
    "litellm": ("", ""),
}


def _routed_model(prefix: str, model: str) -> str:
    """Prefix a bare model name with its LiteLLM provider route."""
    if not prefix or model.startswith(f"{prefix}/"):
        return model
    return f"{prefix}/{model}"


def build_provider_config(config: MakerConfig) -> ProviderConfig:
    """Translate a tag-based MakerConfig into LiteLLM connection settings.

    Raises:
        ValueError: If the provider tag is unknown or Azure settings are
            missing.
    """
    tag = str(config.provider).lower()
    if tag not in PROVIDERS:
        raise ValueError(
            f"Unknown provider: {config.provider}. "
            f"Available: {', '.join(sorted(PROVIDERS))}"
        )

    prefix, default_env = PROVIDERS[tag]
    model = config.model
    api_base = config.base_url
    api_version = ""

    if tag == "azure":
        azure = config.azure
        if azure is None or not azure.endpoint or not azure.api_version:
            raise ValueError(
                "Azure provider requires azure.endpoint and azure.api_version configuration"
            )
        model = azure.deployment or config.model
        api_base = azure.endpoint
        api_version = azure.api_version

    return ProviderConfig(
        provider=tag,
        model=_routed_model(prefix, model),
        api_key=config.api_key,
        api_key_env=config.api_key_env or default_env,
        api_base=api_base,
        api_version=api_version,
        max_tokens=config.max_tokens,
    )


def create_provider(config: MakerConfig) -> Oracle:
    """Resolve ``config.provider`` into the oracle the pipeline will use.

    A provider object is used as-is; a tag string is turned into a
    LiteLLMProvider. Resolution happens once, at construction time.

    Raises:
        ValueError: If the provider is neither a known tag nor an object
            with an async ``complete`` method.
    """
    provider = config.provider
    if isinstance(provider, str):
        provider_config = build_provider_config(config)
        logger.info(
            "Using %s provider (model=%s)", provider_config.provider, provider_config.model
        )
        return LiteLLMProvider(provider_config)

    if isinstance(provider, Oracle):
        return provider

    raise ValueError(f"Unknown provider: {provider!r}")


def load_maker_config(config_path: Path | None = None) -> MakerConfig:
    """Load a MakerConfig from a TOML file.

    Args:
        config_path: Path to a TOML file. Defaults to maker/config/defaults.toml.

    Returns:
        MakerConfig with values from the file and defaults for the rest.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If a section is malformed or a value is invalid.
    """
    path = config_path or _CONFIG_DIR / "defaults.toml"
    if not path.exists():
        raise FileNotFoundError(f"Maker config not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    sections: dict[str, dict] = {}
    for name in ("maker", "decomposition", "voting", "red_flags", "synthesis"):
        section = raw.get(name, {})
        if not isinstance(section, dict):
            raise ValueError(f"[{name}] in {path} must be a table")
        sections[name] = dict(section)

    maker_section = sections["maker"]
    azure_data = maker_section.pop("azure", None)

    return MakerConfig(
        **maker_section,
        azure=AzureConfig(**azure_data) if azure_data else None,
        decomposition=DecompositionConfig(**sections["decomposition"]),
        voting=VotingConfig(**sections["voting"]),
        red_flags=RedFlagConfig(**sections["red_flags"]),
        synthesis=SynthesisConfig(**sections["synthesis"]),
    )
