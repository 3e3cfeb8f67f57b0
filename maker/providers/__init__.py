"""MAKER provider layer.

The provider layer is the only way the oracle is called. Tag-based
configurations resolve to LiteLLMProvider; caller-supplied objects only
need an async ``complete(request)`` method.
"""

from maker.providers.base import ModelProvider, Oracle
from maker.providers.litellm_provider import LiteLLMProvider
from maker.providers.registry import (
    build_provider_config,
    create_provider,
    load_maker_config,
)

__all__ = [
    "LiteLLMProvider",
    "ModelProvider",
    "Oracle",
    "build_provider_config",
    "create_provider",
    "load_maker_config",
]
