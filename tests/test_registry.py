"""Tests for maker.providers.registry — provider resolution and TOML loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from helpers import ScriptedOracle

from maker.providers.litellm_provider import LiteLLMProvider
from maker.providers.registry import (
    build_provider_config,
    create_provider,
    load_maker_config,
)
from maker.schemas.config import AzureConfig, MakerConfig


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "maker.toml"
    path.write_text(content, encoding="utf-8")
    return path


# ── build_provider_config ─────────────────────────────────────


class TestBuildProviderConfig:
    def test_openai_defaults(self):
        pc = build_provider_config(MakerConfig())
        assert pc.provider == "openai"
        assert pc.model == "openai/gpt-4o-mini"
        assert pc.api_key_env == "OPENAI_API_KEY"
        assert pc.max_tokens == 1024

    def test_anthropic(self):
        pc = build_provider_config(
            MakerConfig(provider="Anthropic", model="claude-sonnet-4-5", api_key="sk-x")
        )
        assert pc.model == "anthropic/claude-sonnet-4-5"
        assert pc.api_key_env == "ANTHROPIC_API_KEY"
        assert pc.api_key == "sk-x"

    def test_already_routed_model_is_kept(self):
        pc = build_provider_config(MakerConfig(model="openai/gpt-4o"))
        assert pc.model == "openai/gpt-4o"

    def test_litellm_passthrough(self):
        pc = build_provider_config(
            MakerConfig(provider="litellm", model="ollama/llama3",
                        base_url="http://localhost:11434")
        )
        assert pc.model == "ollama/llama3"
        assert pc.api_key_env == ""
        assert pc.api_base == "http://localhost:11434"

    def test_custom_key_env(self):
        pc = build_provider_config(MakerConfig(api_key_env="MY_KEY"))
        assert pc.api_key_env == "MY_KEY"

    def test_azure(self):
        pc = build_provider_config(MakerConfig(
            provider="azure",
            model="gpt-4o",
            azure=AzureConfig(
                endpoint="https://x.openai.azure.com/",
                api_version="2024-02-15-preview",
                deployment="prod-gpt4o",
            ),
        ))
        assert pc.model == "azure/prod-gpt4o"
        assert pc.api_base == "https://x.openai.azure.com/"
        assert pc.api_version == "2024-02-15-preview"
        assert pc.api_key_env == "AZURE_API_KEY"

    def test_azure_deployment_defaults_to_model(self):
        pc = build_provider_config(MakerConfig(
            provider="azure",
            model="gpt-4o",
            azure=AzureConfig(endpoint="https://x", api_version="2024-02-15-preview"),
        ))
        assert pc.model == "azure/gpt-4o"

    def test_azure_without_settings(self):
        with pytest.raises(ValueError, match="Azure provider requires"):
            build_provider_config(MakerConfig(provider="azure"))

    def test_unknown_tag(self):
        with pytest.raises(ValueError, match="Unknown provider: cohere"):
            build_provider_config(MakerConfig(provider="cohere"))


# ── create_provider ───────────────────────────────────────────


class TestCreateProvider:
    def test_tag_builds_litellm_provider(self):
        provider = create_provider(MakerConfig(provider="openai"))
        assert isinstance(provider, LiteLLMProvider)

    def test_oracle_object_used_as_is(self):
        oracle = ScriptedOracle([{}])
        assert create_provider(MakerConfig(provider=oracle)) is oracle

    def test_non_oracle_object_rejected(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            create_provider(MakerConfig(provider=42))


# ── load_maker_config ─────────────────────────────────────────


class TestLoadMakerConfig:
    def test_packaged_defaults(self):
        config = load_maker_config()
        assert config.provider == "openai"
        assert config.model == "gpt-4o-mini"
        assert config.voting.k == 3
        assert config.voting.max_votes == 100
        assert config.red_flags.max_tokens == 750
        assert config.red_flags.min_chars == 5
        assert config.decomposition.max_sub_questions == 8
        assert config.synthesis.language == "English"

    def test_custom_file(self, tmp_path):
        path = _write(tmp_path, """
[maker]
provider = "anthropic"
model = "claude-sonnet-4-5"

[voting]
k = 5
timeout = 30.0

[synthesis]
language = "Deutsch"
""")
        config = load_maker_config(path)
        assert config.provider == "anthropic"
        assert config.voting.k == 5
        assert config.voting.timeout == 30.0
        assert config.voting.max_votes == 100
        assert config.synthesis.language == "Deutsch"
        assert config.decomposition.enabled is True

    def test_azure_section(self, tmp_path):
        path = _write(tmp_path, """
[maker]
provider = "azure"

[maker.azure]
endpoint = "https://x.openai.azure.com/"
api_version = "2024-02-15-preview"
""")
        config = load_maker_config(path)
        assert config.azure is not None
        assert config.azure.endpoint == "https://x.openai.azure.com/"
        assert config.azure.deployment == ""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Maker config not found"):
            load_maker_config(tmp_path / "nope.toml")

    def test_invalid_value(self, tmp_path):
        path = _write(tmp_path, "[voting]\nk = 0\n")
        with pytest.raises(ValueError):
            load_maker_config(path)

    def test_section_must_be_table(self, tmp_path):
        path = _write(tmp_path, 'voting = "fast"\n')
        with pytest.raises(ValueError, match="must be a table"):
            load_maker_config(path)
