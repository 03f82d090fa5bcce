"""Tests for ProviderRegistry."""

import pytest
from conftest import make_config, make_settings
from pydantic import SecretStr

from llm_dispatcher.providers.anthropic_provider import AnthropicAdapter
from llm_dispatcher.providers.gemini import GeminiAdapter
from llm_dispatcher.providers.mock_provider import MockAdapter
from llm_dispatcher.providers.openai_compatible import GroqAdapter, OpenRouterAdapter
from llm_dispatcher.providers.registry import PROVIDER_FAMILIES, ProviderRegistry


@pytest.fixture
def registry():
    return ProviderRegistry()


class TestRegisterProvider:
    def test_admits_valid_config(self, registry):
        result = registry.register_provider(make_config("groq"), MockAdapter())

        assert result.admitted is True
        assert "groq" in registry
        assert len(registry) == 1
        assert isinstance(registry.get_adapter("groq"), MockAdapter)

    @pytest.mark.parametrize(
        "overrides, reason",
        [
            ({"credential": None}, "missing credential"),
            ({"credential": SecretStr("   ")}, "missing credential"),
            ({"candidate_models": []}, "no candidate models"),
            ({"timeout_ms": 0}, "timeout must be positive"),
        ],
    )
    def test_rejects_invalid_config(self, registry, overrides, reason):
        result = registry.register_provider(make_config("groq", **overrides), MockAdapter())

        assert result.admitted is False
        assert result.reason == reason
        assert "groq" not in registry

    def test_rejects_duplicate_name(self, registry):
        registry.register_provider(make_config("groq"), MockAdapter())

        result = registry.register_provider(make_config("groq"), MockAdapter())

        assert result.admitted is False
        assert result.reason == "duplicate name"
        assert len(registry) == 1

    def test_insertion_order(self, registry):
        for name in ("c", "a", "b"):
            registry.register_provider(make_config(name), MockAdapter())

        assert registry.names() == ["c", "a", "b"]
        assert [config.name for config in registry] == ["c", "a", "b"]

    def test_set_active(self, registry):
        registry.register_provider(make_config("groq"), MockAdapter())

        assert registry.set_active("groq", False) is True
        assert registry.active_configs() == []
        assert registry.set_active("missing", False) is False

    def test_shared_adapter_listed_once(self, registry):
        adapter = MockAdapter()
        registry.register_provider(make_config("a"), adapter)
        registry.register_provider(make_config("b"), adapter)

        assert registry.adapters() == [adapter]


class TestInitialize:
    def test_only_credentialed_families_are_admitted(self, registry):
        report = registry.initialize(make_settings(groq_api_key="gsk-test"))

        assert registry.names() == ["groq"]
        assert report.admitted_names == ["groq"]
        assert {r.name for r in report.rejected} == {"openrouter", "together", "gemini", "anthropic"}
        assert all(r.reason == "missing credential" for r in report.rejected)

    def test_families_follow_priority_order(self, registry):
        registry.initialize(
            make_settings(
                anthropic_api_key="sk-ant",
                gemini_api_key="AIza-test",
                openrouter_api_key="sk-or",
            )
        )

        assert registry.names() == ["openrouter", "gemini", "anthropic"]
        assert isinstance(registry.get_adapter("openrouter"), OpenRouterAdapter)
        assert isinstance(registry.get_adapter("gemini"), GeminiAdapter)
        assert isinstance(registry.get_adapter("anthropic"), AnthropicAdapter)

    def test_family_configuration(self, registry):
        registry.initialize(make_settings(groq_api_key="gsk-test"))
        config = registry.get("groq")

        assert config.base_endpoint == "https://api.groq.com/openai/v1"
        assert config.preferred_model == "llama-3.1-8b-instant"
        assert config.timeout_ms == 15000
        assert config.default_latency_ms == 800
        assert config.api_key() == "gsk-test"
        assert isinstance(registry.get_adapter("groq"), GroqAdapter)

    def test_blank_credential_counts_as_missing(self, registry):
        report = registry.initialize(make_settings(groq_api_key="  "))

        assert "groq" not in registry
        assert "groq" in {r.name for r in report.rejected}

    def test_mock_family_needs_flag(self, registry):
        registry.initialize(make_settings())
        assert "mock" not in registry

        enabled = ProviderRegistry()
        enabled.initialize(make_settings(mock_provider_enabled=True))
        assert enabled.names() == ["mock"]

    def test_priorities_are_unique(self):
        priorities = [family.priority for family in PROVIDER_FAMILIES]

        assert len(priorities) == len(set(priorities))
