"""Pytest configuration and fixtures."""

from typing import Callable, List, Optional

import pytest
from pydantic import SecretStr

from llm_dispatcher.audit import AuditEntry, AuditSink
from llm_dispatcher.cache import ResponseCache
from llm_dispatcher.config.settings import Settings, get_settings
from llm_dispatcher.orchestrator.dispatcher import Dispatcher
from llm_dispatcher.providers.base import ProviderConfig
from llm_dispatcher.providers.mock_provider import MockAdapter

CREDENTIAL_ENV_VARS = (
    "OPENROUTER_API_KEY",
    "GROQ_API_KEY",
    "LLM_GROQ_GLOBAL_API_KEY",
    "TOGETHER_API_KEY",
    "LLM_TOGETHER_GLOBAL_API_KEY",
    "GEMINI_API_KEY",
    "LLM_GEMINI_API_KEY",
    "ANTHROPIC_API_KEY",
    "MOCK_PROVIDER_ENABLED",
    "DATABASE_URL",
)


def make_settings(**overrides) -> Settings:
    """Settings isolated from the process environment and any .env file."""
    values = {
        "environment": "testing",
        "openrouter_api_key": None,
        "groq_api_key": None,
        "together_api_key": None,
        "gemini_api_key": None,
        "anthropic_api_key": None,
        "mock_provider_enabled": False,
        "health_check_enabled": False,
        "audit_enabled": False,
        "database_url": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_config(name: str, **overrides) -> ProviderConfig:
    values = {
        "name": name,
        "display_name": name.upper(),
        "credential": SecretStr(f"{name}-key"),
        "base_endpoint": f"https://{name}.example.com/v1",
        "candidate_models": [f"{name}-model"],
        "timeout_ms": 1000,
        "default_latency_ms": 1000,
    }
    values.update(overrides)
    return ProviderConfig(**values)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingAuditSink(AuditSink):
    def __init__(self, fail: bool = False):
        self.entries: List[AuditEntry] = []
        self.fail = fail

    async def record(self, provider_name, model, success, latency_ms, token_count, prompt_preview):
        if self.fail:
            raise RuntimeError("audit store unavailable")
        self.entries.append(
            AuditEntry(provider_name, model, success, latency_ms, token_count, prompt_preview)
        )


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep real credentials out of the tests."""
    for var in CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def dispatcher(settings, clock, audit_sink) -> Dispatcher:
    cache = ResponseCache(ttl_seconds=settings.cache_ttl_seconds, clock=clock)
    return Dispatcher(settings=settings, cache=cache, audit_sink=audit_sink)


@pytest.fixture
def add_provider(dispatcher) -> Callable[..., MockAdapter]:
    """Register a provider backed by a scripted MockAdapter."""

    def _add(name: str, outcomes: Optional[list] = None, delay: float = 0.0, **config) -> MockAdapter:
        adapter = MockAdapter(outcomes=outcomes, delay=delay)
        result = dispatcher.register_provider(make_config(name, **config), adapter)
        assert result.admitted, result.reason
        return adapter

    return _add
