"""Tests for HealthProber."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from conftest import make_config

from llm_dispatcher.orchestrator.health import PROBE_MAX_TOKENS, PROBE_PROMPT, HealthProber
from llm_dispatcher.orchestrator.tracker import ReliabilityTracker
from llm_dispatcher.providers.base import ProviderError
from llm_dispatcher.providers.mock_provider import MockAdapter
from llm_dispatcher.providers.registry import ProviderRegistry


@pytest.fixture
def registry():
    return ProviderRegistry()


@pytest.fixture
def tracker(registry):
    return ReliabilityTracker(registry)


def register(registry, tracker, name, adapter, **config):
    registry.register_provider(make_config(name, **config), adapter)
    tracker.seed(registry.get(name))


@pytest.mark.asyncio
async def test_probe_all_updates_active_flags(registry, tracker):
    healthy = MockAdapter(outcomes=["pong"])
    broken = MockAdapter(outcomes=[ProviderError("down", provider="broken")])
    register(registry, tracker, "healthy", healthy, is_active=False)
    register(registry, tracker, "broken", broken)
    prober = HealthProber(registry, tracker)

    results = await prober.probe_all()

    assert results == {"healthy": True, "broken": False}
    assert registry.get("healthy").is_active is True
    assert registry.get("broken").is_active is False
    assert tracker.get("healthy").last_tested_at is not None
    assert tracker.get("broken").last_tested_at is not None


@pytest.mark.asyncio
async def test_probe_sends_ping_to_preferred_model(registry, tracker):
    adapter = MockAdapter()
    register(registry, tracker, "groq", adapter, candidate_models=["fast", "big"])

    await HealthProber(registry, tracker).probe_all()

    name, model, request = adapter.calls[0]
    assert name == "groq"
    assert model == "fast"
    assert request.prompt == PROBE_PROMPT
    assert request.max_tokens == PROBE_MAX_TOKENS


@pytest.mark.asyncio
async def test_probe_does_not_touch_counters(registry, tracker):
    register(registry, tracker, "groq", MockAdapter(outcomes=[ProviderError("x")]))

    await HealthProber(registry, tracker).probe_all()

    stats = tracker.get("groq")
    assert stats.total_requests == 0
    assert stats.success_rate == 100


@pytest.mark.asyncio
async def test_probe_respects_timeout(registry, tracker):
    register(registry, tracker, "slow", MockAdapter(outcomes=["late"], delay=1), timeout_ms=20)

    results = await HealthProber(registry, tracker).probe_all()

    assert results == {"slow": False}
    assert registry.get("slow").is_active is False


@pytest.mark.asyncio
async def test_unexpected_errors_mark_unhealthy(registry, tracker):
    register(registry, tracker, "odd", MockAdapter(outcomes=[KeyError("choices")]))

    assert await HealthProber(registry, tracker).probe_all() == {"odd": False}


@pytest.mark.asyncio
async def test_probe_unknown_provider(registry, tracker):
    assert await HealthProber(registry, tracker).probe("missing") is False


@pytest.mark.asyncio
async def test_background_loop_runs_and_stops(registry, tracker):
    adapter = MockAdapter()
    register(registry, tracker, "groq", adapter)
    prober = HealthProber(registry, tracker, interval_seconds=0.01)

    prober.start()
    assert prober.running
    await asyncio.sleep(0.05)
    await prober.stop()

    assert not prober.running
    assert adapter.call_count >= 1


@pytest.mark.asyncio
async def test_failed_cycle_does_not_kill_loop(registry, tracker):
    prober = HealthProber(registry, tracker, interval_seconds=0.01)
    prober.probe_all = AsyncMock(side_effect=[RuntimeError("boom"), {}, {}, {}, {}, {}, {}, {}, {}, {}])

    prober.start()
    await asyncio.sleep(0.05)
    running = prober.running
    await prober.stop()

    assert running
    assert prober.probe_all.await_count >= 2
