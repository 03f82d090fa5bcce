"""Dispatch orchestration: ordering, fallback, reliability tracking and health probing."""

from llm_dispatcher.orchestrator.dispatcher import (
    FALLBACK_MESSAGE,
    FALLBACK_MODEL,
    FALLBACK_PROVIDER,
    Dispatcher,
)
from llm_dispatcher.orchestrator.health import HealthProber
from llm_dispatcher.orchestrator.tracker import ReliabilityStats, ReliabilityTracker

__all__ = [
    "Dispatcher",
    "HealthProber",
    "ReliabilityStats",
    "ReliabilityTracker",
    "FALLBACK_MESSAGE",
    "FALLBACK_MODEL",
    "FALLBACK_PROVIDER",
]
