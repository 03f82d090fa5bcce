"""Per-provider reliability statistics and auto-deactivation."""

import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from llm_dispatcher.providers.base import ProviderConfig
from llm_dispatcher.providers.registry import ProviderRegistry
from llm_dispatcher.telemetry.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LATENCY_MS = 5000.0
DEACTIVATION_SUCCESS_RATE = 30.0
DEACTIVATION_MIN_REQUESTS = 5


class ReliabilityStats(BaseModel):
    """Observed reliability of one provider."""

    name: str
    display_name: Optional[str] = None
    is_active: bool = True
    models_available: List[str] = Field(default_factory=list)
    total_requests: int = 0
    successful_requests: int = 0
    success_rate: float = 100.0
    avg_latency_ms: float = DEFAULT_LATENCY_MS
    last_tested_at: Optional[datetime] = None

    @property
    def score(self) -> float:
        return self.success_rate - self.avg_latency_ms / 100


class ReliabilityTracker:
    """Folds attempt outcomes into ReliabilityStats and deactivates unreliable providers.

    A provider is deactivated on any recorded outcome once its success rate falls
    below ``deactivation_success_rate`` after more than
    ``deactivation_min_requests`` attempts. Nothing here reactivates it; that
    is left to the health prober and the administrative toggle.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        deactivation_success_rate: float = DEACTIVATION_SUCCESS_RATE,
        deactivation_min_requests: int = DEACTIVATION_MIN_REQUESTS,
    ):
        self.registry = registry
        self.deactivation_success_rate = deactivation_success_rate
        self.deactivation_min_requests = deactivation_min_requests
        self._stats: Dict[str, ReliabilityStats] = {}
        self._defaults: Dict[str, float] = {}
        self._lock = threading.Lock()

    def seed(self, config: ProviderConfig) -> ReliabilityStats:
        stats = ReliabilityStats(
            name=config.name,
            display_name=config.display_name,
            is_active=config.is_active,
            models_available=list(config.candidate_models),
            avg_latency_ms=config.default_latency_ms or DEFAULT_LATENCY_MS,
        )
        with self._lock:
            self._stats[config.name] = stats
            self._defaults[config.name] = stats.avg_latency_ms
        return stats

    def record_outcome(self, name: str, success: bool, latency_ms: float) -> Optional[ReliabilityStats]:
        deactivate = False
        with self._lock:
            stats = self._stats.get(name)
            if stats is None:
                logger.warning("stats_for_unknown_provider", provider=name)
                return None

            stats.total_requests += 1
            if success:
                stats.successful_requests += 1
                stats.avg_latency_ms = (stats.avg_latency_ms + latency_ms) / 2
            stats.success_rate = stats.successful_requests / stats.total_requests * 100
            stats.last_tested_at = datetime.now(timezone.utc)

            if (
                stats.success_rate < self.deactivation_success_rate
                and stats.total_requests > self.deactivation_min_requests
            ):
                config = self.registry.get(name)
                deactivate = config is not None and config.is_active
                if deactivate:
                    self.registry.set_active(name, False)

            snapshot = stats.model_copy()

        if deactivate:
            logger.warning(
                "provider_deactivated",
                provider=name,
                success_rate=round(snapshot.success_rate, 2),
                total_requests=snapshot.total_requests,
            )
        return snapshot

    def mark_tested(self, name: str) -> None:
        with self._lock:
            stats = self._stats.get(name)
            if stats is not None:
                stats.last_tested_at = datetime.now(timezone.utc)

    def get(self, name: str) -> Optional[ReliabilityStats]:
        with self._lock:
            stats = self._stats.get(name)
            return self._with_active(stats) if stats else None

    def score(self, name: str) -> float:
        with self._lock:
            stats = self._stats.get(name)
            return stats.score if stats else float("-inf")

    def snapshot(self) -> List[ReliabilityStats]:
        """Copies of every record, ``is_active`` taken from the registry."""
        with self._lock:
            return [self._with_active(stats) for stats in self._stats.values()]

    def reset(self) -> None:
        """Zero every counter and restore the default latency estimates."""
        with self._lock:
            for name, stats in self._stats.items():
                stats.total_requests = 0
                stats.successful_requests = 0
                stats.success_rate = 100.0
                stats.avg_latency_ms = self._defaults.get(name, DEFAULT_LATENCY_MS)
        logger.info("reliability_stats_reset", providers=len(self._stats))

    def _with_active(self, stats: ReliabilityStats) -> ReliabilityStats:
        config = self.registry.get(stats.name)
        copy = stats.model_copy(deep=True)
        if config is not None:
            copy.is_active = config.is_active
        return copy

    def __contains__(self, name: object) -> bool:
        return name in self._stats
