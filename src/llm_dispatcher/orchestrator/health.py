"""Background health probing of registered providers."""

import asyncio
from typing import Dict, Optional

from llm_dispatcher.providers.base import DispatchRequest, ProviderError
from llm_dispatcher.providers.registry import ProviderRegistry
from llm_dispatcher.telemetry.logger import get_logger

from .tracker import ReliabilityTracker

logger = get_logger(__name__)

PROBE_PROMPT = "ping"
PROBE_MAX_TOKENS = 10
DEFAULT_INTERVAL_SECONDS = 600.0


class HealthProber:
    """Re-exercises every registered provider with a trivial prompt.

    This is the only path that reactivates a provider the tracker switched
    off. Probe outcomes do not count towards reliability statistics.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        tracker: ReliabilityTracker,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ):
        self.registry = registry
        self.tracker = tracker
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def probe(self, name: str) -> bool:
        config = self.registry.get(name)
        adapter = self.registry.get_adapter(name)
        if config is None or adapter is None:
            return False

        request = DispatchRequest(prompt=PROBE_PROMPT, max_tokens=PROBE_MAX_TOKENS)
        try:
            await asyncio.wait_for(
                adapter.call(config, config.preferred_model, request),
                timeout=config.timeout_seconds,
            )
            healthy = True
        except asyncio.TimeoutError:
            logger.warning("health_probe_timeout", provider=name, timeout_s=config.timeout_seconds)
            healthy = False
        except ProviderError as e:
            logger.warning("health_probe_failed", provider=name, error=str(e))
            healthy = False
        except Exception as e:
            logger.error("health_probe_error", provider=name, error=str(e), exc_info=True)
            healthy = False

        was_active = config.is_active
        self.registry.set_active(name, healthy)
        self.tracker.mark_tested(name)
        if healthy and not was_active:
            logger.info("provider_reactivated", provider=name)
        return healthy

    async def probe_all(self) -> Dict[str, bool]:
        """Probe every registered provider, active or not."""
        names = self.registry.names()
        results = await asyncio.gather(*(self.probe(name) for name in names))
        outcome = dict(zip(names, results))
        logger.info(
            "health_check_completed",
            healthy=sum(outcome.values()),
            total=len(outcome),
        )
        return outcome

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="llm-health-prober")
        logger.info("health_prober_started", interval_s=self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("health_prober_stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.probe_all()
            except Exception as e:
                logger.error("health_check_cycle_failed", error=str(e), exc_info=True)
