"""In-memory response cache with a fixed TTL and lazy expiry."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Dict, Optional

from llm_dispatcher.telemetry import metrics
from llm_dispatcher.telemetry.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_SWEEP_THRESHOLD = 1024


@dataclass
class CacheEntry:
    response: Any
    stored_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.stored_at < ttl


class ResponseCache:
    """Fingerprint -> last response store.

    Entries expire lazily: ``get`` treats a stale entry as a miss and leaves
    removal to ``sweep``, which ``put`` runs whenever the store grows past
    ``sweep_threshold`` entries. ``put`` always overwrites.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self.sweep_threshold = sweep_threshold
        self._entries: Dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, fingerprint: str) -> Optional[Any]:
        entry = self._entries.get(fingerprint)
        if entry is not None and entry.is_fresh(self._clock(), self.ttl_seconds):
            self.hits += 1
            metrics.record_cache_lookup(hit=True)
            return entry.response

        self.misses += 1
        metrics.record_cache_lookup(hit=False)
        return None

    def put(self, fingerprint: str, response: Any) -> None:
        self._entries[fingerprint] = CacheEntry(response=response, stored_at=self._clock())
        if len(self._entries) > self.sweep_threshold:
            self.sweep()

    def sweep(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [
            key for key, entry in list(self._entries.items())
            if not entry.is_fresh(now, self.ttl_seconds)
        ]
        for key in expired:
            self._entries.pop(key, None)
        if expired:
            logger.debug("cache_swept", removed=len(expired), remaining=len(self._entries))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        logger.info("cache_cleared")

    def stats(self) -> Dict[str, float]:
        total = self.hits + self.misses
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0,
            "ttl_seconds": self.ttl_seconds,
        }

    def __len__(self) -> int:
        return len(self._entries)
