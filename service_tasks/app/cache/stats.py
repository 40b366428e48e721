"""
Cache hit/miss/error statistics.
"""

import threading
from dataclasses import dataclass
from typing import Optional

from shared.logging import get_logger


@dataclass(frozen=True)
class CacheStatsSnapshot:
    """Point-in-time copy of the counters."""
    hits: int = 0
    misses: int = 0
    errors: int = 0
    total: int = 0

    @property
    def hit_rate(self) -> float:
        """Hit rate as a percentage (0-100)."""
        if self.total == 0:
            return 0.0
        return self.hits / self.total * 100

    @property
    def miss_rate(self) -> float:
        """Miss rate as a percentage (0-100)."""
        if self.total == 0:
            return 0.0
        return self.misses / self.total * 100


class CacheStats:
    """Process-wide cache counters.

    Every increment and every snapshot happens under one lock, so
    ``total == hits + misses + errors`` holds for any observer.
    """

    def __init__(self):
        self.logger = get_logger("tasks.cache.stats")
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._errors = 0

    def record_hit(self, key: str) -> None:
        with self._lock:
            self._hits += 1
            snapshot = self._snapshot()
        self.logger.debug("Cache hit", key=key, hits=snapshot.hits,
                          misses=snapshot.misses, hit_rate=round(snapshot.hit_rate, 2))

    def record_miss(self, key: str) -> None:
        with self._lock:
            self._misses += 1
            snapshot = self._snapshot()
        self.logger.debug("Cache miss, reading from store", key=key, hits=snapshot.hits,
                          misses=snapshot.misses, hit_rate=round(snapshot.hit_rate, 2))

    def record_error(self, key: str, cause: Optional[BaseException] = None) -> None:
        with self._lock:
            self._errors += 1
        self.logger.warning("Cache error", key=key, error=str(cause) if cause else None)

    def get_stats(self) -> CacheStatsSnapshot:
        with self._lock:
            return self._snapshot()

    def reset(self) -> None:
        with self._lock:
            self._hits = 0
            self._misses = 0
            self._errors = 0
        self.logger.info("Cache statistics reset")

    def _snapshot(self) -> CacheStatsSnapshot:
        return CacheStatsSnapshot(
            hits=self._hits,
            misses=self._misses,
            errors=self._errors,
            total=self._hits + self._misses + self._errors,
        )
