"""
In-process cache for Tasks Service.
"""

import threading
import time
from typing import Dict, Optional, Tuple

from shared.logging import get_logger
from .backend import CacheBackend, CacheLookup

# Stored in place of a value by ``invalidate``; the key stays known
ABSENT = object()


class InMemoryCacheBackend(CacheBackend):
    """Process-local cache with explicit invalidation.

    Entries live until invalidated unless a TTL is passed to ``set``.
    Not shared across service instances.
    """

    name = "memory"

    def __init__(self):
        self.logger = get_logger("tasks.cache.memory")
        # key -> (value or ABSENT, monotonic expiry or None)
        self._entries: Dict[str, Tuple[object, Optional[float]]] = {}
        self._lock = threading.Lock()

    async def get(self, key: str) -> CacheLookup:
        with self._lock:
            value, expires_at = self._entries.get(key, (ABSENT, None))
            if value is not ABSENT and expires_at is not None and expires_at <= time.monotonic():
                # Expired entries are reclaimed on read
                del self._entries[key]
                value = ABSENT

        if value is ABSENT:
            return CacheLookup.miss()
        return CacheLookup.hit(value)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        with self._lock:
            self._entries[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    async def invalidate(self, key: str) -> None:
        with self._lock:
            if key in self._entries:
                self._entries[key] = (ABSENT, None)

    async def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        self.logger.info("Cache cleared")

    async def health_check(self) -> bool:
        return True

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
