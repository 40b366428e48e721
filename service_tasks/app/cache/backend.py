"""
Cache backend interface shared by the Redis and in-process caches.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class LookupState(str, Enum):
    """Outcome of a cache lookup."""
    HIT = "hit"
    MISS = "miss"
    ERROR = "error"


@dataclass(frozen=True)
class CacheLookup:
    """Result of ``CacheBackend.get``.

    Exactly one of three states: a hit carrying the stored value, a miss,
    or a backend error carrying its cause. Backends report failures this
    way instead of raising so callers can branch on every outcome.
    """
    state: LookupState
    value: Optional[str] = None
    cause: Optional[BaseException] = None

    @classmethod
    def hit(cls, value: str) -> "CacheLookup":
        return cls(LookupState.HIT, value=value)

    @classmethod
    def miss(cls) -> "CacheLookup":
        return cls(LookupState.MISS)

    @classmethod
    def error(cls, cause: BaseException) -> "CacheLookup":
        return cls(LookupState.ERROR, cause=cause)


class CacheBackend(ABC):
    """Key/value store for serialized task data.

    ``set``, ``delete``, ``invalidate`` and ``clear`` raise
    ``CacheCommunicationError`` on backend failure; a missing key is never
    an error.
    """

    name: str = "cache"

    async def start(self):
        """Open connections, if any."""

    async def stop(self):
        """Release connections, if any."""

    @abstractmethod
    async def get(self, key: str) -> CacheLookup:
        """Look up a key."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Store a value, expiring after ``ttl`` seconds when given."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key."""

    async def invalidate(self, key: str) -> None:
        """Make the next ``get`` of ``key`` a miss."""
        await self.delete(key)

    @abstractmethod
    async def clear(self) -> None:
        """Drop every entry owned by this backend."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the backend is reachable."""
