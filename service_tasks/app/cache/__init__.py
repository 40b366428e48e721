"""
Cache package for Tasks Service.

Provides a cache-aside manager over the task store with two
interchangeable backends: a shared Redis cache with TTL expiry and an
in-process cache with explicit invalidation. Hit, miss and error events
are counted by ``CacheStats`` regardless of the backend in use.
"""

from .backend import CacheBackend, CacheLookup, LookupState
from .memory_cache import InMemoryCacheBackend
from .redis_cache import RedisCacheBackend
from .stats import CacheStats, CacheStatsSnapshot
from .task_cache import ALL_TASKS_KEY, CachedRead, TaskCacheManager, task_key

__all__ = [
    "ALL_TASKS_KEY",
    "CacheBackend",
    "CacheLookup",
    "CacheStats",
    "CacheStatsSnapshot",
    "CachedRead",
    "InMemoryCacheBackend",
    "LookupState",
    "RedisCacheBackend",
    "TaskCacheManager",
    "task_key",
]
