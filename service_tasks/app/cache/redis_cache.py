"""
Redis caching layer for Tasks Service.
"""

from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.logging import get_logger
from shared.errors import CacheCommunicationError
from .backend import CacheBackend, CacheLookup

# Failures that mean the cache is unreachable rather than "key not found"
BACKEND_ERRORS = (RedisError, OSError)


class RedisCacheBackend(CacheBackend):
    """Shared Redis cache with TTL expiry."""

    name = "redis"

    def __init__(self, redis_url: str, key_prefix: str = "tasks:", socket_timeout: float = 5.0):
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.socket_timeout = socket_timeout
        self.logger = get_logger("tasks.cache.redis")
        self.redis: Optional[redis.Redis] = None

    async def start(self):
        """Connect to Redis.

        An unreachable server is not fatal: reads degrade to the store until
        the client reconnects.
        """
        client = self._get_redis()
        try:
            await client.ping()
            self.logger.info("Redis cache started", redis_url=self.redis_url)
        except BACKEND_ERRORS as e:
            self.logger.warning("Redis unavailable at startup, running degraded", error=str(e))

    async def stop(self):
        """Close the Redis connection."""
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis cache stopped")

    def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.socket_timeout,
                socket_timeout=self.socket_timeout,
                retry_on_timeout=True,
                health_check_interval=30
            )
        return self.redis

    async def get(self, key: str) -> CacheLookup:
        try:
            cached = await self._get_redis().get(key)
        except BACKEND_ERRORS as e:
            self.logger.error("Cache get error", key=key, error=str(e))
            return CacheLookup.error(e)
        except UnicodeDecodeError as e:
            # decode_responses=True: a non UTF-8 payload fails inside the client
            self.logger.error("Cache value not decodable", key=key, error=str(e))
            return CacheLookup.error(e)

        if cached is None:
            return CacheLookup.miss()
        return CacheLookup.hit(cached)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        try:
            client = self._get_redis()
            if ttl:
                await client.setex(key, ttl, value)
            else:
                await client.set(key, value)
        except BACKEND_ERRORS as e:
            raise CacheCommunicationError(f"Failed to set {key}: {e}") from e

        self.logger.debug("Cached value", key=key, ttl=ttl)

    async def delete(self, key: str) -> None:
        try:
            await self._get_redis().delete(key)
        except BACKEND_ERRORS as e:
            raise CacheCommunicationError(f"Failed to delete {key}: {e}") from e

    async def clear(self) -> None:
        try:
            client = self._get_redis()
            keys = [key async for key in client.scan_iter(match=f"{self.key_prefix}*")]
            if keys:
                await client.delete(*keys)
        except BACKEND_ERRORS as e:
            raise CacheCommunicationError(f"Failed to clear cache: {e}") from e

        self.logger.info("Cache cleared", keys_count=len(keys))

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self._get_redis().ping()
            return True
        except BACKEND_ERRORS:
            return False
