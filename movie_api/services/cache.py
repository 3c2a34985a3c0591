"""Cache store with Redis backend and in-memory fallback.

Values are opaque strings (serialized records); every entry carries its own
absolute expiry, set at write time and never refreshed on read.

Graceful degradation: if Redis is unavailable at connect time, a
cachetools.TLRUCache stands in for it. Redis errors on read are reported as
misses; errors on write or delete are logged and swallowed, leaving the entry
to expire on its own.
"""

import logging
import time
from collections.abc import Callable

from cachetools import TLRUCache
from redis.exceptions import RedisError

from movie_api.config import settings

logger = logging.getLogger(__name__)


def _expires_at(_key, entry, now):
    # entry is (value, ttl_seconds)
    return now + entry[1]


class CacheService:
    """Async key/value cache with per-key expiry."""

    def __init__(
        self,
        redis_url: str | None = None,
        *,
        fallback_maxsize: int | None = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._redis_url = redis_url or settings.redis_url
        self._redis = None
        self._fallback = TLRUCache(
            maxsize=fallback_maxsize or settings.cache_fallback_maxsize,
            ttu=_expires_at,
            timer=timer,
        )
        self._available = False

    @property
    def backend(self) -> str:
        return "redis" if self._available else "memory"

    async def connect(self) -> bool:
        """Connect to Redis. Returns True on success."""
        try:
            import redis.asyncio as aioredis

            client = aioredis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
            )
            await client.ping()
        except (RedisError, OSError) as e:
            logger.warning("Redis connection failed — using in-memory fallback: %s", str(e)[:100])
            self._redis = None
            self._available = False
            return False
        self.use_client(client)
        return True

    def use_client(self, client) -> None:
        """Attach an already-connected client (redis.asyncio or compatible)."""
        self._redis = client
        self._available = True

    async def disconnect(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self._available = False

    async def get(self, key: str) -> str | None:
        """Read from cache. Returns None on miss or on a Redis error."""
        if self._available and self._redis:
            try:
                return await self._redis.get(key)
            except (RedisError, OSError) as e:
                logger.warning("Redis GET error, treating as miss | key=%s | %s", key, str(e)[:100])
                return None

        entry = self._fallback.get(key)
        return entry[0] if entry else None

    async def setex(self, key: str, ttl: int, value: str) -> None:
        """Write value under key, expiring ttl seconds from now."""
        if self._available and self._redis:
            try:
                await self._redis.setex(key, ttl, value)
                logger.debug("Cache SET (Redis) | key=%s | ttl=%ds", key, ttl)
            except (RedisError, OSError) as e:
                logger.warning("Redis SETEX error | key=%s | %s", key, str(e)[:100])
            return

        self._fallback[key] = (value, ttl)
        logger.debug("Cache SET (memory) | key=%s | ttl=%ds", key, ttl)

    async def delete(self, *keys: str) -> None:
        """Remove keys. Missing keys are ignored."""
        if not keys:
            return
        for key in keys:
            self._fallback.pop(key, None)

        if self._available and self._redis:
            try:
                await self._redis.delete(*keys)
            except (RedisError, OSError) as e:
                logger.warning("Redis DEL error | keys=%s | %s", ",".join(keys), str(e)[:100])
                return
        logger.debug("Cache DEL | keys=%s", ",".join(keys))
