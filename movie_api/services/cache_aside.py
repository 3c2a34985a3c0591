"""Cache-aside accessor — the read-through / write-invalidate protocol.

Reads:  look up the key; on a hit decode and return without touching the
        store. On a miss call the loader; a None result (not found) is
        returned as-is and never cached, anything else is written with an
        absolute TTL and returned.
Writes: run the store operation first. Only when it succeeds are the
        affected keys deleted (and, for point writes, the fresh value
        written through). Cache cleanup is best-effort and not atomic with
        the store write.

There is no locking and no de-duplication of concurrent misses: two
writers racing on the same key may leave whichever cache write lands last.
The store stays correct because each store call completes before its
matching invalidation.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from movie_api.config import settings
from movie_api.services.cache import CacheService

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ═══════════════ KEY NAMING ═══════════════
# Keys must stay byte-compatible with entries written by earlier deployments.

MOVIES_ALL = "movies:all"
GENRES_ALL = "genres:all"
GENRES_ALL_WITH_MOVIES = "genres:all-with-movies"


def movie_key(movie_id: str) -> str:
    return f"movie:{movie_id}"


def genre_key(genre_id: str) -> str:
    return f"genre:{genre_id}"


def genre_movies_key(genre_id: str) -> str:
    return f"genre:{genre_id}:movies"


class CacheAside:
    """Wraps store reads and writes with cache population and invalidation."""

    def __init__(self, cache: CacheService, ttl: int | None = None):
        self._cache = cache
        self.ttl = ttl or settings.cache_ttl_seconds

    async def fetch(
        self,
        key: str,
        loader: Callable[[], Awaitable[T | None]],
        adapter: TypeAdapter[T],
    ) -> T | None:
        """Return the cached value for key, loading and caching it on a miss."""
        raw = await self._cache.get(key)
        if raw is not None:
            try:
                value = adapter.validate_json(raw)
            except ValidationError:
                logger.warning("Cache entry unreadable, reloading | key=%s", key)
                await self._cache.delete(key)
            else:
                logger.info("Cache HIT | key=%s", key)
                return value

        logger.info("Cache MISS | key=%s", key)
        value = await loader()
        if value is None:
            return None

        await self._cache.setex(key, self.ttl, adapter.dump_json(value).decode())
        return value

    async def mutate(
        self,
        operation: Callable[[], Awaitable[T | None]],
        invalidate: Iterable[str] = (),
        write_through: Callable[[T], str] | None = None,
        adapter: TypeAdapter[Any] | None = None,
    ) -> T | None:
        """Run a store write, then clear or overwrite the keys it made stale.

        Returns the operation's result; None means the target was not found,
        in which case no key is touched.
        """
        result = await operation()
        if result is None:
            return None

        keys = list(invalidate)
        if keys:
            await self._cache.delete(*keys)
            logger.info("Cache invalidated | keys=%s", ",".join(keys))

        if write_through is not None:
            if adapter is None:
                raise ValueError("write_through requires an adapter")
            key = write_through(result)
            await self._cache.setex(key, self.ttl, adapter.dump_json(result).decode())
            logger.info("Cache write-through | key=%s", key)

        return result

    async def invalidate(self, *keys: str) -> None:
        """Drop keys outright, e.g. to force a derived view to be rebuilt."""
        await self._cache.delete(*keys)
        logger.info("Cache invalidated | keys=%s", ",".join(keys))
