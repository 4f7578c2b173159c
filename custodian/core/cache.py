"""
In-memory TTL cache with single-flight population.

Entries live in a ``cachetools.TTLCache``. Concurrent callers missing the
same key await one shared fetch task instead of each hitting the exchange.
Failed fetches are not cached.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any

import cachetools

from custodian.utils.logger import get_logger

logger = get_logger(__name__)


class TTLCache:
    """Key/value cache whose entries expire a fixed time after population."""

    def __init__(
        self,
        ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], float] = time.monotonic,
        maxsize: int = 128,
    ) -> None:
        self.ttl = ttl
        self._entries: cachetools.TTLCache = cachetools.TTLCache(
            maxsize=maxsize, ttl=ttl.total_seconds(), timer=clock
        )
        self._inflight: dict[str, asyncio.Future[Any]] = {}

    def get(self, key: str) -> Any | None:
        """Return the live value for key, or None if absent or expired."""
        return self._entries.get(key)

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = value

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        """
        Return the cached value for key, fetching it on a miss.

        Args:
            key: Cache key
            fetch: Coroutine function producing the value

        Returns:
            Cached or freshly fetched value
        """
        value = self.get(key)
        if value is not None:
            return value

        task = self._inflight.get(key)
        if task is None:
            logger.debug("Cache miss, fetching", key=key)
            task = asyncio.ensure_future(self._populate(key, fetch))
            self._inflight[key] = task
            task.add_done_callback(lambda _: self._inflight.pop(key, None))

        # A cancelled waiter must not cancel the fetch other waiters share
        return await asyncio.shield(task)

    async def _populate(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        value = await fetch()
        self.set(key, value)
        return value
