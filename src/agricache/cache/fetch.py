"""Read-through caching on top of :class:`~agricache.cache.engine.CacheEngine`.

:func:`use_cache` binds a cache key and an async producer into a
:class:`CacheHandle`. Its :meth:`~CacheHandle.fetch_with_cache` serves the
live cached value when there is one, and otherwise awaits the producer,
stores the result and returns it. Producer failures propagate unchanged
and are never cached.

Concurrent misses on the same key are not coalesced by default: each
caller runs the producer and the last write wins. Passing a
:class:`SingleFlight` group opts into sharing one in-flight producer call
per key.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from agricache.cache.engine import CacheEngine

logger = logging.getLogger(__name__)

Producer = Callable[[], Awaitable[Any]]


class SingleFlight:
    """Collapse concurrent calls for the same key onto one in-flight task.

    Every caller that arrives while a task for its key is running awaits
    that same task and receives its result or exception. The slot is freed
    as soon as the task settles, so later calls start a fresh one.
    """

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Task[Any]] = {}

    def __len__(self) -> int:
        return len(self._inflight)

    async def do(self, key: str, fn: Producer) -> Any:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(lambda _t: self._forget(key, _t))
        else:
            logger.debug("Joining in-flight fetch for '%s'", key)
        # shield: one cancelled waiter must not cancel the shared task.
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the outcome retrieved in case every waiter was cancelled.
        if not task.cancelled():
            task.exception()


class CacheHandle:
    """Cache primitives and read-through fetch bound to a single key.

    Args:
        engine: Shared cache engine.
        key: Logical cache key.
        producer: Zero-argument coroutine function producing fresh data.
        ttl: Entry lifetime in ms; ``None`` uses the engine default.
        enabled: When ``False``, :meth:`fetch_with_cache` bypasses the cache.
        single_flight: Optional group used to coalesce concurrent misses.
    """

    def __init__(
        self,
        engine: CacheEngine,
        key: str,
        producer: Producer,
        ttl: Optional[int] = None,
        enabled: bool = True,
        single_flight: Optional[SingleFlight] = None,
    ) -> None:
        self._engine = engine
        self._key = key
        self._producer = producer
        self._ttl = ttl
        self._enabled = enabled
        self._single_flight = single_flight

    @property
    def key(self) -> str:
        return self._key

    def get_cached_data(self) -> Any:
        return self._engine.get(self._key)

    def set_cached_data(self, data: Any) -> None:
        self._engine.set(self._key, data, ttl=self._ttl)

    def clear_cache(self) -> None:
        self._engine.delete(self._key)

    def has_cache(self) -> bool:
        return self._engine.has(self._key)

    async def fetch_with_cache(self) -> Any:
        """Return cached data for the key, producing and caching it on a miss.

        Raises:
            Exception: Whatever the producer raises, unchanged.
        """
        if not self._enabled:
            return await self._producer()

        cached = self._engine.get(self._key)
        if cached is not None:
            logger.debug("Cache hit: %s", self._key)
            return cached

        if self._single_flight is not None:
            return await self._single_flight.do(self._key, self._produce_and_store)
        return await self._produce_and_store()

    async def _produce_and_store(self) -> Any:
        data = await self._producer()
        self._engine.set(self._key, data, ttl=self._ttl)
        return data


def use_cache(
    engine: CacheEngine,
    key: str,
    producer: Producer,
    *,
    ttl: Optional[int] = None,
    enabled: bool = True,
    single_flight: Optional[SingleFlight] = None,
) -> CacheHandle:
    """Bind *key* and *producer* to *engine* and return a :class:`CacheHandle`.

    Example::

        handle = use_cache(engine, "posts_recent", load_posts, ttl=600_000)
        posts = await handle.fetch_with_cache()
        handle.clear_cache()
    """
    return CacheHandle(
        engine,
        key,
        producer,
        ttl=ttl,
        enabled=enabled,
        single_flight=single_flight,
    )


async def fetch_with_cache(
    engine: CacheEngine,
    key: str,
    producer: Producer,
    *,
    ttl: Optional[int] = None,
    enabled: bool = True,
) -> Any:
    """One-shot shorthand for ``use_cache(...).fetch_with_cache()``."""
    return await use_cache(engine, key, producer, ttl=ttl, enabled=enabled).fetch_with_cache()
