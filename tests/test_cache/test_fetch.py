"""Tests for read-through caching (use_cache / fetch_with_cache)."""

from __future__ import annotations

import asyncio
import gc
from typing import Any
from unittest.mock import MagicMock

import pytest

from agricache.cache import CacheEngine, SingleFlight, fetch_with_cache, use_cache


class CountingProducer:
    """Async producer that counts calls and returns a fresh payload each time."""

    def __init__(self, gate: asyncio.Event | None = None) -> None:
        self.calls = 0
        self._gate = gate

    async def __call__(self) -> dict[str, Any]:
        self.calls += 1
        if self._gate is not None:
            await self._gate.wait()
        return {"call": self.calls}


class TestReadThrough:
    def test_second_call_served_from_cache(self, engine: CacheEngine) -> None:
        producer = CountingProducer()
        handle = use_cache(engine, "posts_recent", producer)

        first = asyncio.run(handle.fetch_with_cache())
        second = asyncio.run(handle.fetch_with_cache())

        assert first == second == {"call": 1}
        assert producer.calls == 1

    def test_miss_stores_with_ttl(self, engine: CacheEngine, clock) -> None:
        producer = CountingProducer()
        handle = use_cache(engine, "k", producer, ttl=1000)

        asyncio.run(handle.fetch_with_cache())
        clock.advance(1001)
        result = asyncio.run(handle.fetch_with_cache())

        assert result == {"call": 2}
        assert producer.calls == 2

    def test_producer_error_propagates_and_is_not_cached(self, engine: CacheEngine) -> None:
        class UpstreamDown(Exception):
            pass

        async def failing() -> None:
            raise UpstreamDown("503")

        with pytest.raises(UpstreamDown, match="503"):
            asyncio.run(fetch_with_cache(engine, "k", failing))
        assert engine.has("k") is False

    def test_module_level_shorthand(self, engine: CacheEngine) -> None:
        producer = CountingProducer()
        asyncio.run(fetch_with_cache(engine, "k", producer))
        asyncio.run(fetch_with_cache(engine, "k", producer))
        assert producer.calls == 1


class TestBypass:
    def test_disabled_calls_producer_every_time(self, engine: CacheEngine) -> None:
        spy = MagicMock(wraps=engine)
        producer = CountingProducer()
        handle = use_cache(spy, "k", producer, enabled=False)

        asyncio.run(handle.fetch_with_cache())
        asyncio.run(handle.fetch_with_cache())

        assert producer.calls == 2
        assert spy.method_calls == []
        assert engine.store.length == 0


class TestPrimitives:
    def test_handle_primitives(self, engine: CacheEngine) -> None:
        handle = use_cache(engine, "weather_pune", CountingProducer(), ttl=5000)

        assert handle.has_cache() is False
        handle.set_cached_data({"temp": 30})
        assert handle.has_cache() is True
        assert handle.get_cached_data() == {"temp": 30}

        handle.clear_cache()
        assert handle.get_cached_data() is None

    def test_clear_cache_only_removes_own_key(self, engine: CacheEngine) -> None:
        engine.set("other", 1)
        handle = use_cache(engine, "mine", CountingProducer())
        handle.set_cached_data(2)
        handle.clear_cache()
        assert engine.get("other") == 1


class TestConcurrency:
    def test_concurrent_misses_each_call_producer(self, engine: CacheEngine) -> None:
        """Without single-flight, two overlapping misses both run the producer."""

        async def scenario() -> tuple[Any, Any, int]:
            gate = asyncio.Event()
            producer = CountingProducer(gate)
            handle = use_cache(engine, "k", producer)
            first = asyncio.ensure_future(handle.fetch_with_cache())
            second = asyncio.ensure_future(handle.fetch_with_cache())
            await asyncio.sleep(0)
            gate.set()
            a, b = await asyncio.gather(first, second)
            return a, b, producer.calls

        a, b, calls = asyncio.run(scenario())
        assert calls == 2
        assert engine.get("k") in (a, b)

    def test_single_flight_collapses_concurrent_misses(self, engine: CacheEngine) -> None:
        async def scenario() -> tuple[list[Any], int, int]:
            gate = asyncio.Event()
            producer = CountingProducer(gate)
            group = SingleFlight()
            handle = use_cache(engine, "k", producer, single_flight=group)
            tasks = [asyncio.ensure_future(handle.fetch_with_cache()) for _ in range(5)]
            await asyncio.sleep(0)
            gate.set()
            results = await asyncio.gather(*tasks)
            return results, producer.calls, len(group)

        results, calls, inflight = asyncio.run(scenario())
        assert calls == 1
        assert all(r == {"call": 1} for r in results)
        assert inflight == 0

    def test_single_flight_shares_errors_then_resets(self) -> None:
        async def scenario() -> int:
            group = SingleFlight()
            attempts = 0

            async def boom() -> None:
                nonlocal attempts
                attempts += 1
                await asyncio.sleep(0)
                raise RuntimeError("down")

            results = await asyncio.gather(
                group.do("k", boom), group.do("k", boom), return_exceptions=True
            )
            assert all(isinstance(r, RuntimeError) for r in results)
            with pytest.raises(RuntimeError):
                await group.do("k", boom)
            return attempts

        assert asyncio.run(scenario()) == 2

    def test_single_flight_failure_without_waiters_is_not_reported(self) -> None:
        reported: list[dict] = []

        async def scenario() -> int:
            loop = asyncio.get_running_loop()
            loop.set_exception_handler(lambda _loop, context: reported.append(context))
            group = SingleFlight()
            gate = asyncio.Event()

            async def boom() -> None:
                await gate.wait()
                raise RuntimeError("down")

            waiter = asyncio.ensure_future(group.do("k", boom))
            await asyncio.sleep(0)
            waiter.cancel()
            await asyncio.gather(waiter, return_exceptions=True)
            gate.set()
            for _ in range(5):
                await asyncio.sleep(0)
            return len(group)

        assert asyncio.run(scenario()) == 0
        gc.collect()
        assert reported == []
