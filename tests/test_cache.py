"""Tests for the single-flight match cache."""

import asyncio

import pytest

from rfq_match.modules.matching.cache import MatchCache

pytestmark = pytest.mark.anyio


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestSingleFlight:
    async def test_concurrent_callers_share_one_computation(self):
        cache: MatchCache[object] = MatchCache(ttl_seconds=300)
        release = asyncio.Event()
        calls = 0

        async def compute():
            nonlocal calls
            calls += 1
            await release.wait()
            return object()

        waiters = [asyncio.ensure_future(cache.get_or_compute("opp-1", compute)) for _ in range(10)]
        await asyncio.sleep(0)
        assert cache.peek("opp-1") is None  # nothing stored while in flight
        release.set()
        results = await asyncio.gather(*waiters)

        assert calls == 1
        assert all(r is results[0] for r in results)
        assert cache.misses == 1

    async def test_hit_returns_stored_value(self):
        cache: MatchCache[list[int]] = MatchCache(ttl_seconds=300)
        first = await cache.get_or_compute("opp-1", _value([1, 2]))
        second = await cache.get_or_compute("opp-1", _value([3]))
        assert second is first
        assert cache.hits == 1

    async def test_keys_are_independent(self):
        cache: MatchCache[str] = MatchCache(ttl_seconds=300)
        assert await cache.get_or_compute("a", _value("A")) == "A"
        assert await cache.get_or_compute("b", _value("B")) == "B"
        assert len(cache) == 2

    async def test_failure_not_cached_and_shared(self):
        cache: MatchCache[str] = MatchCache(ttl_seconds=300)
        release = asyncio.Event()

        async def failing():
            await release.wait()
            raise RuntimeError("boom")

        waiters = [asyncio.ensure_future(cache.get_or_compute("k", failing)) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*waiters, return_exceptions=True)
        assert all(isinstance(r, RuntimeError) for r in results)

        assert await cache.get_or_compute("k", _value("ok")) == "ok"


class TestExpiry:
    async def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache: MatchCache[str] = MatchCache(ttl_seconds=300, clock=clock)
        await cache.get_or_compute("k", _value("old"))

        clock.now += 299
        assert await cache.get_or_compute("k", _value("new")) == "old"

        clock.now += 2
        assert cache.peek("k") is None
        assert await cache.get_or_compute("k", _value("new")) == "new"

    async def test_expired_entries_swept_when_storing(self):
        clock = FakeClock()
        cache: MatchCache[int] = MatchCache(ttl_seconds=300, clock=clock)
        for i in range(1000):
            await cache.get_or_compute(f"opp-{i}", _value(i))
        assert cache.stored == 1000

        clock.now += 301
        assert len(cache) == 0
        await cache.get_or_compute("opp-new", _value(-1))
        assert cache.stored == 1
        assert cache.peek("opp-new") == -1

    async def test_invalidate_and_clear(self):
        cache: MatchCache[str] = MatchCache(ttl_seconds=300)
        await cache.get_or_compute("k", _value("v1"))
        assert cache.invalidate("k") is True
        assert cache.invalidate("k") is False
        assert await cache.get_or_compute("k", _value("v2")) == "v2"

        cache.clear()
        assert len(cache) == 0


def _value(v):
    async def compute():
        return v

    return compute
