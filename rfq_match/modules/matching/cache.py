"""Per-opportunity match cache with single-flight population.

Concurrent callers asking for the same key while a computation is running
await that computation instead of starting their own. Entries are only
stored once the computation has finished successfully, so no caller can
see a partially built result. Failures are not cached.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

from rfq_match.core.config import settings

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class _Entry(Generic[T]):
    value: T
    expires_at: float


class MatchCache(Generic[T]):
    """TTL cache keyed by opportunity id.

    A hit returns the stored value unchanged, even if candidate data changed
    since it was computed. Callers needing fresh results call ``invalidate``
    or bypass the cache.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = settings.MATCH_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, _Entry[T]] = {}
        self._inflight: dict[Hashable, asyncio.Task[T]] = {}
        self._lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for e in self._entries.values() if e.expires_at > now)

    @property
    def stored(self) -> int:
        """Entries currently held, including any not yet swept."""
        return len(self._entries)

    def peek(self, key: Hashable) -> T | None:
        entry = self._entries.get(key)
        if entry is None or entry.expires_at <= self._clock():
            return None
        return entry.value

    async def get_or_compute(self, key: Hashable, compute: Callable[[], Awaitable[T]]) -> T:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                if entry.expires_at > self._clock():
                    self.hits += 1
                    logger.debug("match_cache_hit", key=key)
                    return entry.value
                del self._entries[key]

            task = self._inflight.get(key)
            if task is None:
                self.misses += 1
                logger.debug("match_cache_miss", key=key)
                task = asyncio.ensure_future(compute())
                self._inflight[key] = task
                task.add_done_callback(lambda t, k=key: self._settle(k, t))
            else:
                logger.debug("match_cache_join_inflight", key=key)

        # Shielded so one caller giving up does not cancel the shared work.
        return await asyncio.shield(task)

    def _settle(self, key: Hashable, task: asyncio.Task[T]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("match_cache_compute_failed", key=key, error=str(exc))
            return
        now = self._clock()
        self._sweep(now)
        self._entries[key] = _Entry(task.result(), now + self.ttl_seconds)
        logger.debug("match_cache_stored", key=key, ttl=self.ttl_seconds)

    def _sweep(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug("match_cache_swept", expired=len(expired))

    def invalidate(self, key: Hashable) -> bool:
        """Drop a stored entry. An in-flight computation is left to finish."""
        removed = self._entries.pop(key, None) is not None
        logger.debug("match_cache_invalidated", key=key, removed=removed)
        return removed

    def clear(self) -> None:
        self._entries.clear()
