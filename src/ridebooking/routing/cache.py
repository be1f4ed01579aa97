"""Route result cache and in-flight request table.

A RouteCache is constructed once per process and handed to every resolver
that should share results. All mutation happens in plain synchronous
methods, so on a single event loop a check followed by an update can never
interleave with another coroutine.
"""

import asyncio
import contextlib
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ridebooking.routing.models import RouteResult

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry:
    key: str
    result: RouteResult
    created_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl


@dataclass
class InFlight:
    """A provider resolution shared by every caller waiting on the same key."""

    key: str
    task: "asyncio.Task[RouteResult]"
    waiters: int = 0


class RouteCache:
    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_size: int = 50,
        clock: Clock = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self.clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._in_flight: dict[str, InFlight] = {}
        self.requests = 0
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> RouteResult | None:
        """Return the live result for key, or None. Expired entries are dropped."""
        self.requests += 1
        entry = self._entries.get(key)
        if entry is not None and entry.is_expired(self.clock()):
            del self._entries[key]
            entry = None
        if entry is None:
            self.misses += 1
            return None
        self.hits += 1
        return entry.result.model_copy(update={"cached": True})

    def put(self, key: str, result: RouteResult) -> None:
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(
            key=key,
            result=result,
            created_at=self.clock(),
            ttl=self.ttl_seconds,
        )
        self._trim()

    def sweep(self) -> int:
        """Evict expired entries, then trim to max_size. Returns evicted count."""
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        evicted = len(expired) + self._trim()
        if evicted:
            logger.debug(f"Route cache sweep evicted {evicted} entries")
        return evicted

    def _trim(self) -> int:
        # Entries are kept in insertion order, which is creation order.
        trimmed = 0
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
            trimmed += 1
        return trimmed

    def get_in_flight(self, key: str) -> InFlight | None:
        return self._in_flight.get(key)

    def register_in_flight(self, flight: InFlight) -> None:
        if flight.key in self._in_flight:
            raise RuntimeError(f"Resolution already in flight for {flight.key}")
        self._in_flight[flight.key] = flight

    def release_in_flight(self, key: str, task: "asyncio.Task[RouteResult]") -> None:
        """Remove the entry for key if it still belongs to task."""
        flight = self._in_flight.get(key)
        if flight is not None and flight.task is task:
            del self._in_flight[key]

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def clear(self) -> None:
        self._entries.clear()
        self.requests = 0
        self.hits = 0
        self.misses = 0

    def get_cache_stats(self) -> dict[str, Any]:
        hit_rate = self.hits / self.requests if self.requests > 0 else 0.0
        return {
            "requests": self.requests,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": hit_rate,
            "cache_size": len(self._entries),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds,
            "in_flight": len(self._in_flight),
        }


class CacheSweeper:
    """Periodically evicts expired route cache entries."""

    def __init__(self, cache: RouteCache, interval_seconds: float = 60.0) -> None:
        self._cache = cache
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _sweep_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._interval)
                self._cache.sweep()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Error in route cache sweep loop")
