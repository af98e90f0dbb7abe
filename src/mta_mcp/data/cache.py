"""TTL-based snapshot caches for the static schedule and the live feed."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from mta_mcp.models.gtfs import StaticSnapshot
from mta_mcp.models.realtime import LiveSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StaticDataError(RuntimeError):
    """The static schedule could not be loaded; no data can be served."""


class SnapshotCache(Generic[T]):
    """Single-value TTL cache that reloads its value when it expires.

    A refresh builds the new value first and then swaps the reference, so
    callers holding the previous value are unaffected. Uses an async lock
    to prevent concurrent loads of the same expiry window.
    """

    def __init__(
        self,
        loader: Callable[[], Awaitable[T]],
        ttl: float,
        timer: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            loader: Coroutine function producing a fresh value.
            ttl: Time-to-live in seconds for cached values.
            timer: Monotonic clock, injectable for tests.
        """
        self._loader = loader
        self._ttl = ttl
        self._timer = timer
        self._value: T | None = None
        self._loaded_at: float | None = None
        self._lock = asyncio.Lock()

    @property
    def loaded_at(self) -> float | None:
        """Timer reading of the last successful load, None before the first."""
        return self._loaded_at

    def _fresh(self) -> T | None:
        if self._loaded_at is not None and self._timer() - self._loaded_at < self._ttl:
            return self._value
        return None

    async def get(self) -> T:
        """Return the cached value, loading a new one if expired or unset."""
        cached = self._fresh()
        if cached is not None:
            return cached

        async with self._lock:
            # Double-check after acquiring lock
            cached = self._fresh()
            if cached is not None:
                return cached

            value = await self._loader()
            self._value = value
            self._loaded_at = self._timer()
            return value

    def clear(self) -> None:
        """Clear the cached value."""
        self._value = None
        self._loaded_at = None


class TransitDataCache:
    """Owns the static and live snapshot caches.

    The two caches refresh independently and are never locked together.
    Construct one per process and pass it to the query layer.
    """

    def __init__(
        self,
        static_loader: Callable[[], Awaitable[StaticSnapshot]],
        live_loader: Callable[[], Awaitable[LiveSnapshot]],
        static_ttl: float = 300.0,
        live_ttl: float = 30.0,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.static = SnapshotCache[StaticSnapshot](static_loader, static_ttl, timer)
        self.live = SnapshotCache[LiveSnapshot](live_loader, live_ttl, timer)

    async def get_static(self) -> StaticSnapshot:
        """Current static snapshot.

        Raises:
            StaticDataError: If the schedule has to be loaded and loading fails.
        """
        try:
            return await self.static.get()
        except Exception as e:
            logger.error(f"Failed to load static schedule: {e}")
            raise StaticDataError(f"Static schedule unavailable: {e}") from e

    async def get_live(self) -> LiveSnapshot:
        return await self.live.get()

    async def get_snapshots(self) -> tuple[StaticSnapshot, LiveSnapshot]:
        """Consistent (static, live) pair for one query."""
        static, live = await asyncio.gather(self.get_static(), self.get_live())
        return static, live

    def clear(self) -> None:
        self.static.clear()
        self.live.clear()
