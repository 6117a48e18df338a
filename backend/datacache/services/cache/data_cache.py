"""
Data Cache Controller

Binds one cache key to the coroutine that produces its value. Serves fresh
cached data when available, otherwise awaits the producer and caches the
result. Optionally re-fetches on a fixed interval while active.

Concurrent misses on the same key are not coalesced: each caller awaits the
producer and the last result written wins.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar, Union

from ...domain.cache.entities import CacheEntry, CacheStats
from ...domain.cache.value_objects import CacheKey, StorageMode
from .cache_manager import CacheManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


def next_tick(deadline: float, now: float, interval: float) -> float:
    """
    Next refresh deadline on a fixed grid starting at ``deadline``.

    Ticks missed while a slow producer was running are skipped rather than
    fired back to back.
    """
    deadline += interval
    if deadline <= now:
        missed = int((now - deadline) // interval) + 1
        deadline += missed * interval
    return deadline


class ControllerState(str, Enum):
    """Lifecycle of a controller."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    READY_WITH_ERROR = "ready_with_error"
    CLOSED = "closed"


class DataCacheController(Generic[T]):
    """
    Fetch-and-cache controller for a single key.

    Exposes ``data``, ``loading``, ``error`` and ``cache_stats``. Failed
    fetches keep the previous ``data`` so callers can go on showing the
    last good value. Errors from automatic loads are recorded only; errors
    from ``refresh_data`` are recorded and re-raised.

    Usage::

        async with DataCacheController("students:page:2", fetch_page, manager) as students:
            render(students.data)
    """

    def __init__(
        self,
        key: Union[str, CacheKey],
        producer: Callable[[], Awaitable[T]],
        manager: CacheManager,
        ttl: Optional[int] = None,
        storage: Union[str, StorageMode, None] = None,
        refresh_interval: Optional[int] = None,
    ):
        self.key = CacheKey.of(key)
        self.producer = producer
        self.manager = manager
        self.ttl = manager.default_ttl if ttl is None else ttl
        self.storage = StorageMode.parse(
            manager.default_storage if storage is None else storage
        )
        self.refresh_interval = refresh_interval

        if self.storage == StorageMode.PERSISTENT and not manager.persistent_enabled:
            raise ValueError("Persistent storage requested but manager has no persistent tier")
        if refresh_interval is not None and refresh_interval <= 0:
            raise ValueError("Refresh interval must be positive")

        self.data: Optional[T] = None
        self.error: Optional[Exception] = None
        self.cache_stats = CacheStats()
        self.state = ControllerState.IDLE

        self._in_flight = 0
        self._activated = False
        self._closed = False
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def loading(self) -> bool:
        """True while any fetch is in flight."""
        return self._in_flight > 0

    @property
    def closed(self) -> bool:
        return self._closed

    # Lifecycle

    async def activate(self) -> None:
        """Run the initial load and start periodic refresh if configured."""
        if self._closed:
            raise RuntimeError(f"Controller for {self.key} has been deactivated")
        if self._activated:
            return
        self._activated = True

        await self.load()

        if self.refresh_interval and not self._closed:
            self._refresh_task = asyncio.create_task(
                self._refresh_loop(), name=f"datacache-refresh:{self.key}"
            )

    async def deactivate(self) -> None:
        """Stop periodic refresh. Late producer results are no longer applied."""
        self._closed = True
        self.state = ControllerState.CLOSED

        task, self._refresh_task = self._refresh_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def __aenter__(self) -> "DataCacheController[T]":
        try:
            await self.activate()
        except BaseException:
            await self.deactivate()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.deactivate()

    # Cache access

    def get_cached_data(self) -> Optional[CacheEntry]:
        """Read the configured tiers, counting a hit or a miss."""
        entry = self.manager.read(self.key, mode=self.storage)
        if entry is None:
            self.cache_stats.record_miss()
        else:
            self.cache_stats.record_hit()
        return entry

    def set_cached_data(self, value: T) -> None:
        """Write the configured tiers with a fresh timestamp."""
        self.manager.write(self.key, value, ttl=self.ttl, mode=self.storage)
        self.cache_stats.size = self.manager.get_size()

    # Operations

    async def load(self) -> Optional[T]:
        """
        Serve from cache or fetch.

        Never raises for producer failures: they are stored in ``error``.

        Returns:
            Current ``data`` after the load
        """
        self._begin_fetch()
        try:
            entry = self.get_cached_data()
            if entry is not None:
                if not self._closed:
                    self.data = entry.data
                return self.data

            value = await self._produce()
            self.set_cached_data(value)
            if not self._closed:
                self.data = value
                self.error = None

        except Exception as e:
            logger.warning(f"Failed to load data for {self.key}: {e}")
            if not self._closed:
                self.error = e

        finally:
            self._end_fetch()

        return self.data

    async def refresh_data(self) -> T:
        """
        Invalidate this key and fetch again, bypassing freshness.

        Returns:
            The freshly produced value

        Raises:
            Whatever the producer raised; it is also stored in ``error``
        """
        self._begin_fetch()
        try:
            self.manager.invalidate(self.key)
            value = await self._produce()
            self.set_cached_data(value)
            if not self._closed:
                self.data = value
                self.error = None
            return value

        except Exception as e:
            logger.warning(f"Failed to refresh data for {self.key}: {e}")
            if not self._closed:
                self.error = e
            raise

        finally:
            self._end_fetch()

    def invalidate_cache(self) -> None:
        """Drop this key from both tiers without fetching."""
        self.manager.invalidate(self.key)
        self.cache_stats.size = self.manager.get_size()
        if not self._closed and not self.loading:
            self.state = ControllerState.IDLE

    def clear_all_cache(self) -> None:
        """Clear the whole namespace and reset this controller's stats."""
        self.manager.clear()
        self.cache_stats.reset()

    def get_cache_hit_rate(self) -> float:
        """Hit rate as a percentage; 0 before any read."""
        return self.cache_stats.hit_rate()

    # Internals

    async def _produce(self) -> T:
        try:
            value = await self.producer()
        except Exception:
            self.manager.metrics.record_producer_call(success=False)
            raise
        self.manager.metrics.record_producer_call(success=True)
        return value

    async def _refresh_loop(self) -> None:
        loop = asyncio.get_running_loop()
        interval_seconds = self.refresh_interval / 1000
        deadline = loop.time() + interval_seconds
        while not self._closed:
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            try:
                await self.refresh_data()
            except Exception:
                # Already recorded in self.error; keep the timer running
                pass
            deadline = next_tick(deadline, loop.time(), interval_seconds)

    def _begin_fetch(self) -> None:
        self._in_flight += 1
        if not self._closed:
            self.state = ControllerState.LOADING

    def _end_fetch(self) -> None:
        self._in_flight -= 1
        if self._closed or self._in_flight:
            return
        if self.error is not None:
            self.state = ControllerState.READY_WITH_ERROR
        else:
            self.state = ControllerState.READY
