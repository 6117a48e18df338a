"""
Cache Manager Service

Shared cache service layered over a volatile tier and an optional persistent
tier. One manager is constructed per process (or per test) and handed to the
controllers that need it; they all observe each other's writes.
"""

import logging
from typing import Any, Callable, Dict, Optional, Union

from opentelemetry import trace

from ...constants import CACHE_STORAGE_KEY, DEFAULT_TTL_MS, current_time_ms
from ...core.config import Settings
from ...domain.cache.entities import CacheEntry
from ...domain.cache.repository_interfaces import CacheTier
from ...domain.cache.value_objects import CacheKey, StorageMode, namespace_prefix
from ...infrastructure.storage.factory import build_persistent_tier
from ...infrastructure.storage.memory_tier import VolatileTier
from ...monitoring.cache_metrics import CacheMetricsCollector

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

KeyLike = Union[str, CacheKey]


class CacheManager:
    """
    Read-through cache service.

    Provides a get/set/invalidate/clear interface over both tiers. Writes
    always hit the volatile tier and are mirrored to the persistent tier on
    a best-effort basis; reads prefer the volatile tier and promote fresh
    persistent hits back into it.
    """

    def __init__(
        self,
        volatile: Optional[VolatileTier] = None,
        persistent: Optional[CacheTier] = None,
        namespace: str = CACHE_STORAGE_KEY,
        default_ttl: int = DEFAULT_TTL_MS,
        clock: Callable[[], int] = current_time_ms,
        metrics: Optional[CacheMetricsCollector] = None,
        default_storage: Union[str, StorageMode] = StorageMode.MEMORY,
    ):
        if not namespace:
            raise ValueError("Cache namespace cannot be empty")
        default_storage = StorageMode.parse(default_storage)
        if default_storage == StorageMode.PERSISTENT and persistent is None:
            raise ValueError("Persistent default storage requires a persistent tier")

        self.volatile = volatile if volatile is not None else VolatileTier()
        self.persistent = persistent
        self.namespace = namespace
        self.default_ttl = default_ttl
        self.clock = clock
        self.metrics = metrics or CacheMetricsCollector()
        self.default_storage = default_storage

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        clock: Callable[[], int] = current_time_ms,
        metrics: Optional[CacheMetricsCollector] = None,
    ) -> "CacheManager":
        """Build a manager with the tiers described by settings."""
        metrics = metrics or CacheMetricsCollector()
        return cls(
            persistent=build_persistent_tier(settings, metrics=metrics),
            namespace=settings.CACHE_NAMESPACE,
            default_ttl=settings.CACHE_DEFAULT_TTL_MS,
            clock=clock,
            metrics=metrics,
            default_storage=settings.CACHE_STORAGE_MODE,
        )

    @property
    def persistent_enabled(self) -> bool:
        return self.persistent is not None

    def storage_key(self, key: KeyLike) -> str:
        """Namespaced key used in both tiers."""
        return CacheKey.of(key).storage_key(self.namespace)

    # Global API

    def set(self, key: KeyLike, data: Any, ttl: Optional[int] = None) -> CacheEntry:
        """
        Cache data in both tiers.

        Args:
            key: Logical cache key
            data: Payload to cache
            ttl: Time to live in ms (manager default if not provided)

        Returns:
            The stored entry
        """
        return self.write(key, data, ttl=ttl, mode=StorageMode.BOTH)

    def get(self, key: KeyLike) -> Optional[Any]:
        """
        Get cached data.

        Args:
            key: Logical cache key

        Returns:
            Cached payload or None if absent or stale in both tiers
        """
        entry = self.read(key, mode=StorageMode.BOTH)
        return entry.data if entry is not None else None

    def invalidate(self, key: KeyLike) -> None:
        """Remove a key from both tiers. Unknown keys are ignored."""
        with tracer.start_as_current_span("cache_manager.invalidate") as span:
            storage_key = self.storage_key(key)
            span.set_attribute("cache.key", storage_key)

            self.volatile.delete(storage_key)
            if self.persistent is not None:
                self.persistent.delete(storage_key)
            self._update_size_gauge()

            logger.debug(f"Invalidated cache key {storage_key}")

    def clear(self) -> int:
        """
        Remove every entry under this manager's namespace from both tiers.

        Returns:
            Number of entries removed across tiers
        """
        with tracer.start_as_current_span("cache_manager.clear") as span:
            prefix = namespace_prefix(self.namespace)
            removed = self.volatile.clear_namespace(prefix)
            if self.persistent is not None:
                removed += self.persistent.clear_namespace(prefix)
            self._update_size_gauge()

            span.set_attribute("cache.removed", removed)
            logger.info(
                f"Cleared {removed} cache entries",
                extra={"namespace": self.namespace, "count": removed},
            )
            return removed

    def get_size(self) -> int:
        """Number of volatile entries, stale ones included."""
        return self.volatile.size()

    # Tier-selective operations used by controllers

    def read(self, key: KeyLike, mode: StorageMode = StorageMode.BOTH) -> Optional[CacheEntry]:
        """
        Look up a fresh entry in the tiers enabled by ``mode``.

        Args:
            key: Logical cache key
            mode: Tiers to consult; volatile first

        Returns:
            Fresh entry or None
        """
        with tracer.start_as_current_span("cache_manager.read") as span:
            storage_key = self.storage_key(key)
            span.set_attribute("cache.key", storage_key)
            span.set_attribute("cache.mode", mode.value)
            now = self.clock()

            if mode.uses_volatile:
                entry = self.volatile.get(storage_key)
                if entry is not None and entry.is_fresh(now):
                    self.metrics.record_lookup(self.volatile.name, "hit")
                    span.set_attribute("cache_hit", True)
                    span.set_attribute("cache.tier", self.volatile.name)
                    return entry
                self.metrics.record_lookup(
                    self.volatile.name, "miss" if entry is None else "stale"
                )

            if mode.uses_persistent and self.persistent is not None:
                result = self.persistent.read(storage_key)
                if result.is_error:
                    self.metrics.record_lookup(self.persistent.name, "error")
                elif result.is_hit and result.entry.is_fresh(now):
                    self.metrics.record_lookup(self.persistent.name, "hit")
                    if mode.uses_volatile:
                        # Promote so the next read is served from memory
                        self.volatile.write(storage_key, result.entry)
                        self._update_size_gauge()
                    span.set_attribute("cache_hit", True)
                    span.set_attribute("cache.tier", self.persistent.name)
                    return result.entry
                else:
                    self.metrics.record_lookup(
                        self.persistent.name, "stale" if result.is_hit else "miss"
                    )

            span.set_attribute("cache_hit", False)
            return None

    def write(
        self,
        key: KeyLike,
        data: Any,
        ttl: Optional[int] = None,
        mode: StorageMode = StorageMode.BOTH,
    ) -> CacheEntry:
        """
        Store data in the tiers enabled by ``mode``.

        Persistent tier failures are logged by the tier and otherwise ignored.

        Returns:
            The entry that was written
        """
        with tracer.start_as_current_span("cache_manager.write") as span:
            storage_key = self.storage_key(key)
            cache_ttl = self.default_ttl if ttl is None else ttl
            span.set_attribute("cache.key", storage_key)
            span.set_attribute("cache.ttl_ms", cache_ttl)

            entry = CacheEntry.create(data, cache_ttl, self.clock())

            if mode.uses_volatile:
                self.volatile.write(storage_key, entry)
                self._update_size_gauge()

            if mode.uses_persistent and self.persistent is not None:
                result = self.persistent.write(storage_key, entry)
                span.set_attribute("cache.persisted", not result.is_error)

            logger.debug(
                f"Cached {storage_key}",
                extra={"key": storage_key, "ttl": cache_ttl, "mode": mode.value},
            )
            return entry

    def stats(self) -> Dict[str, Any]:
        """Diagnostic snapshot of the manager."""
        return {
            "namespace": self.namespace,
            "default_ttl_ms": self.default_ttl,
            "volatile_size": self.get_size(),
            "persistent_enabled": self.persistent_enabled,
            "persistent_size": self.persistent.size() if self.persistent else 0,
            "metrics": self.metrics.snapshot(),
        }

    def close(self) -> None:
        """Release the persistent tier's storage. Volatile entries are kept."""
        if self.persistent is not None:
            self.persistent.close()
            logger.info(f"Closed persistent cache tier for {self.namespace}")

    def _update_size_gauge(self) -> None:
        self.metrics.set_volatile_entries(self.volatile.size())
