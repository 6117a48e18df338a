"""
Persistent cache tier.

Serializes entries to JSON text and keeps them in a ``StorageArea``. This is
the storage boundary: serialization errors, quota errors and unavailable
storage are logged, counted and reported as ``TierResult.failure``. Nothing
raised by the storage area escapes this module.
"""

from typing import Callable, Optional, TypeVar

import structlog

from ...domain.cache.entities import CacheEntry, TierResult
from ...domain.cache.repository_interfaces import CacheTier, StorageArea
from ...monitoring.cache_metrics import CacheMetricsCollector
from .exceptions import (
    CacheSerializationException,
    CacheStorageException,
    CacheStorageUnavailableException,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class PersistentTier(CacheTier):
    """Durable cache tier over a localStorage-like string store."""

    name = "persistent"

    def __init__(
        self,
        storage: StorageArea,
        metrics: Optional[CacheMetricsCollector] = None,
    ):
        self.storage = storage
        self.metrics = metrics

    def read(self, key: str) -> TierResult:
        try:
            raw = self._call("read", lambda: self.storage.get_item(key))
            if raw is None:
                return TierResult.miss()
            try:
                entry = CacheEntry.from_json(raw)
            except ValueError as e:
                raise CacheSerializationException(
                    "Stored cache entry could not be parsed", key=key, original_error=e
                )
            return TierResult.hit(entry)

        except CacheStorageException as e:
            return self._failure("read", key, e)

    def write(self, key: str, entry: CacheEntry) -> TierResult:
        try:
            try:
                payload = entry.to_json()
            except ValueError as e:
                raise CacheSerializationException(
                    "Cache entry could not be serialized", key=key, original_error=e
                )
            self._call("write", lambda: self.storage.set_item(key, payload))
            return TierResult.ok()

        except CacheStorageException as e:
            return self._failure("write", key, e)

    def delete(self, key: str) -> TierResult:
        try:
            self._call("delete", lambda: self.storage.remove_item(key))
            return TierResult.ok()

        except CacheStorageException as e:
            return self._failure("delete", key, e)

    def clear_namespace(self, prefix: str) -> int:
        try:
            doomed = [
                key
                for key in self._call("clear", lambda: list(self.storage.keys()))
                if key.startswith(prefix)
            ]
        except CacheStorageException as e:
            self._failure("clear", prefix, e)
            return 0

        removed = 0
        for key in doomed:
            if not self.delete(key).is_error:
                removed += 1
        return removed

    def size(self) -> int:
        try:
            return len(self._call("read", lambda: list(self.storage.keys())))
        except CacheStorageException as e:
            self._failure("read", "*", e)
            return 0

    def close(self) -> None:
        try:
            self._call("close", self.storage.close)
        except CacheStorageException as e:
            self._failure("close", "*", e)

    def _call(self, operation: str, fn: Callable[[], T]) -> T:
        """Run a storage call, normalising foreign errors."""
        try:
            return fn()
        except CacheStorageException:
            raise
        except Exception as e:
            raise CacheStorageUnavailableException(
                f"Storage {operation} failed", operation=operation, original_error=e
            )

    def _failure(
        self, operation: str, key: str, error: CacheStorageException
    ) -> TierResult:
        logger.warning(
            "Persistent cache tier operation failed",
            operation=operation,
            key=key,
            error=error.message,
            error_code=error.error_code,
            error_type=type(error).__name__,
        )
        if self.metrics is not None:
            self.metrics.record_tier_error(self.name, operation)
        return TierResult.failure(error)
