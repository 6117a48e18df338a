"""
Cache Repository Interfaces

Abstract repository interfaces following DDD Repository pattern.
Defines contracts for cache tiers and the string stores behind them.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from .entities import CacheEntry, TierResult


class CacheTier(ABC):
    """
    Abstract cache tier.

    Tier operations are synchronous and never raise: storage failures are
    reported as ``TierResult.failure`` by ``read``/``write``/``delete``.
    """

    name: str = "tier"

    @abstractmethod
    def read(self, key: str) -> TierResult:
        """Look up the entry stored under ``key``."""
        pass

    @abstractmethod
    def write(self, key: str, entry: CacheEntry) -> TierResult:
        """Store ``entry`` under ``key``, replacing any previous entry."""
        pass

    @abstractmethod
    def delete(self, key: str) -> TierResult:
        """Remove ``key``; removing an unknown key is a successful no-op."""
        pass

    @abstractmethod
    def clear_namespace(self, prefix: str) -> int:
        """Remove every key starting with ``prefix``, returning the count."""
        pass

    @abstractmethod
    def size(self) -> int:
        """Number of stored entries, stale ones included."""
        pass

    def get(self, key: str) -> Optional[CacheEntry]:
        """Entry for ``key`` or None; errors count as absent."""
        result = self.read(key)
        return result.entry if result.is_hit else None

    def set(self, key: str, entry: CacheEntry) -> None:
        self.write(key, entry)

    def close(self) -> None:
        """Release resources held by the tier."""


class StorageArea(ABC):
    """
    Durable string key/value store, modelled on browser localStorage.

    Implementations raise ``CacheStorageException`` subclasses on failure.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass

    @abstractmethod
    def keys(self) -> Iterable[str]:
        pass

    def close(self) -> None:
        """Release connections or handles; the area is unusable afterwards."""
