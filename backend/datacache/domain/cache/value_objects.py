"""
Cache Value Objects

Immutable value objects for cache domain following DDD principles.
Provides type safety and business logic encapsulation for cache operations.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from ...constants import CACHE_KEY_SEPARATOR


class StorageMode(str, Enum):
    """Which tiers a controller reads from and writes to."""

    MEMORY = "memory"
    PERSISTENT = "localStorage"
    BOTH = "both"

    @property
    def uses_volatile(self) -> bool:
        return self in (StorageMode.MEMORY, StorageMode.BOTH)

    @property
    def uses_persistent(self) -> bool:
        return self in (StorageMode.PERSISTENT, StorageMode.BOTH)

    @classmethod
    def parse(cls, value: Union[str, "StorageMode"]) -> "StorageMode":
        """Resolve a mode from its configuration string."""
        if isinstance(value, StorageMode):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = [mode.value for mode in cls]
            raise ValueError(f"Storage mode must be one of: {allowed}") from None


class TierStatus(str, Enum):
    """Outcome of a single tier operation."""

    HIT = "hit"
    MISS = "miss"
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class CacheKey:
    """
    Immutable cache key value object.

    Identifies one logical fetch, e.g. ``students:page:2``. Any non-empty
    string is accepted; filter keys may be long and contain spaces.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate cache key format."""
        if not isinstance(self.value, str) or not self.value:
            raise ValueError("Cache key cannot be empty")

    @classmethod
    def of(cls, key: Union[str, "CacheKey"]) -> "CacheKey":
        """Coerce a plain string into a key."""
        if isinstance(key, CacheKey):
            return key
        return cls(key)

    def storage_key(self, namespace: str) -> str:
        """Key under which the entry is stored in a tier."""
        return f"{namespace}{CACHE_KEY_SEPARATOR}{self.value}"

    def __str__(self) -> str:
        return self.value


def namespace_prefix(namespace: str) -> str:
    """Prefix shared by every storage key of a namespace."""
    return f"{namespace}{CACHE_KEY_SEPARATOR}"
