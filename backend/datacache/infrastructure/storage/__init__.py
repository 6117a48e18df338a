"""
Cache storage infrastructure.

Volatile and persistent tiers plus the storage areas behind the latter.
"""

from .exceptions import (
    CacheStorageException,
    CacheSerializationException,
    CacheQuotaExceededException,
    CacheStorageUnavailableException,
)
from .memory_tier import VolatileTier
from .persistent_tier import PersistentTier
from .storage_areas import FileStorageArea, MemoryStorageArea, RedisStorageArea

__all__ = [
    "CacheStorageException",
    "CacheSerializationException",
    "CacheQuotaExceededException",
    "CacheStorageUnavailableException",
    "VolatileTier",
    "PersistentTier",
    "FileStorageArea",
    "MemoryStorageArea",
    "RedisStorageArea",
]
