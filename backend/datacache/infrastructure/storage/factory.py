"""
Storage factory.

Builds the persistent tier's storage area from settings.
"""

from typing import Optional

import structlog

from ...core.config import Settings
from ...domain.cache.repository_interfaces import StorageArea
from ...domain.cache.value_objects import namespace_prefix
from ...monitoring.cache_metrics import CacheMetricsCollector
from .persistent_tier import PersistentTier
from .storage_areas import FileStorageArea, MemoryStorageArea, RedisStorageArea

logger = structlog.get_logger(__name__)


def build_storage_area(settings: Settings) -> Optional[StorageArea]:
    """Create the configured storage area, or None when persistence is off."""
    backend = settings.CACHE_PERSISTENT_BACKEND

    if backend == "none":
        return None
    if backend == "memory":
        return MemoryStorageArea()
    if backend == "redis":
        return RedisStorageArea.from_url(
            settings.REDIS_URL,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            scan_match=f"{namespace_prefix(settings.CACHE_NAMESPACE)}*",
        )
    if backend == "file":
        return FileStorageArea(
            settings.CACHE_FILE_DIRECTORY, quota_bytes=settings.CACHE_FILE_QUOTA_BYTES
        )
    raise ValueError(f"Unsupported persistent backend: {backend}")


def build_persistent_tier(
    settings: Settings, metrics: Optional[CacheMetricsCollector] = None
) -> Optional[PersistentTier]:
    storage = build_storage_area(settings)
    if storage is None:
        logger.info("Persistent cache tier disabled")
        return None

    logger.info(
        "Persistent cache tier configured",
        backend=settings.CACHE_PERSISTENT_BACKEND,
        namespace=settings.CACHE_NAMESPACE,
    )
    return PersistentTier(storage, metrics=metrics)
