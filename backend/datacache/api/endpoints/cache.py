"""
Cache Diagnostics API Endpoints

Read-only introspection of the shared cache plus explicit invalidation.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field
from prometheus_client import CONTENT_TYPE_LATEST

import structlog
from ...domain.cache.value_objects import CacheKey
from ...services.cache.cache_manager import CacheManager

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/cache", tags=["cache"])


class CacheStatsResponse(BaseModel):
    """Cache statistics model."""

    timestamp: str
    namespace: str
    default_ttl_ms: int
    volatile_size: int
    persistent_enabled: bool
    persistent_size: int
    metrics: Dict[str, Any]


class CacheEntryResponse(BaseModel):
    """Cached entry model."""

    key: str
    data: Any
    stored_at: int = Field(..., description="Insertion time in ms since epoch")
    ttl: int = Field(..., description="Validity window in ms")
    expires_at: int


class CacheClearResponse(BaseModel):
    """Namespace clear result."""

    namespace: str
    removed: int


def get_cache_manager(request: Request) -> CacheManager:
    """Shared cache manager attached to the application."""
    manager: Optional[CacheManager] = getattr(request.app.state, "cache_manager", None)
    if manager is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cache manager not initialized",
        )
    return manager


def _parse_key(key: str) -> CacheKey:
    try:
        return CacheKey(key)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


@router.get("/stats", response_model=CacheStatsResponse)
async def get_cache_stats(
    manager: CacheManager = Depends(get_cache_manager),
) -> CacheStatsResponse:
    """Cache sizes and counters."""
    return CacheStatsResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        **manager.stats(),
    )


@router.get("/metrics", response_class=PlainTextResponse)
async def get_cache_metrics(
    manager: CacheManager = Depends(get_cache_manager),
) -> PlainTextResponse:
    """Prometheus exposition of cache counters."""
    return PlainTextResponse(
        manager.metrics.export().decode("utf-8"), media_type=CONTENT_TYPE_LATEST
    )


@router.get("/entries/{key:path}", response_model=CacheEntryResponse)
async def get_cache_entry(
    key: str = Path(..., description="Logical cache key"),
    manager: CacheManager = Depends(get_cache_manager),
) -> CacheEntryResponse:
    """Fresh entry for a key, 404 when absent or stale."""
    cache_key = _parse_key(key)
    entry = manager.read(cache_key)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No fresh cache entry for '{cache_key}'",
        )
    return CacheEntryResponse(
        key=str(cache_key),
        data=entry.data,
        stored_at=entry.stored_at,
        ttl=entry.ttl,
        expires_at=entry.expires_at(),
    )


@router.delete("/entries/{key:path}", status_code=status.HTTP_204_NO_CONTENT)
async def invalidate_cache_entry(
    key: str = Path(..., description="Logical cache key"),
    manager: CacheManager = Depends(get_cache_manager),
) -> None:
    """Invalidate a key in both tiers."""
    cache_key = _parse_key(key)
    manager.invalidate(cache_key)
    logger.info("Cache entry invalidated via API", key=str(cache_key))


@router.delete("/entries", response_model=CacheClearResponse)
async def clear_cache(
    manager: CacheManager = Depends(get_cache_manager),
) -> CacheClearResponse:
    """Clear every entry under the namespace."""
    removed = manager.clear()
    logger.info("Cache namespace cleared via API", namespace=manager.namespace, removed=removed)
    return CacheClearResponse(namespace=manager.namespace, removed=removed)
