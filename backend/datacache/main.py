"""
School Dash Cache - FastAPI Application

Diagnostics service for the shared data cache: exposes cache statistics,
Prometheus counters and explicit invalidation.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI
import structlog

from .constants import APP_NAME, APP_VERSION
from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .services.cache.cache_manager import CacheManager
from .api.endpoints.cache import router as cache_router

logger = structlog.get_logger()


def create_app(
    settings: Optional[Settings] = None,
    cache_manager: Optional[CacheManager] = None,
) -> FastAPI:
    """Build the application; a prebuilt manager may be injected."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        owns_manager = getattr(app.state, "cache_manager", None) is None
        if owns_manager:
            app.state.cache_manager = CacheManager.from_settings(settings)

        logger.info(
            "School Dash cache service started",
            version=APP_VERSION,
            environment=settings.ENVIRONMENT,
            namespace=app.state.cache_manager.namespace,
            persistent_enabled=app.state.cache_manager.persistent_enabled,
        )

        yield

        logger.info("Shutting down School Dash cache service")
        # Injected managers belong to the caller
        if owns_manager:
            app.state.cache_manager.close()
            app.state.cache_manager = None

    app = FastAPI(
        title=APP_NAME,
        version=APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.cache_manager = cache_manager

    @app.get("/health")
    async def health_check() -> Dict[str, Any]:
        """Basic health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": settings.OTEL_SERVICE_NAME,
            "version": settings.OTEL_SERVICE_VERSION,
            "environment": settings.ENVIRONMENT,
        }

    app.include_router(cache_router)
    return app
