"""
School Dash Cache Configuration

Configuration management with environment variable support.
Implements secure defaults and validation for all cache settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Optional
from functools import lru_cache
from dotenv import load_dotenv

from ..constants import CACHE_STORAGE_KEY, DEFAULT_TTL_MS

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation and secure defaults."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Environment settings
    ENVIRONMENT: str = Field(
        default="development", description="Application environment"
    )

    # Cache configuration
    CACHE_NAMESPACE: str = Field(
        default=CACHE_STORAGE_KEY,
        min_length=1,
        description="Prefix for every persisted cache key",
    )
    CACHE_DEFAULT_TTL_MS: int = Field(
        default=DEFAULT_TTL_MS,
        ge=0,
        description="Default entry time to live in milliseconds",
    )
    CACHE_STORAGE_MODE: str = Field(
        default="memory", description="Tiers used by controllers by default"
    )
    CACHE_PERSISTENT_BACKEND: str = Field(
        default="file", description="Persistent tier backend (file, redis, memory, none)"
    )
    CACHE_FILE_DIRECTORY: str = Field(
        default=".cache/school-dash", description="Directory for file-backed storage"
    )
    CACHE_FILE_QUOTA_BYTES: Optional[int] = Field(
        default=5 * 1024 * 1024,
        ge=1,
        description="Maximum total size of file-backed storage",
    )

    # Redis configuration
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0", description="Redis connection URL"
    )
    REDIS_SOCKET_TIMEOUT: float = Field(
        default=2.0, gt=0, le=60, description="Redis socket timeout in seconds"
    )

    # OpenTelemetry configuration
    OTEL_SERVICE_NAME: str = Field(
        default="school-dash-cache", description="OpenTelemetry service name"
    )
    OTEL_SERVICE_VERSION: str = Field(
        default="0.1.0", description="OpenTelemetry service version"
    )

    # Development and debugging
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Log renderer (json, console)")

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value."""
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of: {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of: {allowed}")
        return v.upper()

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v):
        """Validate log renderer."""
        allowed = ["json", "console"]
        if v.lower() not in allowed:
            raise ValueError(f"LOG_FORMAT must be one of: {allowed}")
        return v.lower()

    @field_validator("CACHE_STORAGE_MODE")
    @classmethod
    def validate_storage_mode(cls, v):
        """Validate default storage mode."""
        allowed = ["memory", "localStorage", "both"]
        if v not in allowed:
            raise ValueError(f"CACHE_STORAGE_MODE must be one of: {allowed}")
        return v

    @field_validator("CACHE_PERSISTENT_BACKEND")
    @classmethod
    def validate_persistent_backend(cls, v):
        """Validate persistent backend name."""
        allowed = ["file", "redis", "memory", "none"]
        if v.lower() not in allowed:
            raise ValueError(f"CACHE_PERSISTENT_BACKEND must be one of: {allowed}")
        return v.lower()

    @field_validator("REDIS_URL")
    @classmethod
    def validate_redis_url(cls, v):
        """Validate Redis URL format."""
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("REDIS_URL must be a redis:// or rediss:// URL")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
