"""
Main pytest configuration for all backend tests.

Fixtures, configuration, and utilities for cache unit and API tests.
"""

import os
import pytest

# Set test environment variables before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["CACHE_PERSISTENT_BACKEND"] = "memory"

from datacache.infrastructure.storage.exceptions import (
    CacheQuotaExceededException,
    CacheStorageUnavailableException,
)
from datacache.infrastructure.storage.memory_tier import VolatileTier
from datacache.infrastructure.storage.persistent_tier import PersistentTier
from datacache.infrastructure.storage.storage_areas import MemoryStorageArea
from datacache.monitoring.cache_metrics import CacheMetricsCollector
from datacache.services.cache.cache_manager import CacheManager


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FailingStorageArea(MemoryStorageArea):
    """Storage area whose operations can be made to fail on demand."""

    def __init__(self):
        super().__init__()
        self.fail_reads = False
        self.fail_writes = False
        self.fail_deletes = False

    def get_item(self, key):
        if self.fail_reads:
            raise CacheStorageUnavailableException("storage disabled", operation="read")
        return super().get_item(key)

    def set_item(self, key, value):
        if self.fail_writes:
            raise CacheQuotaExceededException(key, len(value), 0)
        super().set_item(key, value)

    def remove_item(self, key):
        if self.fail_deletes:
            raise CacheStorageUnavailableException("storage disabled", operation="delete")
        super().remove_item(key)


@pytest.fixture
def clock():
    """Fake clock shared by the manager under test."""
    return FakeClock()


@pytest.fixture
def metrics():
    """Fresh metrics collector with its own registry."""
    return CacheMetricsCollector()


@pytest.fixture
def storage_area():
    """Dictionary-backed persistent storage."""
    return MemoryStorageArea()


@pytest.fixture
def failing_storage():
    """Persistent storage that can be switched into failure modes."""
    return FailingStorageArea()


@pytest.fixture
def cache_manager(clock, metrics, storage_area):
    """Two-tier cache manager on fake time."""
    return CacheManager(
        volatile=VolatileTier(),
        persistent=PersistentTier(storage_area, metrics=metrics),
        clock=clock,
        metrics=metrics,
    )


@pytest.fixture
def memory_only_manager(clock, metrics):
    """Cache manager without a persistent tier."""
    return CacheManager(clock=clock, metrics=metrics)


@pytest.fixture
def failing_manager(clock, metrics, failing_storage):
    """Cache manager whose persistent tier can fail."""
    return CacheManager(
        persistent=PersistentTier(failing_storage, metrics=metrics),
        clock=clock,
        metrics=metrics,
    )


# Test markers and configuration
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "redis: marks tests as Redis-related")
    config.addinivalue_line("markers", "api: marks tests as API tests")


def pytest_collection_modifyitems(config, items):
    """Add markers based on test file location."""
    for item in items:
        if "redis" in item.nodeid:
            item.add_marker(pytest.mark.redis)
        if "api" in item.nodeid:
            item.add_marker(pytest.mark.api)
