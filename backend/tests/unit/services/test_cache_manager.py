"""
Unit tests for Cache Manager Service.

Tests the shared two-tier cache: read-through, promotion, invalidation,
namespace clearing and graceful degradation of the persistent tier.
"""

import pytest
from unittest.mock import patch

from datacache.core.config import Settings
from datacache.domain.cache.entities import CacheEntry
from datacache.domain.cache.value_objects import StorageMode
from datacache.infrastructure.storage.persistent_tier import PersistentTier
from datacache.infrastructure.storage.storage_areas import MemoryStorageArea
from datacache.services.cache.cache_manager import CacheManager


class TestCacheManager:
    """Test CacheManager service."""

    @pytest.fixture
    def sample_students(self):
        """Sample student page for testing."""
        return {
            "page": 2,
            "students": [
                {"id": "st-1", "name": "Sara", "grade": 5},
                {"id": "st-2", "name": "Omar", "grade": 5},
            ],
        }

    def test_set_then_get(self, cache_manager, sample_students):
        """Round trip before the TTL elapses."""
        cache_manager.set("students:page:2", sample_students, ttl=1000)

        assert cache_manager.get("students:page:2") == sample_students

    def test_set_mirrors_to_persistent(self, cache_manager, storage_area, sample_students):
        """Writes land in both tiers under the namespaced key."""
        cache_manager.set("students:page:2", sample_students)

        raw = storage_area.get_item("school-dash-cache-students:page:2")
        assert CacheEntry.from_json(raw).data == sample_students
        assert cache_manager.get_size() == 1

    def test_default_ttl(self, cache_manager, clock):
        cache_manager.set("classes", ["5A"])

        clock.advance(300_000 - 1)
        assert cache_manager.get("classes") == ["5A"]

        clock.advance(1)
        assert cache_manager.get("classes") is None

    def test_expiry_boundary(self, cache_manager, clock):
        """Hit at storedAt + ttl - 1, miss at storedAt + ttl."""
        cache_manager.set("k1", {"v": 1}, ttl=1000)

        clock.advance(999)
        assert cache_manager.get("k1") == {"v": 1}

        clock.advance(1)
        assert cache_manager.get("k1") is None

    def test_stale_entries_left_in_place(self, cache_manager, clock):
        """Expiry is lazy: stale entries are ignored, not removed."""
        cache_manager.set("k1", 1, ttl=10)
        clock.advance(10)

        assert cache_manager.get("k1") is None
        assert cache_manager.get_size() == 1

    def test_get_missing(self, cache_manager):
        assert cache_manager.get("never-set") is None

    def test_promotion_on_read(self, cache_manager, storage_area, clock):
        """A fresh persistent hit is copied back into the volatile tier."""
        entry = CacheEntry.create({"teachers": 12}, ttl=1000, now_ms=clock())
        storage_area.set_item("school-dash-cache-stats", entry.to_json())

        assert cache_manager.get_size() == 0
        assert cache_manager.get("stats") == {"teachers": 12}
        assert cache_manager.get_size() == 1
        assert cache_manager.volatile.get("school-dash-cache-stats") == entry

    def test_stale_persistent_entry_not_promoted(self, cache_manager, storage_area, clock):
        entry = CacheEntry.create("old", ttl=1000, now_ms=clock() - 5000)
        storage_area.set_item("school-dash-cache-stats", entry.to_json())

        assert cache_manager.get("stats") is None
        assert cache_manager.get_size() == 0

    def test_persistent_survives_restart(self, clock, metrics, storage_area):
        """A new manager over the same storage sees earlier writes."""
        first = CacheManager(persistent=PersistentTier(storage_area), clock=clock, metrics=metrics)
        first.set("finance:summary", {"paid": 10})

        second = CacheManager(persistent=PersistentTier(storage_area), clock=clock)
        assert second.get("finance:summary") == {"paid": 10}

    def test_invalidate(self, cache_manager, storage_area):
        cache_manager.set("k1", 1)
        cache_manager.invalidate("k1")

        assert cache_manager.get("k1") is None
        assert storage_area.get_item("school-dash-cache-k1") is None

    def test_invalidate_unknown_key_is_noop(self, cache_manager):
        cache_manager.invalidate("never-set")
        assert cache_manager.get_size() == 0

    def test_clear_only_touches_namespace(self, cache_manager, storage_area):
        cache_manager.set("a", 1)
        cache_manager.set("b", 2)
        storage_area.set_item("theme", "dark")

        assert cache_manager.clear() == 4
        assert cache_manager.get("a") is None
        assert cache_manager.get_size() == 0
        assert list(storage_area.keys()) == ["theme"]

    def test_persistent_write_failure_swallowed(self, failing_manager, failing_storage):
        """Quota errors never escape set()."""
        failing_storage.fail_writes = True

        failing_manager.set("k1", {"v": 1})

        assert failing_manager.get("k1") == {"v": 1}
        assert failing_manager.read("k1", mode=StorageMode.PERSISTENT) is None
        assert failing_manager.metrics.snapshot()["tier_errors"]["persistent"]["write"] == 1

    def test_persistent_read_failure_is_miss(self, failing_manager, failing_storage):
        failing_manager.set("k1", 1)
        failing_manager.volatile.clear_namespace("")
        failing_storage.fail_reads = True

        assert failing_manager.get("k1") is None
        assert failing_manager.metrics.snapshot()["requests"]["persistent"]["error"] == 1

    def test_invalidate_with_failing_storage(self, failing_manager, failing_storage):
        failing_manager.set("k1", 1)
        failing_storage.fail_deletes = True

        failing_manager.invalidate("k1")
        assert failing_manager.get_size() == 0

    def test_memory_only_manager(self, memory_only_manager):
        memory_only_manager.set("k1", [1, 2])

        assert memory_only_manager.get("k1") == [1, 2]
        assert not memory_only_manager.persistent_enabled
        assert memory_only_manager.stats()["persistent_size"] == 0

    def test_read_respects_mode(self, cache_manager):
        cache_manager.write("k1", "mem", mode=StorageMode.MEMORY)
        cache_manager.write("k2", "disk", mode=StorageMode.PERSISTENT)

        assert cache_manager.read("k1", mode=StorageMode.PERSISTENT) is None
        assert cache_manager.read("k2", mode=StorageMode.MEMORY) is None
        assert cache_manager.read("k2", mode=StorageMode.PERSISTENT).data == "disk"
        # Persistent-only reads do not promote
        assert cache_manager.get_size() == 1

    def test_lookup_metrics(self, cache_manager, clock):
        cache_manager.set("k1", 1, ttl=100)
        cache_manager.get("k1")
        clock.advance(100)
        cache_manager.get("k1")

        requests = cache_manager.metrics.snapshot()["requests"]
        assert requests["volatile"]["hit"] == 1
        assert requests["volatile"]["stale"] == 1
        assert requests["persistent"]["stale"] == 1

    def test_stats(self, cache_manager):
        cache_manager.set("k1", 1)
        stats = cache_manager.stats()

        assert stats["namespace"] == "school-dash-cache"
        assert stats["default_ttl_ms"] == 300_000
        assert stats["volatile_size"] == 1
        assert stats["persistent_enabled"] is True
        assert stats["persistent_size"] == 1
        assert stats["metrics"]["volatile_entries"] == 1

    def test_empty_namespace_rejected(self):
        with pytest.raises(ValueError):
            CacheManager(namespace="")

    def test_empty_key_rejected(self, cache_manager):
        with pytest.raises(ValueError):
            cache_manager.set("", 1)

    @pytest.mark.parametrize(
        "key", ["report 2024-05", "students:filter:" + "x" * 300]
    )
    def test_spaced_and_long_keys(self, cache_manager, storage_area, key):
        """Keys are opaque strings: spaces and length are not restricted."""
        cache_manager.set(key, {"v": 1})

        assert cache_manager.get(key) == {"v": 1}
        assert storage_area.get_item(f"school-dash-cache-{key}") is not None

        cache_manager.invalidate(key)
        assert cache_manager.get(key) is None

    def test_from_settings(self, clock):
        settings = Settings(
            CACHE_PERSISTENT_BACKEND="memory",
            CACHE_NAMESPACE="school",
            CACHE_DEFAULT_TTL_MS=1000,
        )
        manager = CacheManager.from_settings(settings, clock=clock)

        assert manager.namespace == "school"
        assert manager.default_ttl == 1000
        assert isinstance(manager.persistent, PersistentTier)
        assert manager.persistent.metrics is manager.metrics
        assert manager.default_storage == StorageMode.MEMORY

    def test_from_settings_storage_mode(self, clock):
        settings = Settings(CACHE_PERSISTENT_BACKEND="memory", CACHE_STORAGE_MODE="both")
        manager = CacheManager.from_settings(settings, clock=clock)

        assert manager.default_storage == StorageMode.BOTH

    def test_persistent_default_storage_requires_tier(self):
        with pytest.raises(ValueError):
            CacheManager(default_storage="localStorage")

    def test_close_releases_persistent_storage(self, cache_manager, storage_area):
        cache_manager.set("k1", 1)

        with patch.object(storage_area, "close") as mock_close:
            cache_manager.close()

        mock_close.assert_called_once_with()
        assert cache_manager.get_size() == 1

    def test_close_without_persistent_tier(self, memory_only_manager):
        memory_only_manager.close()

    def test_set_opens_span(self, cache_manager):
        with patch("datacache.services.cache.cache_manager.tracer") as mock_tracer:
            cache_manager.set("k1", 1)

            mock_tracer.start_as_current_span.assert_called_once_with("cache_manager.write")
