"""
Volatile cache tier.

In-process dictionary holding entry objects directly. Lost when the process
exits; no size limit is enforced.
"""

from typing import Dict

from ...domain.cache.entities import CacheEntry, TierResult
from ...domain.cache.repository_interfaces import CacheTier


class VolatileTier(CacheTier):
    """In-memory cache tier."""

    name = "volatile"

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    def read(self, key: str) -> TierResult:
        entry = self._entries.get(key)
        if entry is None:
            return TierResult.miss()
        return TierResult.hit(entry)

    def write(self, key: str, entry: CacheEntry) -> TierResult:
        self._entries[key] = entry
        return TierResult.ok()

    def delete(self, key: str) -> TierResult:
        self._entries.pop(key, None)
        return TierResult.ok()

    def clear_namespace(self, prefix: str) -> int:
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def size(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
