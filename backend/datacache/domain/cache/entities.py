"""
Cache Domain Entities

Core domain entities for cache management following DDD principles.
Encapsulates the freshness rule and the statistics kept per controller.
"""

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...constants import DEFAULT_TTL_MS
from .value_objects import TierStatus


class CacheEntry(BaseModel):
    """
    Cached payload with its insertion time and validity window.

    Serialized as ``{"data": ..., "storedAt": ..., "ttl": ...}``.
    Entries are only ever replaced as a whole.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    data: Any = Field(..., description="Cached payload")
    stored_at: int = Field(
        ..., alias="storedAt", description="Insertion time in ms since epoch"
    )
    ttl: int = Field(DEFAULT_TTL_MS, description="Validity window in ms")

    @field_validator("ttl")
    @classmethod
    def clamp_ttl(cls, v):
        # Negative TTLs behave like 0: always stale
        return max(0, v)

    @classmethod
    def create(cls, data: Any, ttl: int, now_ms: int) -> "CacheEntry":
        """Create new entry stamped with ``now_ms``."""
        return cls(data=data, stored_at=now_ms, ttl=ttl)

    def is_fresh(self, now_ms: int) -> bool:
        """Check whether the entry is still valid at ``now_ms``."""
        return (now_ms - self.stored_at) < self.ttl

    def expires_at(self) -> int:
        return self.stored_at + self.ttl

    def to_json(self) -> str:
        """Serialize to the persisted text blob."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, text: str) -> "CacheEntry":
        """Parse a persisted text blob.

        Raises pydantic's ``ValidationError`` on malformed input.
        """
        return cls.model_validate_json(text)


@dataclass
class CacheStats:
    """Hit/miss counters kept by one controller. Advisory only."""

    hits: int = 0
    misses: int = 0
    size: int = 0

    def record_hit(self) -> None:
        self.hits += 1

    def record_miss(self) -> None:
        self.misses += 1

    @property
    def total_reads(self) -> int:
        return self.hits + self.misses

    def hit_rate(self) -> float:
        """Get hit rate as percentage, 0 when nothing was read yet."""
        total = self.total_reads
        if total == 0:
            return 0.0
        return (self.hits / total) * 100

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.size = 0

    def to_dict(self) -> dict:
        return {"hits": self.hits, "misses": self.misses, "size": self.size}


@dataclass(frozen=True)
class TierResult:
    """
    Result of a tier operation.

    Keeps storage failures distinguishable from plain misses inside the
    infrastructure layer; cache callers only ever see entry-or-None.
    """

    status: TierStatus
    entry: Optional[CacheEntry] = None
    error: Optional[Exception] = None

    @classmethod
    def hit(cls, entry: CacheEntry) -> "TierResult":
        return cls(TierStatus.HIT, entry=entry)

    @classmethod
    def miss(cls) -> "TierResult":
        return cls(TierStatus.MISS)

    @classmethod
    def ok(cls) -> "TierResult":
        """Successful write or delete."""
        return cls(TierStatus.OK)

    @classmethod
    def failure(cls, error: Exception) -> "TierResult":
        return cls(TierStatus.ERROR, error=error)

    @property
    def is_hit(self) -> bool:
        return self.status == TierStatus.HIT

    @property
    def is_error(self) -> bool:
        return self.status == TierStatus.ERROR
