"""
Cache Metrics Collector

Prometheus-compatible counters for cache reads, tier failures and producer
calls. Each collector owns its registry so several managers can coexist in
one process (and in one test session).
"""

from typing import Any, Dict, Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)
import structlog

logger = structlog.get_logger(__name__)


class CacheMetricsCollector:
    """
    Cache metrics collection.

    Features:
    - Hit/miss/error counts per tier
    - Persistent tier failures per operation
    - Producer call outcomes
    - Volatile tier entry gauge
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.requests = Counter(
            "datacache_requests_total",
            "Cache tier lookups by result",
            ["tier", "result"],
            registry=self.registry,
        )
        self.tier_errors = Counter(
            "datacache_tier_errors_total",
            "Swallowed cache tier failures",
            ["tier", "operation"],
            registry=self.registry,
        )
        self.producer_calls = Counter(
            "datacache_producer_calls_total",
            "Producer invocations by outcome",
            ["outcome"],
            registry=self.registry,
        )
        self.volatile_entries = Gauge(
            "datacache_volatile_entries",
            "Entries held by the volatile tier",
            registry=self.registry,
        )

        logger.debug("Cache metrics collector initialized")

    def record_lookup(self, tier: str, result: str) -> None:
        self.requests.labels(tier=tier, result=result).inc()

    def record_tier_error(self, tier: str, operation: str) -> None:
        self.tier_errors.labels(tier=tier, operation=operation).inc()

    def record_producer_call(self, success: bool) -> None:
        self.producer_calls.labels(outcome="success" if success else "failure").inc()

    def set_volatile_entries(self, count: int) -> None:
        self.volatile_entries.set(count)

    def _sample(self, name: str, labels: Dict[str, str]) -> int:
        value = self.registry.get_sample_value(name, labels)
        return int(value) if value is not None else 0

    def snapshot(self) -> Dict[str, Any]:
        """Current counter values as plain numbers."""
        tiers = ("volatile", "persistent")
        return {
            "requests": {
                tier: {
                    result: self._sample(
                        "datacache_requests_total", {"tier": tier, "result": result}
                    )
                    for result in ("hit", "miss", "stale", "error")
                }
                for tier in tiers
            },
            "tier_errors": {
                tier: {
                    operation: self._sample(
                        "datacache_tier_errors_total",
                        {"tier": tier, "operation": operation},
                    )
                    for operation in ("read", "write", "delete", "clear")
                }
                for tier in tiers
            },
            "producer_calls": {
                outcome: self._sample(
                    "datacache_producer_calls_total", {"outcome": outcome}
                )
                for outcome in ("success", "failure")
            },
            "volatile_entries": self._sample("datacache_volatile_entries", {}),
        }

    def export(self) -> bytes:
        """Prometheus text exposition of this registry."""
        return generate_latest(self.registry)
