"""
Monitoring Module

Prometheus counters for cache reads, tier failures and producer calls.
"""

from .cache_metrics import CacheMetricsCollector

__all__ = ["CacheMetricsCollector"]
