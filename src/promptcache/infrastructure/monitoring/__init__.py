"""Monitoring infrastructure package.

This package provides the cache hit/miss/eviction counters.
"""

from promptcache.infrastructure.monitoring.metrics import CacheMetrics, MetricsSnapshot

__all__ = [
    "CacheMetrics",
    "MetricsSnapshot",
]
