"""Cache counters.

Hit, miss and eviction counts are kept in a Prometheus CollectorRegistry
owned by each CacheMetrics instance, so the same numbers back both the JSON
snapshot and the Prometheus text exposition.
"""

import logging
from typing import Callable, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest
from pydantic import BaseModel

logger = logging.getLogger(__name__)

METRICS_PREFIX = "promptcache"


class MetricsSnapshot(BaseModel):
    """Point-in-time view of the cache counters."""

    cache_hits: int
    cache_misses: int
    eviction_count: int
    stored_vectors_count: int
    hit_rate: float


class CacheMetrics:
    """Thread-safe hit/miss/eviction counters.

    Attributes:
        registry: Prometheus registry owning the counters
        vector_count: Callable returning the number of stored embeddings
    """

    def __init__(
        self,
        vector_count: Optional[Callable[[], int]] = None,
        registry: Optional[CollectorRegistry] = None,
    ):
        self.registry = registry or CollectorRegistry()
        self.vector_count = vector_count

        self._hits = Counter(
            f"{METRICS_PREFIX}_cache_hits",
            "Lookups answered from the cache",
            registry=self.registry,
        )
        self._misses = Counter(
            f"{METRICS_PREFIX}_cache_misses",
            "Lookups that fell through to the upstream API",
            registry=self.registry,
        )
        self._evictions = Counter(
            f"{METRICS_PREFIX}_cache_evictions",
            "Cache entries removed after their TTL elapsed",
            registry=self.registry,
        )
        self._stored_vectors = Gauge(
            f"{METRICS_PREFIX}_stored_vectors",
            "Embeddings currently in the index",
            registry=self.registry,
        )
        self._stored_vectors.set_function(self.stored_vectors_count)

    def record_hit(self) -> None:
        self._hits.inc()

    def record_miss(self) -> None:
        self._misses.inc()

    def record_eviction(self) -> None:
        self._evictions.inc()

    def _read(self, name: str) -> int:
        value = self.registry.get_sample_value(f"{METRICS_PREFIX}_{name}_total")
        return int(value or 0)

    @property
    def hits(self) -> int:
        return self._read("cache_hits")

    @property
    def misses(self) -> int:
        return self._read("cache_misses")

    @property
    def evictions(self) -> int:
        return self._read("cache_evictions")

    def stored_vectors_count(self) -> int:
        """Number of stored embeddings, 0 when no source is attached or it fails."""
        if self.vector_count is None:
            return 0
        try:
            return self.vector_count()
        except Exception as e:
            logger.warning(f"Failed to count stored vectors: {e}")
            return 0

    def hit_rate(self) -> float:
        hits = self.hits
        total = hits + self.misses
        if total == 0:
            return 0.0
        return hits / total

    def snapshot(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            cache_hits=self.hits,
            cache_misses=self.misses,
            eviction_count=self.evictions,
            stored_vectors_count=self.stored_vectors_count(),
            hit_rate=self.hit_rate(),
        )

    def render(self) -> bytes:
        """Prometheus text exposition of the counters."""
        return generate_latest(self.registry)
