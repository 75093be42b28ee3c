"""Prompt cache service.

This module composes the semantic engine, the response cache, the embedding
store and the metrics counters into the two operations the HTTP layer needs:
look a prompt up, and remember the response to a prompt.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union

from promptcache.constants import DEFAULT_RESPONSE_TTL_SECONDS
from promptcache.exception.api_exceptions import PromptCacheException
from promptcache.infrastructure.monitoring.metrics import CacheMetrics
from promptcache.infrastructure.persistence.embedding_store import EmbeddingStore
from promptcache.infrastructure.persistence.response_cache import (
    ResponseCache,
    derive_key,
)
from promptcache.semantic.deadline import Deadline
from promptcache.semantic.engine import MatchZone, SemanticEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheLookup:
    """Result of a cache lookup.

    Attributes:
        hit: True when a cached response was found
        payload: Cached response body on a hit
        score: Best similarity score seen
        zone: How the semantic engine decided
        key: Cache key of the matched entry on a hit
        provider: Provider snapshot used for the lookup
    """

    hit: bool
    payload: Optional[bytes]
    score: float
    zone: MatchZone
    key: Optional[str]
    provider: str


class PromptCacheService:
    """Semantic response cache operations.

    Attributes:
        engine: Semantic decision engine
        response_cache: Response entries keyed by prompt hash
        embedding_store: Embedding index and stored prompts
        metrics: Hit/miss/eviction counters
        default_ttl: TTL applied when store() is called without one
    """

    def __init__(
        self,
        engine: SemanticEngine,
        response_cache: ResponseCache,
        embedding_store: EmbeddingStore,
        metrics: CacheMetrics,
        default_ttl: Union[int, float, timedelta] = DEFAULT_RESPONSE_TTL_SECONDS,
    ):
        self.engine = engine
        self.response_cache = response_cache
        self.embedding_store = embedding_store
        self.metrics = metrics
        self.default_ttl = default_ttl

    def lookup(self, prompt: str, deadline: Optional[Deadline] = None) -> CacheLookup:
        """Find a cached response for a prompt or an equivalent one.

        A semantic match whose response entry has expired or vanished is
        purged from the index and reported as a miss.

        Args:
            prompt: Prompt text
            deadline: Optional caller deadline

        Returns:
            CacheLookup describing the outcome

        Raises:
            PromptCacheException: Any engine or storage failure, after the miss
                has been counted
        """
        try:
            result = self.engine.find_similar(prompt, deadline)

            payload = None
            if result.is_hit:
                payload, found = self.response_cache.get(result.cache_key)
                if not found:
                    self._purge_stale(result.cache_key)
        except PromptCacheException:
            self.metrics.record_miss()
            raise

        if payload is None:
            self.metrics.record_miss()
            logger.debug(
                f"Cache miss ({result.zone.value}, score={result.score:.4f})"
            )
            return CacheLookup(
                hit=False,
                payload=None,
                score=result.score,
                zone=result.zone,
                key=None,
                provider=result.provider,
            )

        self.metrics.record_hit()
        logger.info(
            f"Cache hit: key={result.cache_key} score={result.score:.4f} "
            f"zone={result.zone.value}"
        )
        return CacheLookup(
            hit=True,
            payload=payload,
            score=result.score,
            zone=result.zone,
            key=result.cache_key,
            provider=result.provider,
        )

    def store(
        self,
        prompt: str,
        payload: bytes,
        ttl: Optional[Union[int, float, timedelta]] = None,
        deadline: Optional[Deadline] = None,
    ) -> str:
        """Remember a response for a prompt.

        The response is written before the embedding so a lookup never
        matches an embedding whose response is not there yet.

        Args:
            prompt: Prompt text the response answers
            payload: Response body
            ttl: Entry lifetime (default_ttl if None)
            deadline: Optional caller deadline for the embedding call

        Returns:
            Cache key the response was stored under

        Raises:
            ProviderFailureError: Embedding the prompt failed
            StorageFailureError: A backend write failed
        """
        key = derive_key(prompt)
        self.response_cache.set(
            key, payload, self.default_ttl if ttl is None else ttl
        )

        vector = self.engine.embed(prompt, deadline)
        self.embedding_store.save(key, prompt, vector)

        logger.debug(f"Stored response {key} ({len(payload)} bytes)")
        return key

    def stored_vectors_count(self) -> int:
        return self.embedding_store.count_embeddings()

    def _purge_stale(self, key: str) -> None:
        logger.info(f"Response {key} is gone, removing its embedding")
        self.embedding_store.delete(key)
