"""Semantic engine: decides whether a prompt was already answered.

A lookup embeds the query with the active provider, compares it with every
stored embedding and applies the three-zone threshold policy:

    score >= high            definite hit, no verification
    score <  low             definite miss
    low <= score < high      gray zone, settled by the provider's judge when
                             verification is enabled, otherwise a miss

The active provider can be swapped at runtime. Each lookup captures one
snapshot of it under a read lock and uses that snapshot for both embedding
and verification, so a concurrent swap never mixes two backends in one call.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Protocol, Sequence, Tuple

from promptcache.constants import DEFAULT_PROVIDER, EMBEDDING_KEY_PREFIX
from promptcache.exception.api_exceptions import (
    DataCorruptionError,
    DeadlineExceededError,
    PromptNotFoundError,
    ProviderFailureError,
    StorageFailureError,
    VerificationError,
)
from promptcache.semantic.deadline import Deadline
from promptcache.semantic.factory import ProviderFactory
from promptcache.semantic.providers import EmbeddingProvider
from promptcache.semantic.rwlock import ReadWriteLock
from promptcache.semantic.thresholds import ThresholdConfig
from promptcache.semantic.vector import (
    VectorDimensionError,
    cosine_similarity,
    decode,
)

logger = logging.getLogger(__name__)


class EmbeddingIndex(Protocol):
    """Store collaborator holding embeddings and their original prompts."""

    def get_all_embeddings(self) -> Dict[str, bytes]:
        """Return every stored embedding keyed by its prefixed key."""
        ...

    def get_prompt_by_hash(self, prompt_hash: str) -> str:
        """Return the original prompt, raising PromptNotFoundError if absent."""
        ...


class MatchZone(str, Enum):
    """How a lookup was decided."""

    HIT = "hit"
    MISS = "miss"
    VERIFIED_HIT = "verified_hit"
    VERIFIED_MISS = "verified_miss"
    UNVERIFIED = "unverified"
    UNVERIFIABLE = "unverifiable"


@dataclass(frozen=True)
class ProviderSnapshot:
    """Immutable view of the active provider for the duration of one call."""

    name: str
    provider: EmbeddingProvider


@dataclass(frozen=True)
class SimilarityResult:
    """Outcome of a lookup.

    Attributes:
        key: Matched embedding-index key (with prefix), None on a miss
        score: Best similarity seen, reported for hits and misses
        zone: Which branch of the policy decided the result
        provider: Name of the provider snapshot used
    """

    key: Optional[str]
    score: float
    zone: MatchZone
    provider: str

    @property
    def is_hit(self) -> bool:
        return self.key is not None

    @property
    def cache_key(self) -> Optional[str]:
        """Matched key without the embedding prefix, usable on the response cache."""
        if self.key is None:
            return None
        return strip_embedding_prefix(self.key)


def strip_embedding_prefix(key: str) -> str:
    return key[len(EMBEDDING_KEY_PREFIX):] if key.startswith(EMBEDDING_KEY_PREFIX) else key


class SemanticEngine:
    """Similarity search with a three-zone policy and hot-swappable provider.

    Attributes:
        store: Embedding index collaborator
        provider_factory: Builds providers by name for set_provider
        thresholds: Immutable similarity policy
    """

    def __init__(
        self,
        store: EmbeddingIndex,
        provider_factory: ProviderFactory,
        thresholds: Optional[ThresholdConfig] = None,
        provider_name: str = DEFAULT_PROVIDER,
    ):
        """Initialize the engine.

        Args:
            store: Embedding index collaborator
            provider_factory: Factory for the closed set of provider backends
            thresholds: Similarity policy (defaults if None)
            provider_name: Initially active provider

        Raises:
            InvalidProviderError: If provider_name is not registered
        """
        self.store = store
        self.provider_factory = provider_factory
        self.thresholds = thresholds or ThresholdConfig()
        self._lock = ReadWriteLock()

        name = provider_factory.normalize(provider_name)
        self._snapshot = ProviderSnapshot(name, provider_factory.create(name))

        logger.info(
            f"Initialized SemanticEngine: provider={name}, "
            f"high={self.thresholds.high_threshold}, "
            f"low={self.thresholds.low_threshold}, "
            f"gray_zone_verification={self.thresholds.gray_zone_verification}"
        )

    def current_snapshot(self) -> ProviderSnapshot:
        with self._lock.read_locked():
            return self._snapshot

    def get_current_provider(self) -> str:
        """Name of the active provider."""
        return self.current_snapshot().name

    def set_provider(self, name: str) -> None:
        """Atomically replace the active provider for both roles.

        The new provider is built before the write lock is taken, so an
        unknown name leaves the previous provider untouched.

        Args:
            name: Provider name (case-insensitive)

        Raises:
            InvalidProviderError: If the name is not registered
        """
        normalized = self.provider_factory.normalize(name)
        provider = self.provider_factory.create(normalized)

        with self._lock.write_locked():
            previous = self._snapshot.name
            self._snapshot = ProviderSnapshot(normalized, provider)

        logger.info(f"Switched provider: {previous} -> {normalized}")

    def embed(self, text: str, deadline: Optional[Deadline] = None) -> Sequence[float]:
        """Embed text with the active provider."""
        return self.current_snapshot().provider.embed(text, deadline)

    def find_similar(
        self, query_text: str, deadline: Optional[Deadline] = None
    ) -> SimilarityResult:
        """Find a stored prompt equivalent to ``query_text``.

        Args:
            query_text: Prompt to look up
            deadline: Optional caller deadline honoured by each outbound call

        Returns:
            SimilarityResult with the matched key on a hit

        Raises:
            ProviderFailureError: Embedding the query failed
            VerificationError: Gray-zone verification could not be completed
            DeadlineExceededError: The deadline elapsed before an outbound call
            StorageFailureError: The embedding index could not be read
        """
        snapshot = self.current_snapshot()
        query_vector = snapshot.provider.embed(query_text, deadline)
        stored = self.store.get_all_embeddings()

        best_key, best_score = self._best_match(query_vector, stored)
        thresholds = self.thresholds

        if best_key is not None and best_score >= thresholds.high_threshold:
            logger.debug(f"Definite hit: key={best_key} score={best_score:.4f}")
            return SimilarityResult(best_key, best_score, MatchZone.HIT, snapshot.name)

        if best_key is None or best_score < thresholds.low_threshold:
            logger.debug(f"Definite miss: best_score={best_score:.4f}")
            return SimilarityResult(None, best_score, MatchZone.MISS, snapshot.name)

        if not thresholds.gray_zone_verification:
            logger.debug(
                f"Gray zone miss (verification disabled): score={best_score:.4f}"
            )
            return SimilarityResult(
                None, best_score, MatchZone.UNVERIFIED, snapshot.name
            )

        return self._verify(snapshot, query_text, best_key, best_score, deadline)

    def _verify(
        self,
        snapshot: ProviderSnapshot,
        query_text: str,
        best_key: str,
        best_score: float,
        deadline: Optional[Deadline],
    ) -> SimilarityResult:
        prompt_hash = strip_embedding_prefix(best_key)

        try:
            original_prompt = self.store.get_prompt_by_hash(prompt_hash)
        except (PromptNotFoundError, StorageFailureError, DataCorruptionError) as e:
            logger.warning(
                f"Cannot verify gray zone match {prompt_hash}, treating as miss: "
                f"{e.message}"
            )
            return SimilarityResult(
                None, best_score, MatchZone.UNVERIFIABLE, snapshot.name
            )

        try:
            is_match = snapshot.provider.check_similarity(
                query_text, original_prompt, deadline
            )
        except DeadlineExceededError:
            raise
        except ProviderFailureError as e:
            raise VerificationError(
                f"Gray zone verification failed: {e.message}",
                provider=snapshot.name,
                score=best_score,
            ) from e

        if is_match:
            logger.info(f"Verified gray zone hit: key={best_key} score={best_score:.4f}")
            return SimilarityResult(
                best_key, best_score, MatchZone.VERIFIED_HIT, snapshot.name
            )

        logger.debug(f"Verified gray zone miss: score={best_score:.4f}")
        return SimilarityResult(
            None, best_score, MatchZone.VERIFIED_MISS, snapshot.name
        )

    @staticmethod
    def _best_match(
        query_vector: Sequence[float], stored: Dict[str, bytes]
    ) -> Tuple[Optional[str], float]:
        """Exhaustive scan for the best-scoring key.

        Keys are visited in sorted order and only a strictly greater score
        replaces the current best, so the smallest key wins exact ties.
        Vectors of a different dimensionality are skipped.
        """
        best_key: Optional[str] = None
        best_score = 0.0
        skipped = 0

        for key in sorted(stored):
            try:
                score = cosine_similarity(query_vector, decode(stored[key]))
            except VectorDimensionError:
                skipped += 1
                continue

            if score > best_score:
                best_score = score
                best_key = key

        if skipped:
            logger.warning(
                f"Skipped {skipped} stored embeddings with a dimension other than "
                f"{len(query_vector)}"
            )

        return best_key, best_score
