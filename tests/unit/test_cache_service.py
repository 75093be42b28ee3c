"""Unit tests for PromptCacheService.

Runs the service over the in-memory backend and the fake provider, checking
hit/miss accounting, stale-entry purging, write ordering and error paths.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from promptcache.exception.api_exceptions import (
    DeadlineExceededError,
    ProviderFailureError,
    StorageFailureError,
)
from promptcache.infrastructure.monitoring.metrics import CacheMetrics
from promptcache.infrastructure.persistence.backend import InMemoryBackend
from promptcache.infrastructure.persistence.embedding_store import EmbeddingStore
from promptcache.infrastructure.persistence.response_cache import (
    ResponseCache,
    derive_key,
)
from promptcache.semantic.deadline import Deadline
from promptcache.semantic.engine import MatchZone, SemanticEngine
from promptcache.service.cache_service import PromptCacheService
from tests.conftest import FakeProvider, make_factory, vector_with_score

PROMPT = "What is the capital of France?"
PARAPHRASE = "Tell me France's capital city"
ANSWER = b'{"choices":[{"message":{"content":"Paris"}}]}'


@pytest.fixture
def service(
    engine: SemanticEngine,
    response_cache: ResponseCache,
    embedding_store: EmbeddingStore,
    metrics: CacheMetrics,
) -> PromptCacheService:
    return PromptCacheService(
        engine=engine,
        response_cache=response_cache,
        embedding_store=embedding_store,
        metrics=metrics,
        default_ttl=3600,
    )


class FailingBackend(InMemoryBackend):
    """In-memory backend whose writes fail once armed."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_writes = False

    def set(self, key: str, value: bytes) -> None:
        if self.fail_writes:
            raise StorageFailureError("write failed", key=key)
        super().set(key, value)


# ---------------------------------------------------------------------------
# store()
# ---------------------------------------------------------------------------


class TestStore:
    """Tests for storing responses."""

    def test_store_writes_response_prompt_and_embedding(
        self, service: PromptCacheService, backend: InMemoryBackend
    ) -> None:
        """A stored response is reachable under its derived key."""
        key = service.store(PROMPT, ANSWER)

        assert key == derive_key(PROMPT)
        assert backend.get(key) is not None
        assert backend.get(f"prompt:{key}") == PROMPT.encode()
        assert backend.get(f"emb:{key}") is not None
        assert service.stored_vectors_count() == 1

    def test_response_written_before_embedding(
        self,
        service: PromptCacheService,
        backend: InMemoryBackend,
        fake_provider: FakeProvider,
    ) -> None:
        """The response entry exists by the time the prompt is embedded."""
        seen = []
        fake_provider.embed_hook = lambda text: seen.append(
            backend.get(derive_key(text)) is not None
        )

        service.store(PROMPT, ANSWER)

        assert seen == [True]

    def test_embedding_failure_leaves_no_index_entry(
        self, service: PromptCacheService, fake_provider: FakeProvider
    ) -> None:
        """If embedding fails the index is untouched."""
        fake_provider.embed_error = ProviderFailureError("boom", provider="fake")

        with pytest.raises(ProviderFailureError):
            service.store(PROMPT, ANSWER)

        assert service.stored_vectors_count() == 0

    def test_default_ttl_applied(
        self, service: PromptCacheService, backend: InMemoryBackend
    ) -> None:
        """store() without a ttl uses the service default."""
        key = service.store(PROMPT, ANSWER)

        assert json.loads(backend.get(key))["ttl"] == 3600

    def test_storage_failure_propagates(self, fake_provider: FakeProvider) -> None:
        """A backend write failure surfaces as StorageFailureError."""
        backend = FailingBackend()
        store = EmbeddingStore(backend)
        metrics = CacheMetrics()
        service = PromptCacheService(
            engine=SemanticEngine(store, make_factory(fake=fake_provider), provider_name="fake"),
            response_cache=ResponseCache(backend),
            embedding_store=store,
            metrics=metrics,
        )
        backend.fail_writes = True

        with pytest.raises(StorageFailureError):
            service.store(PROMPT, ANSWER)


# ---------------------------------------------------------------------------
# lookup()
# ---------------------------------------------------------------------------


class TestLookup:
    """Tests for looking prompts up."""

    def test_empty_cache_is_a_miss(
        self, service: PromptCacheService, metrics: CacheMetrics
    ) -> None:
        """Nothing stored yet means a miss."""
        result = service.lookup(PROMPT)

        assert result.hit is False
        assert result.payload is None
        assert result.zone == MatchZone.MISS
        assert metrics.misses == 1
        assert metrics.hits == 0

    def test_identical_prompt_hits(
        self, service: PromptCacheService, metrics: CacheMetrics
    ) -> None:
        """The same prompt returns the stored payload."""
        service.store(PROMPT, ANSWER)

        result = service.lookup(PROMPT)

        assert result.hit is True
        assert result.payload == ANSWER
        assert result.key == derive_key(PROMPT)
        assert result.zone == MatchZone.HIT
        assert result.provider == "fake"
        assert metrics.hits == 1

    def test_gray_zone_paraphrase_verified(
        self, service: PromptCacheService, fake_provider: FakeProvider
    ) -> None:
        """A paraphrase in the gray zone is served after the judge agrees."""
        fake_provider.vectors = {PROMPT: [1.0, 0.0], PARAPHRASE: vector_with_score(0.9)}
        service.store(PROMPT, ANSWER)

        result = service.lookup(PARAPHRASE)

        assert result.hit is True
        assert result.zone == MatchZone.VERIFIED_HIT
        assert fake_provider.judge_calls == [(PARAPHRASE, PROMPT)]

    def test_gray_zone_rejected_by_judge(
        self, service: PromptCacheService, fake_provider: FakeProvider
    ) -> None:
        """A negative verdict is a miss."""
        fake_provider.vectors = {PROMPT: [1.0, 0.0], PARAPHRASE: vector_with_score(0.9)}
        fake_provider.verdict = False
        service.store(PROMPT, ANSWER)

        result = service.lookup(PARAPHRASE)

        assert result.hit is False
        assert result.zone == MatchZone.VERIFIED_MISS

    def test_expired_entry_is_purged(
        self,
        engine: SemanticEngine,
        embedding_store: EmbeddingStore,
        backend: InMemoryBackend,
        metrics: CacheMetrics,
    ) -> None:
        """A match whose response expired is a miss and leaves the index."""
        now = [datetime(2026, 1, 1, tzinfo=timezone.utc)]
        response_cache = ResponseCache(
            backend, on_evict=metrics.record_eviction, clock=lambda: now[0]
        )
        service = PromptCacheService(engine, response_cache, embedding_store, metrics)
        service.store(PROMPT, ANSWER, ttl=60)
        now[0] += timedelta(seconds=120)

        result = service.lookup(PROMPT)

        assert result.hit is False
        assert metrics.evictions == 1
        assert metrics.misses == 1
        assert service.stored_vectors_count() == 0

    def test_vanished_entry_is_purged(
        self, service: PromptCacheService, backend: InMemoryBackend
    ) -> None:
        """A match whose response entry was deleted is purged from the index."""
        key = service.store(PROMPT, ANSWER)
        backend.delete(key)

        result = service.lookup(PROMPT)

        assert result.hit is False
        assert backend.get(f"emb:{key}") is None
        assert backend.get(f"prompt:{key}") is None

    def test_provider_failure_counts_miss_and_raises(
        self,
        service: PromptCacheService,
        fake_provider: FakeProvider,
        metrics: CacheMetrics,
    ) -> None:
        """Engine errors are counted as misses and re-raised."""
        fake_provider.embed_error = ProviderFailureError("down", provider="fake")

        with pytest.raises(ProviderFailureError):
            service.lookup(PROMPT)

        assert metrics.misses == 1

    def test_expired_deadline(
        self, service: PromptCacheService, metrics: CacheMetrics
    ) -> None:
        """An already-expired deadline fails before any provider call."""
        deadline = Deadline(0)

        with pytest.raises(DeadlineExceededError):
            service.lookup(PROMPT, deadline)

        assert metrics.misses == 1
