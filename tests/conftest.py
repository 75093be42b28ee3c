"""Root-level pytest configuration and shared fixtures.

Adds the src/ directory to sys.path so promptcache can be imported without
installation. Provides a scriptable fake provider and fixtures for the
storage, metrics and engine components used across all test suites.

Key exports:
    - FakeProvider: in-process EmbeddingProvider with canned vectors/verdicts
    - fixed_provider / make_factory: build a ProviderFactory over fakes
    - Pytest fixtures for the backend, stores, metrics and engine
"""

import sys
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from promptcache.infrastructure.monitoring.metrics import CacheMetrics  # noqa: E402
from promptcache.infrastructure.persistence.backend import InMemoryBackend  # noqa: E402
from promptcache.infrastructure.persistence.embedding_store import (  # noqa: E402
    EmbeddingStore,
)
from promptcache.infrastructure.persistence.response_cache import (  # noqa: E402
    ResponseCache,
)
from promptcache.semantic.deadline import Deadline  # noqa: E402
from promptcache.semantic.engine import SemanticEngine  # noqa: E402
from promptcache.semantic.factory import ProviderFactory  # noqa: E402
from promptcache.semantic.providers import EmbeddingProvider  # noqa: E402
from promptcache.semantic.thresholds import ThresholdConfig  # noqa: E402

# ---------------------------------------------------------------------------
# Fake provider
# ---------------------------------------------------------------------------


class FakeProvider(EmbeddingProvider):
    """Provider returning canned embeddings and verdicts.

    Every call is recorded so tests can assert which backend served it.
    """

    def __init__(
        self,
        settings: Any = None,
        name: str = "fake",
        vectors: Optional[Dict[str, Sequence[float]]] = None,
        default_vector: Sequence[float] = (1.0, 0.0, 0.0),
        verdict: bool = True,
        embed_error: Optional[Exception] = None,
        judge_error: Optional[Exception] = None,
    ):
        self.settings = settings
        self.name = name
        self.vectors = dict(vectors or {})
        self.default_vector = list(default_vector)
        self.verdict = verdict
        self.embed_error = embed_error
        self.judge_error = judge_error
        self.embed_calls: List[str] = []
        self.judge_calls: List[Tuple[str, str]] = []
        self.embed_hook: Optional[Callable[[str], None]] = None
        self._lock = threading.Lock()

    def embed(self, text: str, deadline: Optional[Deadline] = None) -> List[float]:
        if deadline is not None:
            deadline.remaining()
        with self._lock:
            self.embed_calls.append(text)
        if self.embed_hook is not None:
            self.embed_hook(text)
        if self.embed_error is not None:
            raise self.embed_error
        return list(self.vectors.get(text, self.default_vector))

    def check_similarity(
        self, prompt_a: str, prompt_b: str, deadline: Optional[Deadline] = None
    ) -> bool:
        if deadline is not None:
            deadline.remaining()
        with self._lock:
            self.judge_calls.append((prompt_a, prompt_b))
        if self.judge_error is not None:
            raise self.judge_error
        return self.verdict


def fixed_provider(instance: EmbeddingProvider) -> Callable[..., EmbeddingProvider]:
    """Registry entry that always returns ``instance`` regardless of settings."""

    def build(settings: Any = None) -> EmbeddingProvider:
        return instance

    build.__name__ = type(instance).__name__
    return build


def make_factory(**providers: EmbeddingProvider) -> ProviderFactory:
    """Build a ProviderFactory whose registry holds the given fake instances.

    Args:
        providers: Provider instances keyed by registry name.

    Returns:
        ProviderFactory over a private registry.
    """
    registry = {name: fixed_provider(instance) for name, instance in providers.items()}
    return ProviderFactory(registry=registry)


def unit(*components: float) -> List[float]:
    """Normalize a vector to unit length."""
    norm = sum(c * c for c in components) ** 0.5
    return [c / norm for c in components]


def vector_with_score(score: float) -> List[float]:
    """A 2-d unit vector whose cosine with (1, 0) equals ``score``."""
    return [score, (1.0 - score * score) ** 0.5]


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def backend() -> InMemoryBackend:
    """Provide an empty in-memory key/value backend."""
    return InMemoryBackend()


@pytest.fixture
def embedding_store(backend: InMemoryBackend) -> EmbeddingStore:
    """Provide an EmbeddingStore over the shared backend."""
    return EmbeddingStore(backend)


@pytest.fixture
def metrics(embedding_store: EmbeddingStore) -> CacheMetrics:
    """Provide CacheMetrics reporting the embedding store's vector count."""
    return CacheMetrics(vector_count=embedding_store.count_embeddings)


@pytest.fixture
def response_cache(backend: InMemoryBackend, metrics: CacheMetrics) -> ResponseCache:
    """Provide a ResponseCache that counts evictions into the metrics fixture."""
    return ResponseCache(backend, on_evict=metrics.record_eviction)


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Provide a FakeProvider registered as 'fake'."""
    return FakeProvider(name="fake")


@pytest.fixture
def engine(embedding_store: EmbeddingStore, fake_provider: FakeProvider) -> SemanticEngine:
    """Provide a SemanticEngine with default thresholds over the fake provider."""
    return SemanticEngine(
        store=embedding_store,
        provider_factory=make_factory(fake=fake_provider),
        thresholds=ThresholdConfig(),
        provider_name="fake",
    )
