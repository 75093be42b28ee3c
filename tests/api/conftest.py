"""Shared fixtures for API (controller) tests.

Builds the real application through create_app() with an in-memory backend,
the fake provider registry and a mocked upstream client, so tests exercise
routing, the cache flow and response shaping without network access.

Key exports:
    - fake_openai / fake_mistral: providers registered under those names
    - cache_service: PromptCacheService over the in-memory backend
    - mock_upstream: MagicMock standing in for UpstreamClient
    - app / client: FastAPI instance and its TestClient
"""

import json
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from promptcache.config.app_settings import AppSettings
from promptcache.infrastructure.monitoring.metrics import CacheMetrics
from promptcache.infrastructure.persistence.backend import InMemoryBackend
from promptcache.infrastructure.persistence.embedding_store import EmbeddingStore
from promptcache.infrastructure.persistence.response_cache import ResponseCache
from promptcache.infrastructure.upstream.client import (
    UpstreamClient,
    UpstreamResponse,
)
from promptcache.main import create_app
from promptcache.semantic.engine import SemanticEngine
from promptcache.semantic.thresholds import ThresholdConfig
from promptcache.service.cache_service import PromptCacheService
from tests.conftest import FakeProvider, make_factory

UPSTREAM_BODY = json.dumps(
    {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": "Paris"}}
        ],
    }
).encode()


def chat_body(*user_messages: str, model: str = "gpt-4o-mini") -> dict:
    """Build a chat completion request with a system message and user turns."""
    messages = [{"role": "system", "content": "You are a helpful assistant."}]
    messages.extend({"role": "user", "content": text} for text in user_messages)
    return {"model": model, "messages": messages}


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_openai() -> FakeProvider:
    return FakeProvider(name="openai")


@pytest.fixture
def fake_mistral() -> FakeProvider:
    return FakeProvider(name="mistral")


@pytest.fixture
def cache_service(
    fake_openai: FakeProvider, fake_mistral: FakeProvider
) -> PromptCacheService:
    """Real cache service over an in-memory backend and fake providers."""
    backend = InMemoryBackend()
    embedding_store = EmbeddingStore(backend)
    metrics = CacheMetrics(vector_count=embedding_store.count_embeddings)

    engine = SemanticEngine(
        store=embedding_store,
        provider_factory=make_factory(openai=fake_openai, mistral=fake_mistral),
        thresholds=ThresholdConfig(),
        provider_name="openai",
    )

    return PromptCacheService(
        engine=engine,
        response_cache=ResponseCache(backend, on_evict=metrics.record_eviction),
        embedding_store=embedding_store,
        metrics=metrics,
        default_ttl=3600,
    )


@pytest.fixture
def mock_upstream() -> MagicMock:
    """Upstream client that answers every request with UPSTREAM_BODY."""
    upstream = MagicMock(spec=UpstreamClient)
    upstream.chat_completion.return_value = UpstreamResponse(
        status_code=200, body=UPSTREAM_BODY
    )
    return upstream


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


@pytest.fixture
def app(cache_service: PromptCacheService, mock_upstream: MagicMock) -> FastAPI:
    return create_app(
        AppSettings(lookup_timeout_seconds=10.0),
        service=cache_service,
        upstream=mock_upstream,
    )


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
