"""PromptCache FastAPI application.

This module wires the storage backend, the semantic engine and the upstream
client into the caching proxy API, with middleware, routers and lifecycle
management.
"""

# ruff: noqa: E402
# load_dotenv() must run before any promptcache imports that read env

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI

from promptcache.middleware import ErrorHandlerMiddleware

env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from promptcache import __version__
from promptcache.config.app_settings import AppSettings, get_settings
from promptcache.controller import (
    chat_controller,
    health_controller,
    metrics_controller,
    provider_controller,
)
from promptcache.infrastructure.monitoring.metrics import CacheMetrics
from promptcache.infrastructure.persistence.backend import (
    InMemoryBackend,
    KeyValueBackend,
)
from promptcache.infrastructure.persistence.embedding_store import EmbeddingStore
from promptcache.infrastructure.persistence.redis import RedisBackend, RedisClient
from promptcache.infrastructure.persistence.response_cache import ResponseCache
from promptcache.infrastructure.upstream.client import UpstreamClient
from promptcache.semantic.engine import SemanticEngine
from promptcache.semantic.factory import ProviderFactory
from promptcache.service.cache_service import PromptCacheService

app_settings = get_settings()

logging.basicConfig(
    level=app_settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_storage_backend(
    app_settings: AppSettings,
) -> tuple[KeyValueBackend, Optional[RedisClient]]:
    """Create the key/value backend selected by configuration."""
    if not app_settings.uses_redis():
        logger.info("Using in-memory storage backend")
        return InMemoryBackend(), None

    redis_client = RedisClient(app_settings.redis_url, app_settings.redis_db)
    redis_client.connect()
    logger.info(f"Using Redis storage backend (db={app_settings.redis_db})")
    return RedisBackend(redis_client.get_client()), redis_client


def create_cache_service(
    app_settings: AppSettings, backend: KeyValueBackend
) -> PromptCacheService:
    """Create the cache service and its collaborators over one backend."""
    embedding_store = EmbeddingStore(backend)
    metrics = CacheMetrics(vector_count=embedding_store.count_embeddings)
    response_cache = ResponseCache(backend, on_evict=metrics.record_eviction)

    engine = SemanticEngine(
        store=embedding_store,
        provider_factory=ProviderFactory(app_settings.provider_settings()),
        thresholds=app_settings.threshold_config(),
        provider_name=app_settings.embedding_provider,
    )

    return PromptCacheService(
        engine=engine,
        response_cache=response_cache,
        embedding_store=embedding_store,
        metrics=metrics,
        default_ttl=app_settings.response_ttl_seconds,
    )


def create_upstream_client(app_settings: AppSettings) -> UpstreamClient:
    return UpstreamClient(
        base_url=app_settings.upstream_base_url,
        api_key=app_settings.upstream_api_key,
        timeout=app_settings.upstream_timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("=== PromptCache Startup ===")

    settings: AppSettings = app.state.app_settings
    if settings.is_production():
        for problem in settings.validate_production_config():
            logger.warning(f"Production configuration: {problem}")

    provider = app.state.cache_service.engine.get_current_provider()
    logger.info(f"=== PromptCache Ready (provider={provider}) ===")

    yield

    logger.info("=== PromptCache Shutdown ===")

    try:
        app.state.upstream_client.close()
    except Exception as e:
        logger.warning(f"Error closing upstream client: {e}")

    redis_client: Optional[RedisClient] = app.state.redis_client
    if redis_client is not None:
        redis_client.disconnect()
        logger.info("Redis connection closed")

    logger.info("=== PromptCache Stopped ===")


def configure_error_handlers_middleware(
    app: FastAPI, app_settings: AppSettings
) -> None:
    """Set up error handlers for FastAPI application."""
    app.state.debug = app_settings.debug
    app.state.environment = app_settings.environment

    app.add_middleware(ErrorHandlerMiddleware)

    logger.info(
        "Error handling middleware configured",
        extra={"debug": app.state.debug, "environment": app.state.environment},
    )


def register_api_routers(application: FastAPI) -> None:
    """Register all API route controllers."""
    application.include_router(health_controller.router)
    application.include_router(chat_controller.router)
    application.include_router(provider_controller.router)
    application.include_router(metrics_controller.router)


def create_app(
    app_settings: Optional[AppSettings] = None,
    service: Optional[PromptCacheService] = None,
    upstream: Optional[UpstreamClient] = None,
    backend: Optional[KeyValueBackend] = None,
) -> FastAPI:
    """Build the application.

    Collaborators that are not passed in are created from settings.

    Args:
        app_settings: Settings (environment if None)
        service: Prebuilt cache service
        upstream: Prebuilt upstream client
        backend: Backend the health check pings (the service's if None)

    Returns:
        Configured FastAPI application
    """
    app_settings = app_settings or get_settings()
    redis_client: Optional[RedisClient] = None

    if service is None:
        if backend is None:
            backend, redis_client = create_storage_backend(app_settings)
        service = create_cache_service(app_settings, backend)
    elif backend is None:
        backend = service.embedding_store.backend

    application = FastAPI(
        title="PromptCache",
        description="""
# Semantic cache for LLM chat completion APIs

OpenAI-compatible proxy that answers repeated or paraphrased prompts from a
cache instead of calling the model again.

* **Semantic hits**: prompts are embedded and compared by cosine similarity
* **Gray-zone verification**: borderline matches are confirmed by an LLM judge
* **Hot-swappable providers**: OpenAI, Mistral, Claude (Voyage embeddings)
""",
        version=__version__,
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "health",
                "description": "Health check endpoints for monitoring service availability and storage connectivity.",
            },
            {
                "name": "completion",
                "description": "Cached chat completion proxy.",
            },
            {
                "name": "config",
                "description": "Runtime provider configuration.",
            },
            {
                "name": "metrics",
                "description": "Cache hit/miss/eviction counters.",
            },
        ],
    )

    application.state.app_settings = app_settings
    application.state.cache_service = service
    application.state.metrics = service.metrics
    application.state.storage_backend = backend
    application.state.redis_client = redis_client
    application.state.upstream_client = upstream or create_upstream_client(
        app_settings
    )
    application.state.lookup_timeout_seconds = app_settings.lookup_timeout_seconds

    configure_error_handlers_middleware(application, app_settings)
    register_api_routers(application)

    logger.info("PromptCache application configured")
    return application


app = create_app(app_settings)


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    uvicorn.run(
        "promptcache.main:app",
        host=app_settings.api_host,
        port=app_settings.api_port,
        reload=app_settings.debug,
    )


if __name__ == "__main__":
    run()
