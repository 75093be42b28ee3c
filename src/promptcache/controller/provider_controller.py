"""Provider configuration endpoints.

Reads and hot-swaps the provider used for both embeddings and gray-zone
verification. A swap applies to every lookup that starts after it; lookups
already in flight finish on the provider they started with.
"""

import logging

from fastapi import APIRouter, Request, status
from starlette.concurrency import run_in_threadpool

from promptcache.controller.schemas.requests import ProviderRequest, ProviderResponse
from promptcache.semantic.engine import SemanticEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/config", tags=["config"])


def _provider_response(engine: SemanticEngine) -> ProviderResponse:
    return ProviderResponse(
        provider=engine.get_current_provider(),
        available=engine.provider_factory.available_providers(),
    )


@router.get(
    "/provider",
    response_model=ProviderResponse,
    summary="Get active provider",
)
async def get_provider(request: Request) -> ProviderResponse:
    """Return the active provider and the registered names."""
    engine: SemanticEngine = request.app.state.cache_service.engine
    return _provider_response(engine)


@router.post(
    "/provider",
    response_model=ProviderResponse,
    status_code=status.HTTP_200_OK,
    summary="Switch active provider",
    responses={400: {"description": "Unsupported provider name"}},
)
async def set_provider(payload: ProviderRequest, request: Request) -> ProviderResponse:
    """Switch embeddings and verification to another provider.

    Args:
        payload: Requested provider name (case-insensitive)
        request: FastAPI request

    Returns:
        The provider now active

    Raises:
        InvalidProviderError: Unknown provider name (400)
    """
    engine: SemanticEngine = request.app.state.cache_service.engine
    await run_in_threadpool(engine.set_provider, payload.provider)
    return _provider_response(engine)
