"""Basic health check endpoint.

This module provides a simple health check endpoint for monitoring
service availability and storage connectivity.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from promptcache.infrastructure.persistence.backend import KeyValueBackend

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Overall service status (healthy/unhealthy)
        storage: Key/value backend status
        provider: Active provider
        error: Error message if unhealthy
    """

    status: str = Field(..., description="Overall service status")
    storage: Optional[str] = Field(None, description="Storage backend status")
    provider: Optional[str] = Field(None, description="Active provider")
    error: Optional[str] = Field(None, description="Error message if unhealthy")

    class Config:
        json_schema_extra = {
            "examples": [
                {"status": "healthy", "storage": "connected", "provider": "openai"},
                {"status": "unhealthy", "error": "Storage backend unreachable"},
            ]
        }


@router.get("/", include_in_schema=False)
async def root_redirect() -> RedirectResponse:
    """Redirect root path to /health."""
    return RedirectResponse(url="/health")


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    response_model=HealthResponse,
    response_model_exclude_none=True,
    summary="Service Health Check",
    description="Verifies service availability and storage connectivity.",
)
async def health_check(request: Request) -> HealthResponse:
    """Basic health check endpoint.

    Args:
        request: FastAPI request

    Returns:
        Health status with storage and provider details
    """
    backend: KeyValueBackend = request.app.state.storage_backend
    provider = request.app.state.cache_service.engine.get_current_provider()

    if not await run_in_threadpool(backend.ping):
        logger.error("Health check failed: storage backend unreachable")
        return HealthResponse(status="unhealthy", error="Storage backend unreachable")

    return HealthResponse(status="healthy", storage="connected", provider=provider)
