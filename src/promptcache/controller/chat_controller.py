"""OpenAI-compatible chat completion proxy.

This module provides the caching proxy endpoint. The last user message of
each request is looked up in the semantic cache; a hit is answered with the
stored response body, a miss is forwarded upstream and a successful upstream
response is stored for later requests.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import Response
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from promptcache.controller.schemas.requests import ChatCompletionRequest
from promptcache.exception.api_exceptions import (
    InvalidInputError,
    PromptCacheException,
)
from promptcache.infrastructure.upstream.client import UpstreamClient
from promptcache.semantic.deadline import Deadline
from promptcache.service.cache_service import CacheLookup, PromptCacheService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["completion"])

CACHE_HEADER = "X-Cache"
CACHE_SCORE_HEADER = "X-Cache-Score"
CACHE_ZONE_HEADER = "X-Cache-Zone"
CACHE_ERROR_HEADER = "X-Cache-Error"


def parse_prompt(body: bytes) -> str:
    """Extract the last user message from a chat completion body.

    Raises:
        InvalidInputError: Body is not a chat completion request or carries
            no user message
    """
    try:
        chat_request = ChatCompletionRequest.model_validate_json(body)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid JSON: {e.error_count()} error(s)") from e

    prompt = chat_request.last_user_prompt()
    if not prompt:
        raise InvalidInputError("No user prompt found", field="messages")

    return prompt


@router.post(
    "/chat/completions",
    summary="Chat completion (cached)",
    description=(
        "Drop-in replacement for the OpenAI chat completion endpoint. "
        "Responses carry `X-Cache: HIT` or `X-Cache: MISS`; hits also carry "
        "`X-Cache-Score` with the similarity of the matched prompt."
    ),
    responses={
        200: {"description": "Cached or upstream completion"},
        400: {"description": "Invalid JSON or no user message"},
        502: {"description": "Upstream API unreachable"},
    },
)
async def chat_completions(request: Request) -> Response:
    """Serve a chat completion from the cache or the upstream API.

    Args:
        request: FastAPI request carrying the raw completion body

    Returns:
        Response with the cached or upstream body

    Raises:
        InvalidInputError: Malformed request (400)
        UpstreamError: Upstream unreachable on a miss (502)
    """
    body = await request.body()
    prompt = parse_prompt(body)

    service: PromptCacheService = request.app.state.cache_service
    upstream: UpstreamClient = request.app.state.upstream_client
    timeout: Optional[float] = request.app.state.lookup_timeout_seconds

    lookup_error: Optional[PromptCacheException] = None
    try:
        lookup: Optional[CacheLookup] = await run_in_threadpool(
            service.lookup, prompt, Deadline(timeout)
        )
    except PromptCacheException as e:
        logger.warning(f"Semantic lookup failed, forwarding upstream: {e.message}")
        lookup = None
        lookup_error = e

    if lookup is not None and lookup.hit:
        return Response(
            content=lookup.payload,
            media_type="application/json",
            headers={
                CACHE_HEADER: "HIT",
                CACHE_SCORE_HEADER: f"{lookup.score:.4f}",
                CACHE_ZONE_HEADER: lookup.zone.value,
            },
        )

    logger.debug("Cache miss, forwarding upstream")
    upstream_response = await run_in_threadpool(
        upstream.chat_completion, body, request.headers.get("Authorization")
    )

    if upstream_response.status_code == 200:
        try:
            await run_in_threadpool(
                service.store, prompt, upstream_response.body, None, Deadline(timeout)
            )
        except PromptCacheException as e:
            logger.error(f"Failed to cache response: {e.message}")

    headers = {CACHE_HEADER: "MISS"}
    if lookup is not None:
        headers[CACHE_ZONE_HEADER] = lookup.zone.value
    if lookup_error is not None:
        headers[CACHE_ERROR_HEADER] = lookup_error.code

    return Response(
        content=upstream_response.body,
        status_code=upstream_response.status_code,
        media_type=upstream_response.content_type,
        headers=headers,
    )
