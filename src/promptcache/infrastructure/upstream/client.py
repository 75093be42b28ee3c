"""HTTP client for the upstream chat completion API.

Cache misses are forwarded here unchanged. The request body is passed
through as raw bytes and the upstream status and body are returned as-is,
so the proxy stays agnostic of the completion schema.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from promptcache.constants import (
    DEFAULT_UPSTREAM_BASE_URL,
    DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
)
from promptcache.exception.api_exceptions import UpstreamError

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = "/chat/completions"


@dataclass(frozen=True)
class UpstreamResponse:
    """Raw upstream reply."""

    status_code: int
    body: bytes
    content_type: str = "application/json"


class UpstreamClient:
    """Synchronous client forwarding chat completions upstream.

    Attributes:
        base_url: Upstream API base URL (e.g. https://api.openai.com/v1)
        api_key: Bearer token; when empty the caller's Authorization header
            is forwarded instead
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        base_url: str = DEFAULT_UPSTREAM_BASE_URL,
        api_key: str = "",
        timeout: float = DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Upstream API base URL
            api_key: Bearer token for the upstream API
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used in tests)
        """
        if not base_url:
            raise ValueError("base_url must be configured")

        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client = httpx.Client(timeout=timeout, transport=transport)
        logger.info(f"UpstreamClient initialized with base_url: {self.base_url}")

    def chat_completion(
        self, body: bytes, authorization: Optional[str] = None
    ) -> UpstreamResponse:
        """Forward a chat completion request.

        Args:
            body: Raw JSON request body
            authorization: Caller's Authorization header, used when no
                api_key is configured

        Returns:
            UpstreamResponse with the upstream status and body

        Raises:
            UpstreamError: If the upstream API could not be reached
        """
        url = f"{self.base_url}{CHAT_COMPLETIONS_PATH}"
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        elif authorization:
            headers["Authorization"] = authorization

        try:
            resp = self._client.post(url, content=body, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"Upstream request failed: {e}")
            raise UpstreamError(f"Failed to call upstream API: {e}") from e

        if resp.status_code != httpx.codes.OK:
            logger.warning(f"Upstream returned {resp.status_code}")

        return UpstreamResponse(
            status_code=resp.status_code,
            body=resp.content,
            content_type=resp.headers.get("content-type", "application/json"),
        )

    def close(self) -> None:
        self._client.close()
