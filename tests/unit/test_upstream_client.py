"""Unit tests for UpstreamClient using an httpx.MockTransport."""

import json
from typing import List

import httpx
import pytest

from promptcache.exception.api_exceptions import UpstreamError
from promptcache.infrastructure.upstream.client import UpstreamClient

BODY = json.dumps({"model": "gpt-4o-mini", "messages": []}).encode()


def _recording_transport(requests: List[httpx.Request], response: httpx.Response):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return response

    return httpx.MockTransport(handler)


class TestUpstreamClient:
    """Tests for forwarding chat completions."""

    def test_requires_base_url(self) -> None:
        """An empty base_url is rejected."""
        with pytest.raises(ValueError):
            UpstreamClient(base_url="")

    def test_posts_body_unchanged(self) -> None:
        """The raw body is POSTed to /chat/completions."""
        requests: List[httpx.Request] = []
        client = UpstreamClient(
            base_url="https://llm.example.com/v1/",
            api_key="sk-test",
            transport=_recording_transport(
                requests, httpx.Response(200, content=b'{"id":"x"}')
            ),
        )

        response = client.chat_completion(BODY)

        assert response.status_code == 200
        assert response.body == b'{"id":"x"}'
        assert str(requests[0].url) == "https://llm.example.com/v1/chat/completions"
        assert requests[0].content == BODY
        assert requests[0].headers["authorization"] == "Bearer sk-test"

    def test_forwards_caller_authorization_without_api_key(self) -> None:
        """With no configured key the caller's Authorization header is used."""
        requests: List[httpx.Request] = []
        client = UpstreamClient(
            base_url="https://llm.example.com/v1",
            transport=_recording_transport(requests, httpx.Response(200)),
        )

        client.chat_completion(BODY, authorization="Bearer caller-key")

        assert requests[0].headers["authorization"] == "Bearer caller-key"

    def test_configured_key_wins_over_caller(self) -> None:
        """A configured api_key replaces the caller's header."""
        requests: List[httpx.Request] = []
        client = UpstreamClient(
            base_url="https://llm.example.com/v1",
            api_key="sk-proxy",
            transport=_recording_transport(requests, httpx.Response(200)),
        )

        client.chat_completion(BODY, authorization="Bearer caller-key")

        assert requests[0].headers["authorization"] == "Bearer sk-proxy"

    def test_error_status_returned_as_is(self) -> None:
        """Non-200 replies are returned, not raised."""
        client = UpstreamClient(
            base_url="https://llm.example.com/v1",
            transport=_recording_transport(
                [],
                httpx.Response(
                    429,
                    content=b'{"error":"rate limited"}',
                    headers={"content-type": "application/json; charset=utf-8"},
                ),
            ),
        )

        response = client.chat_completion(BODY)

        assert response.status_code == 429
        assert response.body == b'{"error":"rate limited"}'
        assert response.content_type == "application/json; charset=utf-8"

    def test_connection_error_raises_upstream_error(self) -> None:
        """Transport failures become UpstreamError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = UpstreamClient(
            base_url="https://llm.example.com/v1",
            transport=httpx.MockTransport(handler),
        )

        with pytest.raises(UpstreamError) as exc_info:
            client.chat_completion(BODY)

        assert exc_info.value.status_code == 502
