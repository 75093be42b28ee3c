"""Upstream chat completion API client."""

from promptcache.infrastructure.upstream.client import UpstreamClient, UpstreamResponse

__all__ = [
    "UpstreamClient",
    "UpstreamResponse",
]
