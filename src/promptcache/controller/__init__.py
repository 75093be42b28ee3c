"""API controllers.

This package provides the chat completion proxy, provider configuration,
metrics and health check endpoints.
"""

from promptcache.controller import (
    chat_controller,
    health_controller,
    metrics_controller,
    provider_controller,
)

__all__ = [
    "chat_controller",
    "health_controller",
    "metrics_controller",
    "provider_controller",
]
