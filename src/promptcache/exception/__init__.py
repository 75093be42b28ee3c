"""Exception handling package.

This package provides the custom exception classes used across the engine,
stores and providers, and mapped to HTTP responses by the error middleware.
"""

from promptcache.exception.api_exceptions import (
    DataCorruptionError,
    DeadlineExceededError,
    InvalidConfigurationError,
    InvalidInputError,
    InvalidProviderError,
    PromptCacheException,
    PromptNotFoundError,
    ProviderFailureError,
    StorageFailureError,
    UpstreamError,
    VerificationError,
)

__all__ = [
    "DataCorruptionError",
    "DeadlineExceededError",
    "InvalidConfigurationError",
    "InvalidInputError",
    "InvalidProviderError",
    "PromptCacheException",
    "PromptNotFoundError",
    "ProviderFailureError",
    "StorageFailureError",
    "UpstreamError",
    "VerificationError",
]
