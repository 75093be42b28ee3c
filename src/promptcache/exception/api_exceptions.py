"""Custom exceptions for PromptCache.

All custom exceptions inherit from PromptCacheException so the HTTP layer can
map them to consistent error responses.
"""

from typing import Any, Dict, List, Optional


class PromptCacheException(Exception):
    """Base exception for all PromptCache errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize PromptCache exception.

        Args:
            message: Human-readable error message
            code: Error code for programmatic handling
            status_code: HTTP status code
            field: Field name if validation error
            details: Additional error context
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.field = field
        self.details = details or {}
        super().__init__(message)


# Provider Errors (502, 504)
class ProviderFailureError(PromptCacheException):
    """Embedding or verification backend unreachable or returned invalid data."""

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if provider:
            details["provider"] = provider

        super().__init__(
            message=message,
            code=kwargs.pop("code", "PROVIDER_FAILURE"),
            status_code=502,
            details=details,
            **kwargs,
        )
        self.provider = provider


class VerificationError(ProviderFailureError):
    """Gray-zone verification could not be completed.

    Distinct from a negative verdict: the caller is told no decision was made.
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        score: Optional[float] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if score is not None:
            details["score"] = score

        super().__init__(
            message=message,
            provider=provider,
            code="VERIFICATION_FAILED",
            details=details,
            **kwargs,
        )
        self.score = score


class DeadlineExceededError(PromptCacheException):
    """Caller deadline elapsed or cancellation requested before an outbound call."""

    def __init__(self, message: str = "Deadline exceeded", **kwargs):
        super().__init__(
            message=message, code="DEADLINE_EXCEEDED", status_code=504, **kwargs
        )


# Storage Errors (404, 500, 503)
class StorageFailureError(PromptCacheException):
    """Key/value backend read or write failed."""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if key:
            details["key"] = key

        super().__init__(
            message=message,
            code="STORAGE_FAILURE",
            status_code=503,
            details=details,
            **kwargs,
        )


class PromptNotFoundError(PromptCacheException):
    """No original prompt is stored for the given hash."""

    def __init__(self, prompt_hash: str, **kwargs):
        super().__init__(
            message=f"Prompt not found: {prompt_hash}",
            code="PROMPT_NOT_FOUND",
            status_code=404,
            details={"hash": prompt_hash},
            **kwargs,
        )
        self.prompt_hash = prompt_hash


class DataCorruptionError(PromptCacheException):
    """Stored record failed to deserialize."""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if key:
            details["key"] = key

        super().__init__(
            message=message,
            code="DATA_CORRUPTION",
            status_code=500,
            details=details,
            **kwargs,
        )


# Configuration Errors (400, 422)
class InvalidProviderError(PromptCacheException):
    """Unknown provider name requested."""

    def __init__(self, provider: str, available: Optional[List[str]] = None, **kwargs):
        available = available or []
        super().__init__(
            message=(
                f"Unsupported provider: {provider} "
                f"(supported: {', '.join(available)})"
            ),
            code="INVALID_PROVIDER",
            status_code=400,
            field="provider",
            details={"provider": provider, "available": available},
            **kwargs,
        )
        self.provider = provider


class InvalidConfigurationError(PromptCacheException):
    """Configuration values violate an invariant."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            code="INVALID_CONFIGURATION",
            status_code=422,
            field=field,
            **kwargs,
        )


class InvalidInputError(PromptCacheException):
    """Invalid request payload."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            code="INVALID_INPUT",
            status_code=400,
            field=field,
            **kwargs,
        )


# Upstream Errors (502)
class UpstreamError(PromptCacheException):
    """Upstream chat completion API could not be reached."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message, code="UPSTREAM_UNAVAILABLE", status_code=502, **kwargs
        )
