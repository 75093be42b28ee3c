"""Service configuration from environment variables.

This module provides the AppSettings class which loads configuration from
environment variables at startup (bind address, storage backend, provider
credentials, similarity thresholds, upstream endpoint).

Threshold values are kept as raw strings and handed to
ThresholdConfig.resolve, which applies the fallback policy: unparsable or
out-of-range values revert to defaults instead of failing startup.
"""

from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from promptcache.constants import (
    DEFAULT_LOOKUP_TIMEOUT_SECONDS,
    DEFAULT_PROVIDER,
    DEFAULT_PROVIDER_TIMEOUT_SECONDS,
    DEFAULT_RESPONSE_TTL_SECONDS,
    DEFAULT_UPSTREAM_BASE_URL,
    DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
    ENV_DEVELOPMENT,
    ENV_PRODUCTION,
    LOCALHOST,
)
from promptcache.semantic.providers import ProviderSettings
from promptcache.semantic.thresholds import ThresholdConfig

STORAGE_MEMORY = "memory"
STORAGE_REDIS = "redis"


class AppSettings(BaseSettings):
    """Static configuration loaded from environment variables.

    All settings can be overridden via environment variables with the
    PROMPTCACHE_ prefix. For example, api_port can be set via
    PROMPTCACHE_API_PORT.

    Attributes:
        api_host: API server bind address
        api_port: API server port
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: Deployment environment (development, staging, production)
        debug: Enable debug mode
        storage_backend: Key/value backend (memory or redis)
        redis_url: Redis connection URL
        redis_db: Redis database number
        cache_high_threshold: Raw definite-hit threshold
        cache_low_threshold: Raw definite-miss threshold
        enable_gray_zone_verifier: Raw gray-zone verification flag
        embedding_provider: Initially active provider
        provider_timeout_seconds: Timeout for every embedding/judge request
        lookup_timeout_seconds: Deadline for one cache lookup or store (None
            disables it)
        response_ttl_seconds: Lifetime of stored responses (0 never expires)
        upstream_base_url: Chat completion API that misses are forwarded to
        upstream_api_key: Bearer token for the upstream API (falls back to the
            caller's Authorization header when empty)
        upstream_timeout_seconds: Timeout for upstream requests
    """

    model_config = SettingsConfigDict(
        env_prefix="PROMPTCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)

    log_level: str = Field(default="INFO")

    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    storage_backend: str = Field(default=STORAGE_MEMORY)
    redis_url: str = Field(default="redis://localhost:6379")
    redis_db: int = Field(default=0)

    cache_high_threshold: Optional[str] = Field(default=None)
    cache_low_threshold: Optional[str] = Field(default=None)
    enable_gray_zone_verifier: Optional[str] = Field(default=None)

    embedding_provider: str = Field(default=DEFAULT_PROVIDER)
    provider_timeout_seconds: float = Field(default=DEFAULT_PROVIDER_TIMEOUT_SECONDS)
    lookup_timeout_seconds: Optional[float] = Field(
        default=DEFAULT_LOOKUP_TIMEOUT_SECONDS
    )
    response_ttl_seconds: int = Field(default=DEFAULT_RESPONSE_TTL_SECONDS)

    openai_api_key: str = Field(default="")
    openai_base_url: Optional[str] = Field(default=None)
    openai_embedding_model: Optional[str] = Field(default=None)
    openai_verification_model: Optional[str] = Field(default=None)

    mistral_api_key: str = Field(default="")
    mistral_base_url: Optional[str] = Field(default=None)
    mistral_embedding_model: Optional[str] = Field(default=None)
    mistral_verification_model: Optional[str] = Field(default=None)

    anthropic_api_key: str = Field(default="")
    anthropic_base_url: Optional[str] = Field(default=None)
    claude_embedding_model: Optional[str] = Field(default=None)
    claude_verification_model: Optional[str] = Field(default=None)
    voyage_api_key: str = Field(
        default="",
        description="Voyage AI key, required for embeddings with the claude provider",
    )

    upstream_base_url: str = Field(default=DEFAULT_UPSTREAM_BASE_URL)
    upstream_api_key: str = Field(default="")
    upstream_timeout_seconds: float = Field(default=DEFAULT_UPSTREAM_TIMEOUT_SECONDS)

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == ENV_PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == ENV_DEVELOPMENT

    def uses_redis(self) -> bool:
        return self.storage_backend.strip().lower() == STORAGE_REDIS

    def threshold_config(self) -> ThresholdConfig:
        """Resolve the raw threshold values into a valid policy."""
        return ThresholdConfig.resolve(
            high=self.cache_high_threshold,
            low=self.cache_low_threshold,
            gray_zone_verification=self.enable_gray_zone_verifier,
        )

    def provider_settings(self) -> Dict[str, ProviderSettings]:
        """Per-provider credentials and models, keyed by provider name."""
        timeout = self.provider_timeout_seconds

        return {
            "openai": ProviderSettings(
                api_key=self.openai_api_key,
                base_url=self.openai_base_url,
                embedding_model=self.openai_embedding_model,
                verification_model=self.openai_verification_model,
                timeout_seconds=timeout,
            ),
            "mistral": ProviderSettings(
                api_key=self.mistral_api_key,
                base_url=self.mistral_base_url,
                embedding_model=self.mistral_embedding_model,
                verification_model=self.mistral_verification_model,
                timeout_seconds=timeout,
            ),
            "claude": ProviderSettings(
                api_key=self.anthropic_api_key,
                base_url=self.anthropic_base_url,
                embedding_model=self.claude_embedding_model,
                verification_model=self.claude_verification_model,
                embedding_api_key=self.voyage_api_key or None,
                timeout_seconds=timeout,
            ),
        }

    def validate_production_config(self) -> list[str]:
        """Validate configuration for production deployment.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if self.debug:
            errors.append("DEBUG should be False in production")

        if not self.uses_redis():
            errors.append("In-memory storage loses the cache on restart")

        if self.uses_redis() and LOCALHOST in self.redis_url:
            errors.append("Redis URL should not use localhost in production")

        return errors


_app_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """Get singleton instance of static settings.

    Settings are loaded once and cached for application lifetime.

    Returns:
        AppSettings instance
    """
    global _app_settings

    if _app_settings is None:
        _app_settings = AppSettings()

    return _app_settings
