"""Provider factory.

Builds provider instances by name from per-provider settings. The set of
names is closed: only names present in the registry can be created.
"""

import logging
from typing import Dict, List, Optional, Type

from promptcache.semantic.providers import (
    PROVIDER_REGISTRY,
    EmbeddingProvider,
    ProviderSettings,
    get_provider_class,
)

logger = logging.getLogger(__name__)


class ProviderFactory:
    """Factory for named provider backends.

    Attributes:
        provider_settings: Settings keyed by provider name
        registry: Name to provider class mapping
    """

    def __init__(
        self,
        provider_settings: Optional[Dict[str, ProviderSettings]] = None,
        registry: Optional[Dict[str, Type[EmbeddingProvider]]] = None,
    ):
        self.provider_settings = {
            name.lower(): settings
            for name, settings in (provider_settings or {}).items()
        }
        self.registry = PROVIDER_REGISTRY if registry is None else registry

    @staticmethod
    def normalize(name: str) -> str:
        return name.strip().lower()

    def available_providers(self) -> List[str]:
        """Names this factory can create, sorted."""
        return sorted(self.registry)

    def create(self, name: str) -> EmbeddingProvider:
        """Create a provider instance.

        Args:
            name: Provider name (case-insensitive)

        Returns:
            A new provider configured from this factory's settings

        Raises:
            InvalidProviderError: If the name is not registered
        """
        key = self.normalize(name)
        provider_class = get_provider_class(key, self.registry)
        settings = self.provider_settings.get(key, ProviderSettings())
        logger.debug(f"Creating provider {key} ({provider_class.__name__})")
        return provider_class(settings)
