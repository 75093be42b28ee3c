"""Semantic decision engine package.

This package provides the vector codec, the threshold policy, the provider
backends and the engine that decides whether a prompt was already answered.
"""

from promptcache.semantic.deadline import Deadline
from promptcache.semantic.engine import (
    MatchZone,
    SemanticEngine,
    SimilarityResult,
    strip_embedding_prefix,
)
from promptcache.semantic.factory import ProviderFactory
from promptcache.semantic.providers import (
    EmbeddingProvider,
    ProviderSettings,
    get_provider_class,
    register_provider,
)
from promptcache.semantic.thresholds import ThresholdConfig

__all__ = [
    "Deadline",
    "EmbeddingProvider",
    "MatchZone",
    "ProviderFactory",
    "ProviderSettings",
    "SemanticEngine",
    "SimilarityResult",
    "ThresholdConfig",
    "get_provider_class",
    "register_provider",
    "strip_embedding_prefix",
]
