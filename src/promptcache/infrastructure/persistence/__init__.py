"""Persistence for cached responses, stored prompts and embeddings.

All three share one KeyValueBackend, separated by key prefixes.
"""

from .backend import InMemoryBackend, KeyValueBackend
from .embedding_store import EmbeddingStore
from .response_cache import CacheEntry, ResponseCache, derive_key

__all__ = [
    "CacheEntry",
    "EmbeddingStore",
    "InMemoryBackend",
    "KeyValueBackend",
    "ResponseCache",
    "derive_key",
]
