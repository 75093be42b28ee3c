"""Service layer for PromptCache.

Exports PromptCacheService, which combines the semantic engine with the
response cache, the embedding store and the metrics counters.
"""

from promptcache.service.cache_service import CacheLookup, PromptCacheService

__all__ = [
    "CacheLookup",
    "PromptCacheService",
]
