"""Redis infrastructure for the key/value backend.

Provides RedisClient for connection management and RedisBackend, the
KeyValueBackend implementation shared by the response cache and the
embedding store.
"""

from .backend import RedisBackend
from .client import RedisClient

__all__ = [
    "RedisBackend",
    "RedisClient",
]
