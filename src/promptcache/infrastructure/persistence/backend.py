"""Byte-oriented key/value backend interface.

The response cache, the stored prompts and the embedding index share one
backend, separated by key prefixes.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional


class KeyValueBackend(ABC):
    """Durable key/value storage consumed by the stores."""

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the stored value or None if absent."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a key, returning True if it existed."""

    @abstractmethod
    def scan_prefix(self, prefix: str) -> Dict[str, bytes]:
        """Return every key/value pair whose key starts with ``prefix``."""

    @abstractmethod
    def count_prefix(self, prefix: str) -> int:
        """Count keys starting with ``prefix``."""

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass


class InMemoryBackend(KeyValueBackend):
    """Thread-safe dict backend for development and tests."""

    def __init__(self) -> None:
        self._data: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def scan_prefix(self, prefix: str) -> Dict[str, bytes]:
        with self._lock:
            return {k: v for k, v in self._data.items() if k.startswith(prefix)}

    def count_prefix(self, prefix: str) -> int:
        with self._lock:
            return sum(1 for k in self._data if k.startswith(prefix))

    def close(self) -> None:
        with self._lock:
            self._data.clear()
