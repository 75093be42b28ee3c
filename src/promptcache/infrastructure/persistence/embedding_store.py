"""Embedding index and original-prompt storage.

Layout inside the shared backend, for a prompt hash ``h``:
  emb:h     float32 little-endian embedding bytes
  prompt:h  UTF-8 original prompt text (needed for gray-zone verification)
"""

import logging
from typing import Dict, Sequence

from promptcache.constants import EMBEDDING_KEY_PREFIX, PROMPT_KEY_PREFIX
from promptcache.exception.api_exceptions import (
    DataCorruptionError,
    PromptNotFoundError,
)
from promptcache.infrastructure.persistence.backend import KeyValueBackend
from promptcache.semantic.vector import encode

logger = logging.getLogger(__name__)


class EmbeddingStore:
    """Embedding-backed store consumed by the semantic engine.

    Attributes:
        backend: Shared key/value backend
    """

    def __init__(self, backend: KeyValueBackend):
        self.backend = backend

    @staticmethod
    def embedding_key(prompt_hash: str) -> str:
        return f"{EMBEDDING_KEY_PREFIX}{prompt_hash}"

    @staticmethod
    def prompt_key(prompt_hash: str) -> str:
        return f"{PROMPT_KEY_PREFIX}{prompt_hash}"

    def save(self, prompt_hash: str, prompt: str, vector: Sequence[float]) -> None:
        """Store a prompt and its embedding under the same hash.

        The prompt is written first so an indexed embedding always has a
        prompt to verify against.
        """
        self.backend.set(self.prompt_key(prompt_hash), prompt.encode("utf-8"))
        self.backend.set(self.embedding_key(prompt_hash), encode(vector))
        logger.debug(f"Stored embedding {prompt_hash} (dim={len(vector)})")

    def get_all_embeddings(self) -> Dict[str, bytes]:
        """Snapshot of the whole index, keyed by prefixed embedding key."""
        return self.backend.scan_prefix(EMBEDDING_KEY_PREFIX)

    def get_prompt_by_hash(self, prompt_hash: str) -> str:
        """Original prompt text for a hash.

        Raises:
            PromptNotFoundError: No prompt stored for the hash
            DataCorruptionError: Stored prompt is not valid UTF-8
        """
        key = self.prompt_key(prompt_hash)
        data = self.backend.get(key)
        if data is None:
            raise PromptNotFoundError(prompt_hash)

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DataCorruptionError(
                f"Stored prompt is not valid UTF-8: {e}", key=key
            ) from e

    def count_embeddings(self) -> int:
        return self.backend.count_prefix(EMBEDDING_KEY_PREFIX)

    def delete(self, prompt_hash: str) -> None:
        """Remove a prompt's embedding and stored text.

        The embedding goes first so the index never points at a missing prompt
        for longer than necessary.
        """
        self.backend.delete(self.embedding_key(prompt_hash))
        self.backend.delete(self.prompt_key(prompt_hash))
