"""Content-addressed response cache with lazy TTL expiry.

Entries are keyed by the SHA-256 of the prompt text and hold the upstream
response body, its creation time and a TTL. Expiry is detected when an entry
is read; an expired entry is deleted at that point and reported as absent.
There is no background sweep.
"""

import base64
import binascii
import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Tuple, Union

from promptcache.constants import NEVER_EXPIRES
from promptcache.exception.api_exceptions import DataCorruptionError
from promptcache.infrastructure.persistence.backend import KeyValueBackend

logger = logging.getLogger(__name__)

TTL = Union[int, float, timedelta]


def derive_key(prompt_text: str) -> str:
    """Lowercase hex SHA-256 of the UTF-8 prompt text."""
    return hashlib.sha256(prompt_text.encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ttl_seconds(ttl: TTL) -> float:
    if isinstance(ttl, timedelta):
        return ttl.total_seconds()
    return float(ttl)


@dataclass(frozen=True)
class CacheEntry:
    """A stored response.

    Attributes:
        payload: Response body bytes
        created_at: UTC creation time
        ttl_seconds: Lifetime in seconds; 0 never expires
    """

    payload: bytes
    created_at: datetime = field(default_factory=_utcnow)
    ttl_seconds: float = NEVER_EXPIRES

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.ttl_seconds == NEVER_EXPIRES:
            return False
        age = ((now or _utcnow()) - self.created_at).total_seconds()
        return age > self.ttl_seconds

    def serialize(self) -> bytes:
        return json.dumps(
            {
                "response": base64.b64encode(self.payload).decode("ascii"),
                "created_at": self.created_at.isoformat(),
                "ttl": self.ttl_seconds,
            }
        ).encode("utf-8")

    @classmethod
    def deserialize(cls, data: bytes) -> "CacheEntry":
        """Parse a stored entry.

        Raises:
            DataCorruptionError: If the record is not a valid entry
        """
        try:
            raw: Any = json.loads(data)
            payload = base64.b64decode(raw["response"], validate=True)
            created_at = datetime.fromisoformat(raw["created_at"])
            ttl_seconds = float(raw["ttl"])
        except (
            UnicodeDecodeError,
            json.JSONDecodeError,
            binascii.Error,
            KeyError,
            TypeError,
            ValueError,
        ) as e:
            raise DataCorruptionError(f"Corrupt cache entry: {e}") from e

        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)

        return cls(payload=payload, created_at=created_at, ttl_seconds=ttl_seconds)


class ResponseCache:
    """Cache entry store over a key/value backend.

    Attributes:
        backend: Shared key/value backend
        on_evict: Called once for every expired entry discovered on read
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        on_evict: Optional[Callable[[], None]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.backend = backend
        self.on_evict = on_evict
        self._clock = clock

    def set(self, key: str, payload: bytes, ttl: TTL = NEVER_EXPIRES) -> None:
        """Store a response.

        Args:
            key: Cache key (see derive_key)
            payload: Response body
            ttl: Seconds or timedelta; 0 never expires, negative is already expired

        Raises:
            StorageFailureError: If the backend write fails
        """
        entry = CacheEntry(
            payload=payload, created_at=self._clock(), ttl_seconds=_ttl_seconds(ttl)
        )
        self.backend.set(key, entry.serialize())

    def get(self, key: str) -> Tuple[Optional[bytes], bool]:
        """Fetch a response.

        Returns:
            (payload, True) when present and fresh, (None, False) when absent
            or expired

        Raises:
            DataCorruptionError: If the stored record cannot be parsed
            StorageFailureError: If the backend read fails
        """
        data = self.backend.get(key)
        if data is None:
            return None, False

        try:
            entry = CacheEntry.deserialize(data)
        except DataCorruptionError as e:
            e.details["key"] = key
            raise

        if entry.is_expired(self._clock()):
            logger.debug(f"Cache entry {key} expired, evicting")
            self.backend.delete(key)
            if self.on_evict is not None:
                self.on_evict()
            return None, False

        return entry.payload, True

    def delete(self, key: str) -> bool:
        return self.backend.delete(key)
