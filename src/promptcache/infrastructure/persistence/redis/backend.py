"""Redis key/value backend.

Every redis-py error is reported as a StorageFailureError so callers see one
storage error kind regardless of backend.
"""

import logging
from typing import Dict, List, Optional

from redis import Redis, RedisError

from promptcache.constants import REDIS_SCAN_BATCH_SIZE
from promptcache.exception.api_exceptions import StorageFailureError
from promptcache.infrastructure.persistence.backend import KeyValueBackend

logger = logging.getLogger(__name__)


def _to_str(key: object) -> str:
    return key.decode("utf-8") if isinstance(key, bytes) else str(key)


class RedisBackend(KeyValueBackend):
    """KeyValueBackend over a synchronous Redis client.

    Attributes:
        client: redis-py client (bytes responses)
    """

    def __init__(self, client: Redis):
        self.client = client

    def set(self, key: str, value: bytes) -> None:
        try:
            self.client.set(key, value)
        except RedisError as e:
            logger.error(f"Redis SET failed for {key}: {e}", exc_info=True)
            raise StorageFailureError(f"Redis write failed: {e}", key=key) from e

    def get(self, key: str) -> Optional[bytes]:
        try:
            return self.client.get(key)
        except RedisError as e:
            logger.error(f"Redis GET failed for {key}: {e}", exc_info=True)
            raise StorageFailureError(f"Redis read failed: {e}", key=key) from e

    def delete(self, key: str) -> bool:
        try:
            return self.client.delete(key) > 0
        except RedisError as e:
            logger.error(f"Redis DEL failed for {key}: {e}", exc_info=True)
            raise StorageFailureError(f"Redis delete failed: {e}", key=key) from e

    def _scan_keys(self, prefix: str) -> List[bytes]:
        keys = []
        cursor = 0

        while True:
            cursor, batch = self.client.scan(
                cursor=cursor,
                match=f"{prefix}*",
                count=REDIS_SCAN_BATCH_SIZE,
            )
            keys.extend(batch)

            if cursor == 0:
                break

        return keys

    def scan_prefix(self, prefix: str) -> Dict[str, bytes]:
        try:
            keys = self._scan_keys(prefix)
            if not keys:
                return {}
            values = self.client.mget(keys)
        except RedisError as e:
            logger.error(f"Redis scan failed for {prefix}*: {e}", exc_info=True)
            raise StorageFailureError(f"Redis scan failed: {e}", key=prefix) from e

        # keys deleted between SCAN and MGET come back as None
        return {
            _to_str(key): value
            for key, value in zip(keys, values)
            if value is not None
        }

    def count_prefix(self, prefix: str) -> int:
        try:
            return len(self._scan_keys(prefix))
        except RedisError as e:
            logger.error(f"Redis scan failed for {prefix}*: {e}", exc_info=True)
            raise StorageFailureError(f"Redis scan failed: {e}", key=prefix) from e

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False
