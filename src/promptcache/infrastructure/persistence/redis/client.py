"""Redis client management.

Provides the synchronous redis-py client used by the key/value backend.
Values are raw bytes, so responses are not decoded.
"""

from typing import Optional

from redis import Redis


class RedisClient:
    """Redis client for blocking operations.

    Manages Redis connection.

    Attributes:
        url: Redis connection URL
        default_db: Default database number
        client: Redis client
    """

    def __init__(self, url: str, default_db: int = 0):
        """Initialize Redis client.

        Args:
            url: Redis connection URL
            default_db: Default database number
        """
        self.url = url
        self.default_db = default_db
        self.client: Optional[Redis] = None

    def connect(self) -> None:
        """Create Redis client connection."""
        if self.client is None:
            self.client = Redis.from_url(
                self.url,
                db=self.default_db,
                decode_responses=False,
            )

    def disconnect(self) -> None:
        """Close Redis client connection."""
        if self.client is not None:
            self.client.close()
            self.client = None

    def get_client(self) -> Redis:
        """Get the underlying Redis client.

        Returns:
            Redis client instance
        """
        if self.client is None:
            raise RuntimeError("Client not connected. Call connect() first.")

        return self.client
