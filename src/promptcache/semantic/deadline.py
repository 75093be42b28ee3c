"""Caller-supplied deadline and cancellation signal for outbound calls."""

import threading
import time
from typing import Optional

from promptcache.exception.api_exceptions import DeadlineExceededError


class Deadline:
    """A per-request time budget that can also be cancelled explicitly.

    Providers check ``remaining()`` before each outbound call and keep polling
    it while the call runs, giving up as soon as it raises.

    Attributes:
        timeout_seconds: Budget measured from construction, None for unbounded
    """

    def __init__(self, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = timeout_seconds
        self._expires_at = (
            time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        )
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Signal that the caller no longer wants the result."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        if self._expires_at is None:
            return False
        return time.monotonic() >= self._expires_at

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline.

        Returns:
            Remaining seconds, or None if the deadline is unbounded

        Raises:
            DeadlineExceededError: If cancelled or already expired
        """
        if self.cancelled:
            raise DeadlineExceededError("Request was cancelled")
        if self._expires_at is None:
            return None

        left = self._expires_at - time.monotonic()
        if left <= 0:
            raise DeadlineExceededError(
                f"Deadline of {self.timeout_seconds}s exceeded",
                details={"timeout_seconds": self.timeout_seconds},
            )
        return left
