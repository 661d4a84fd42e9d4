"""Per-client rate limiting for guestbook submissions.

The limiter enforces a fixed cooldown between accepted requests from the
same client key. State lives in an injectable store; the in-memory store
is per-process and resets on restart, so with several instances the limit
is enforced per instance only.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from src.services.errors import RateLimitError


logger = logging.getLogger(__name__)


class RateLimitStore(ABC):
    """Storage for the last accepted request time of each client key."""

    @abstractmethod
    def get_last_request(self, client_key: str) -> Optional[float]:
        """Epoch milliseconds of the last accepted request, or None."""

    @abstractmethod
    def set_last_request(self, client_key: str, epoch_ms: float) -> None:
        """Record an accepted request."""


class InMemoryRateLimitStore(RateLimitStore):
    """Rate limit entries kept in a process-local dict."""

    def __init__(self) -> None:
        self._entries: dict[str, float] = {}
        self._lock = threading.Lock()

    def get_last_request(self, client_key: str) -> Optional[float]:
        with self._lock:
            return self._entries.get(client_key)

    def set_last_request(self, client_key: str, epoch_ms: float) -> None:
        with self._lock:
            self._entries[client_key] = epoch_ms

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RateLimiter:
    """Rejects a request arriving within window_seconds of the previous
    accepted request from the same client key.

    The window is measured from the previous accepted request only;
    rejected requests do not extend it.
    """

    def __init__(
        self,
        store: Optional[RateLimitStore] = None,
        window_seconds: float = 5,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store if store is not None else InMemoryRateLimitStore()
        self.window_ms = window_seconds * 1000
        self._clock = clock

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def ensure_allowed(self, client_key: str) -> None:
        """Reject a request from client_key without recording it.

        Raises:
            RateLimitError: If the previous accepted request is within the window
        """
        now = self._now_ms()
        last = self.store.get_last_request(client_key)
        if last is not None:
            elapsed = now - last
            if elapsed < self.window_ms:
                retry_after = (self.window_ms - elapsed) / 1000
                logger.warning(
                    "Rate limit hit for %s (retry after %.1fs)", client_key, retry_after
                )
                raise RateLimitError(retry_after)

    def record(self, client_key: str) -> None:
        """Mark a request from client_key as accepted now."""
        self.store.set_last_request(client_key, self._now_ms())

    def check(self, client_key: str) -> None:
        """Accept or reject a request from client_key, recording it if accepted.

        Raises:
            RateLimitError: If the previous accepted request is within the window
        """
        self.ensure_allowed(client_key)
        self.record(client_key)
