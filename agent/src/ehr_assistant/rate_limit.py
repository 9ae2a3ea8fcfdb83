"""Per-user fixed-window rate limiting for chat messages."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from ehr_assistant.config import CHAT_RATE_LIMIT, CHAT_RATE_WINDOW_SECONDS
from ehr_assistant.errors import RateLimitExceeded


@dataclass
class RateLimitEntry:
    """Message count for one user in the current window."""

    count: int
    reset_at: float


class RateLimiter:
    """In-memory fixed-window limiter keyed by user ID.

    Each user gets ``max_requests`` messages per ``window_seconds``. The
    window starts with the user's first message and resets once it has
    elapsed. Expired entries are purged every ``cleanup_interval`` seconds.
    """

    def __init__(
        self,
        max_requests: int = CHAT_RATE_LIMIT,
        window_seconds: float = CHAT_RATE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        cleanup_interval: float = 300.0,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._cleanup_interval = cleanup_interval
        self._entries: dict[str, RateLimitEntry] = {}
        self._next_cleanup = clock() + cleanup_interval

    def check(self, user_id: str) -> None:
        """Count one message for ``user_id``.

        Raises:
            RateLimitExceeded: If the user already used the whole window.
        """
        now = self._clock()
        self._maybe_cleanup(now)

        entry = self._entries.get(user_id)
        if entry is None or now >= entry.reset_at:
            self._entries[user_id] = RateLimitEntry(count=1, reset_at=now + self.window_seconds)
            return

        if entry.count >= self.max_requests:
            raise RateLimitExceeded(user_id, retry_after=entry.reset_at - now)

        entry.count += 1

    def remaining(self, user_id: str) -> int:
        entry = self._entries.get(user_id)
        if entry is None or self._clock() >= entry.reset_at:
            return self.max_requests
        return max(self.max_requests - entry.count, 0)

    def _maybe_cleanup(self, now: float) -> None:
        if now < self._next_cleanup:
            return
        expired = [uid for uid, entry in self._entries.items() if now >= entry.reset_at]
        for uid in expired:
            del self._entries[uid]
        self._next_cleanup = now + self._cleanup_interval
