"""
In-memory rate limiting for the callback endpoint.

Per callback process only. It throttles token guessing from a single client;
it takes no part in link correctness.
"""

from __future__ import annotations

from collections import defaultdict, deque
from datetime import UTC, datetime, timedelta


class RateLimiter:
    """Sliding-window request counter per key (client IP)."""

    def __init__(self, max_requests: int, window: timedelta) -> None:
        self.max_requests = max_requests
        self.window = window
        self._hits: dict[str, deque[datetime]] = defaultdict(deque)

    def allow(self, key: str) -> bool:
        """
        Record a hit for `key` if it is under the limit.

        Returns:
            True if allowed, False if the limit is exceeded
        """
        now = datetime.now(UTC)
        hits = self._hits[key]
        while hits and hits[0] <= now - self.window:
            hits.popleft()

        if len(hits) >= self.max_requests:
            return False

        hits.append(now)
        return True

    def cleanup_old_entries(self) -> None:
        """Drop keys with no hits inside the window."""
        cutoff = datetime.now(UTC) - self.window
        for key in list(self._hits.keys()):
            hits = self._hits[key]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if not hits:
                del self._hits[key]
