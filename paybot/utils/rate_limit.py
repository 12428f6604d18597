"""Simple per-user rate limiting."""

from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import Deque, Dict


class RateLimiter:
    """Track per-user events within a rolling window."""

    def __init__(self, limit_per_minute: int, window_seconds: float = 60.0) -> None:
        self.limit = limit_per_minute
        self.window = window_seconds
        self._events: Dict[int, Deque[float]] = defaultdict(deque)

    def _prune(self, user_id: int, now: float) -> Deque[float]:
        events = self._events[user_id]
        window_start = now - self.window
        while events and events[0] < window_start:
            events.popleft()
        return events

    def allow(self, user_id: int) -> bool:
        """Record an event and return whether it stays under limit."""
        now = time.time()
        events = self._prune(user_id, now)

        if len(events) >= self.limit:
            return False

        events.append(now)
        return True

    def retry_after(self, user_id: int) -> int:
        """Seconds until the oldest event leaves the window (0 if not limited)."""
        now = time.time()
        events = self._prune(user_id, now)
        if len(events) < self.limit:
            return 0
        return max(1, int(events[0] + self.window - now) + 1)
