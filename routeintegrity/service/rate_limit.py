"""
Per-client commit throttling.

Commits are the only write path, so only they are limited. Each client
address gets a sliding window of recent commit attempts; queries are
never counted.
"""

import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    retry_after: Optional[int] = None

    def headers(self) -> Dict[str, str]:
        """Response headers describing the client's budget."""
        out = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
        }
        if self.retry_after is not None:
            out["Retry-After"] = str(self.retry_after)
        return out


class RateLimiter:
    """
    Sliding window limiter keyed by client.

    Args:
        rpm: Requests allowed per window (at least 1)
        window_seconds: Window length
        time_fn: Time source, injectable for tests
    """

    def __init__(self, rpm: int, window_seconds: int = 60, time_fn: Callable[[], float] = time.monotonic):
        self._limit = max(1, rpm)
        self._window = window_seconds
        self._time = time_fn
        self._seen: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._limit

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._seen)

    def check(self, client: str) -> RateLimitResult:
        """Count one attempt for client unless its window is already full."""
        now = self._time()
        with self._lock:
            self._prune(now)
            seen = self._seen.setdefault(client, deque())

            if len(seen) >= self._limit:
                # Whole seconds until the oldest attempt leaves the window
                wait = math.ceil(seen[0] + self._window - now)
                return RateLimitResult(False, self._limit, 0, retry_after=max(1, wait))

            seen.append(now)
            return RateLimitResult(True, self._limit, self._limit - len(seen))

    def _prune(self, now: float) -> None:
        # Clients with nothing left in the window are forgotten
        cutoff = now - self._window
        for client in list(self._seen):
            seen = self._seen[client]
            while seen and seen[0] <= cutoff:
                seen.popleft()
            if not seen:
                del self._seen[client]

    def allow(self, client: str) -> bool:
        return self.check(client).allowed

    def reset(self, client: Optional[str] = None) -> None:
        with self._lock:
            if client is None:
                self._seen.clear()
            else:
                self._seen.pop(client, None)
