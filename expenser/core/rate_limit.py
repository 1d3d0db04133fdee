"""In-memory sliding-window limiter for sign-in attempts."""
from __future__ import annotations

import asyncio
import time
from collections import defaultdict, deque
from typing import Callable, DefaultDict, Deque


class RateLimiter:
    """Count attempts per key inside a moving time window.

    State lives in process memory, so limits are per worker and reset on
    restart.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._attempts: DefaultDict[str, Deque[float]] = defaultdict(deque)
        self._lock = asyncio.Lock()

    async def is_allowed(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """Record an attempt for ``key`` unless the window is already full."""
        async with self._lock:
            now = self._clock()
            bucket = self._attempts[key]
            while bucket and bucket[0] <= now - window_seconds:
                bucket.popleft()

            if len(bucket) >= max_requests:
                return False

            bucket.append(now)
            return True

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._attempts.clear()
        else:
            self._attempts.pop(key, None)


rate_limiter = RateLimiter()

__all__ = ["RateLimiter", "rate_limiter"]
