"""
In-process sliding-window rate limiter
Guards against rapid bursts from one caller on a single worker
"""

import asyncio
import logging
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict

from .base import RateLimitDecision, RateLimiter

logger = logging.getLogger(__name__)


class InMemoryRateLimiter(RateLimiter):
    """Sliding-window limiter kept in process memory"""

    backend_name = "memory"
    prune_every = 1000

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        super().__init__(max_requests, window_seconds)
        self._clock = clock
        self._windows: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = asyncio.Lock()
        self._checks = 0

    async def initialize(self):
        logger.info(
            f"Using in-memory rate limiter ({self.max_requests} requests / {self.window_seconds:g}s)"
        )

    async def close(self):
        self._windows.clear()

    async def check(self, key: str) -> RateLimitDecision:
        async with self._lock:
            self._checks += 1
            if self._checks % self.prune_every == 0:
                self.prune()

            now = self._clock()
            cutoff = now - self.window_seconds
            window = self._windows[key]
            while window and window[0] <= cutoff:
                window.popleft()

            if len(window) >= self.max_requests:
                reset_after = window[0] + self.window_seconds - now
                return RateLimitDecision(allowed=False, remaining=0, reset_after=max(0.0, reset_after))

            window.append(now)
            reset_after = window[0] + self.window_seconds - now
            return RateLimitDecision(
                allowed=True,
                remaining=self.max_requests - len(window),
                reset_after=max(0.0, reset_after),
            )

    def prune(self):
        """Drop callers whose windows have fully expired"""
        cutoff = self._clock() - self.window_seconds
        expired = [key for key, window in self._windows.items() if not window or window[-1] <= cutoff]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug(f"Pruned {len(expired)} idle rate-limit windows")
