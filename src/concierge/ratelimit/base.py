"""
Rate limiter interface shared by the Redis and in-memory backends
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_after: float  # seconds until the caller's window frees up

    @property
    def reset_after_seconds(self) -> int:
        """Whole seconds, rounded up, for the ``resetAfter`` hint"""
        return max(0, math.ceil(self.reset_after))


class RateLimiter(ABC):
    """Allow/deny policy keyed by a caller token (IP or equivalent)"""

    backend_name = "abstract"

    def __init__(self, max_requests: int, window_seconds: float):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def initialize(self):
        pass

    async def close(self):
        pass

    @abstractmethod
    async def check(self, key: str) -> RateLimitDecision:
        """Record one request for ``key`` and decide whether it may proceed"""
