"""
Rate limiting module for the Concierge Orchestrator

This module provides the two layered request limiters:
- Redis-backed global limiter (shared across workers)
- In-memory burst limiter (per process, and fallback for the global one)
"""

from .base import RateLimitDecision, RateLimiter
from .memory_backend import InMemoryRateLimiter
from .redis_backend import RedisRateLimiter

__all__ = [
    "RateLimitDecision",
    "RateLimiter",
    "InMemoryRateLimiter",
    "RedisRateLimiter"
]
