"""
Redis-backed fixed-window rate limiter shared across workers
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from .base import RateLimitDecision, RateLimiter

logger = logging.getLogger(__name__)


class RedisRateLimiter(RateLimiter):
    """Fixed-window counter per caller, stored in Redis with a TTL"""

    backend_name = "redis"

    def __init__(
        self,
        redis_url: str,
        max_requests: int,
        window_seconds: float,
        password: Optional[str] = None,
        key_prefix: str = "concierge",
        redis_client: Optional[redis.Redis] = None,
    ):
        super().__init__(max_requests, window_seconds)
        # Build connection URL with password if provided
        if password and "://" in redis_url:
            protocol, rest = redis_url.split("://", 1)
            redis_url = f"{protocol}://:{password}@{rest}"

        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.redis_client: Optional[redis.Redis] = redis_client
        self._owns_client = redis_client is None

    @property
    def window_ttl(self) -> int:
        return max(1, int(round(self.window_seconds)))

    async def initialize(self):
        """Initialize Redis connection"""
        try:
            if self.redis_client is None:
                self._owns_client = True
                self.redis_client = redis.from_url(self.redis_url, decode_responses=True)
            # Test connection
            await self.redis_client.ping()
            logger.info("✅ Connected to Redis for rate limiting")
        except Exception as e:
            logger.error(f"❌ Failed to connect to Redis: {e}")
            raise

    async def close(self):
        """Close Redis connection"""
        if self.redis_client and self._owns_client:
            await self.redis_client.aclose()
            logger.info("Redis rate limiter closed")
        self.redis_client = None

    def _key(self, key: str) -> str:
        return f"ratelimit:{self.key_prefix}:{key}"

    async def check(self, key: str) -> RateLimitDecision:
        if not self.redis_client:
            raise RuntimeError("Redis client not initialized")

        redis_key = self._key(key)
        try:
            count = await self.redis_client.incr(redis_key)
            if count == 1:
                await self.redis_client.expire(redis_key, self.window_ttl)
            ttl = await self.redis_client.ttl(redis_key)
            if ttl is None or ttl < 0:
                # Counter survived without an expiry; restart its window
                await self.redis_client.expire(redis_key, self.window_ttl)
                ttl = self.window_ttl
        except RedisError as e:
            # Fail open for availability; the local limiter still applies
            logger.warning(f"Redis rate limit check failed for {redis_key}: {e}")
            return RateLimitDecision(allowed=True, remaining=self.max_requests, reset_after=0.0)

        return RateLimitDecision(
            allowed=count <= self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_after=float(ttl),
        )
