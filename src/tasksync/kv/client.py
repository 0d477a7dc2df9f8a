"""Redis connection pool shared by the app.

Learn: redis.asyncio.from_url() is lazy; no socket is opened until the
first command. The container creates the client up front, and the
lifespan calls init_redis() to ping it and publish it to the middleware
(rate limiter) and the health check. If Redis is down, the app still
boots: rate limiting is skipped and /health reports "degraded".
"""

from typing import Optional

import redis.asyncio as aioredis

from tasksync.config import settings

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


def create_redis(url: Optional[str] = None) -> aioredis.Redis:
    """Build a client without connecting."""
    return aioredis.from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )


async def init_redis(client: aioredis.Redis) -> aioredis.Redis:
    """Register the Redis client for the process and verify the connection."""
    global _redis
    _redis = client
    await _redis.ping()
    return _redis


def release_redis() -> None:
    """Forget the registered client. The container that created it closes it."""
    global _redis
    _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection (must be initialized first)."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis
