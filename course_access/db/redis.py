"""Redis client construction.

Mirrors the store handle: when REDIS_URL is configured the lifespan builds
a pooled client and closes it at shutdown; when it is unset (local dev,
tests) the rate limiter falls back to its in-memory implementation and no
Redis server is needed.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from course_access.core.config import Settings

logger = logging.getLogger(__name__)


async def connect_redis(settings: Settings) -> aioredis.Redis | None:  # type: ignore[type-arg]
    """Return a connected client, or None when Redis is not configured or unreachable.

    An unreachable Redis does not stop startup: rate limiting degrades to
    per-process buckets.
    """
    if not settings.redis_url:
        logger.info("No REDIS_URL configured; rate limiting uses in-memory buckets")
        return None

    client = aioredis.from_url(
        settings.redis_url,
        decode_responses=True,
        max_connections=20,
    )
    try:
        await client.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
    except (RedisError, OSError):
        logger.exception("Redis connection failed on startup")
        await client.aclose()
        return None

    logger.info("Redis connected")
    return client
