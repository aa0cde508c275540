"""Async Redis client singleton with graceful fallback.

Redis only backs the schedule rule cache. If it is unavailable (e.g. in
development or tests) caching is skipped and rules are read from the
database every time.
"""

import json
import logging
from typing import Any

import redis.asyncio as aioredis

from coparent.config import settings

logger = logging.getLogger(__name__)

_redis: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis | None:
    """Return the shared Redis client, or None if Redis is unavailable."""
    global _redis
    if _redis is None:
        try:
            client = aioredis.from_url(
                settings.REDIS_URL, decode_responses=True, socket_connect_timeout=1,
            )
            await client.ping()
            _redis = client
            logger.info("Redis connected at %s", settings.REDIS_URL)
        except Exception:
            logger.warning("Redis unavailable, rule cache disabled (%s)", settings.REDIS_URL)
            _redis = None
    return _redis


async def cache_get_json(key: str) -> Any | None:
    """Decoded JSON stored at ``key``; None on a miss or without Redis."""
    client = await get_redis()
    if client is None:
        return None
    raw = await client.get(key)
    return json.loads(raw) if raw else None


async def cache_set_json(key: str, value: Any, ttl: int, only_if_absent: bool = False) -> bool:
    """Store ``value`` as JSON for ``ttl`` seconds and report whether it was written.

    With ``only_if_absent`` an entry that is already cached wins.
    """
    client = await get_redis()
    if client is None:
        return False
    written = await client.set(key, json.dumps(value), ex=ttl, nx=only_if_absent)
    return bool(written)


async def close_redis() -> None:
    """Close the Redis connection on application shutdown."""
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
        logger.info("Redis connection closed")
