"""Shared rate limiter instance.

Uses Redis-backed storage when Redis is available so counters are shared
across instances; falls back to in-memory storage otherwise.

The public invite endpoints are limited per client address so tokens
cannot be guessed by brute force. Issuing invites is limited per family,
which keeps one family from mailing out links in bulk whichever parent
asks.
"""

import logging

import redis as sync_redis
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from coparent.config import settings

logger = logging.getLogger(__name__)

INVITE_PUBLIC_LIMIT = settings.RATE_LIMIT_INVITE_PUBLIC
INVITE_ISSUE_LIMIT = settings.RATE_LIMIT_INVITE_ISSUE


def family_key(request: Request) -> str:
    """Bucket requests by the ``family_id`` path parameter, else by address."""
    family_id = request.path_params.get("family_id")
    if family_id:
        return f"family:{family_id}"
    return get_remote_address(request)


def _create_limiter() -> Limiter:
    defaults = [settings.RATE_LIMIT_DEFAULT]
    try:
        client = sync_redis.from_url(settings.REDIS_URL, socket_connect_timeout=1)
        client.ping()
        client.close()
        logger.info("Rate limiter: Redis storage (%s)", settings.REDIS_URL)
        return Limiter(
            key_func=get_remote_address,
            default_limits=defaults,
            storage_uri=settings.REDIS_URL,
        )
    except Exception:
        logger.warning("Rate limiter: Redis unavailable, using in-memory storage")
        return Limiter(key_func=get_remote_address, default_limits=defaults)


limiter = _create_limiter()
