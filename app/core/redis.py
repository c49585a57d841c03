"""
Redis holds one thing for this service: the session revocation list.

Keys are ``jwt:revoked:<jti>`` and expire with the token they revoke, so
the list never outgrows the set of still-valid sessions.
"""

from __future__ import annotations

import redis.asyncio as redis
from redis.exceptions import RedisError
import structlog

from app.core.config import get_settings

settings = get_settings()
log = structlog.get_logger()

REVOKED_KEY_PREFIX = "jwt:revoked:"

_client: redis.Redis | None = None


def revoked_key(jti: str) -> str:
    return f"{REVOKED_KEY_PREFIX}{jti}"


async def get_redis() -> redis.Redis:
    """Shared client, created on first use so importing the app never connects."""
    global _client
    if _client is None:
        _client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout,
        )
    return _client


async def check_redis() -> bool:
    """Return True if Redis answers PING; revocation checks depend on it."""
    try:
        client = await get_redis()
        await client.ping()
        return True
    except RedisError as exc:
        log.warning("redis.unreachable", error=str(exc))
        return False


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
