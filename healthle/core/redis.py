"""Shared Redis client for rate limiting and suggestion debouncing.

Both callers treat Redis as optional and let requests through when it is
down, so the client is configured to fail fast instead of hanging.
"""

import redis.asyncio as redis
from redis.asyncio import Redis

from healthle.config import get_settings
from healthle.core.logging import get_logger

logger = get_logger(__name__)

SOCKET_TIMEOUT_SECONDS = 1.0

_client: Redis | None = None


def redis_key(*parts: object) -> str:
    """Namespace a key under the configured prefix."""
    return ":".join([get_settings().redis_key_prefix, *(str(part) for part in parts)])


async def get_redis() -> Redis:
    global _client
    if _client is None:
        settings = get_settings()
        _client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=SOCKET_TIMEOUT_SECONDS,
            socket_connect_timeout=SOCKET_TIMEOUT_SECONDS,
        )
        # Strip credentials before logging
        logger.info("Redis client created", host=settings.redis_url.rsplit("@", 1)[-1])
    return _client


async def check_redis_health() -> bool:
    """PING for the readiness probe."""
    try:
        return await (await get_redis()).ping() is True
    except Exception as e:
        logger.error("Redis health check failed", error=str(e))
        return False


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("Redis client closed")
