"""
Redis connection.

Redis holds two kinds of short-lived data: the geocoding cache
(`geocode:<address>`) and generated route options (`route_option:<uuid>`)
until one is selected or they expire.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError
from cargo_backend.app.core.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
    socket_timeout=settings.provider_timeout_seconds,
)


async def get_redis():
    """FastAPI dependency for the geocoder cache and the option store."""
    return redis_client


async def ping_redis(client=None) -> bool:
    """
    Check Redis is reachable. Used by the health endpoint.

    Args:
        client: Redis client to ping, defaults to the shared one

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return bool(await (client or redis_client).ping())
    except RedisError as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False
