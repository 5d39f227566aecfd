"""Process-wide Redis client shared by ``RedisStore`` and ``/health/ready``.

Created lazily on first use from ``settings.redis_url`` and closed by the
app lifespan (or the CLI) on shutdown.
"""

import logging
from typing import Optional

import redis.asyncio as redis

from geoauthz.config import settings

logger = logging.getLogger(__name__)

_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    global _client
    if _client is None:
        # Records are JSON text, so responses are decoded to str
        _client = redis.from_url(settings.redis_url, decode_responses=True, max_connections=50)
        logger.info("Redis client created")
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


async def ping_redis() -> bool:
    """True when Redis answers PING; connection errors are logged, not raised."""
    try:
        client = await get_redis()
        return bool(await client.ping())
    except redis.RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        return False
