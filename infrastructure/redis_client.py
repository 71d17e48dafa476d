# infrastructure/redis_client.py

import redis.asyncio as redis

from config.settings import settings
from core.logger import logger

_client = None


async def get_redis_client():
    """
    Creates and returns a singleton async Redis client connection.
    Returns:
        redis.Redis: Connected async Redis client instance
    """
    global _client
    if _client is None:
        try:
            _client = redis.Redis(
                host=settings.REDIS_HOST,
                port=int(settings.REDIS_PORT),
                password=settings.REDIS_PASSWORD,
                decode_responses=True,
                socket_timeout=float(settings.REDIS_TIMEOUT),
            )
            logger.debug("Async Redis client initialized")
        except Exception as e:
            logger.error(f"Error creating async Redis connection: {e}")
            return None
    return _client


async def close_redis_client():
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
        logger.debug("Async Redis client closed")
