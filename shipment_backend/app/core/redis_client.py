"""
Redis client initialization and connection management.

Redis holds the token blacklist used by logout.
"""

import logging
import redis.asyncio as redis
from redis.exceptions import RedisError
from shipment_backend.app.core.config import settings

logger = logging.getLogger(__name__)

# Create async Redis client
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def ping_redis() -> bool:
    """
    Test Redis connection.
    
    Returns:
        True if connection successful, False otherwise
    """
    try:
        return await redis_client.ping()
    except RedisError as e:
        logger.warning("Redis ping failed: %s", e)
        return False


async def close_redis() -> None:
    """Close the shared client at application shutdown."""
    await redis_client.aclose()
