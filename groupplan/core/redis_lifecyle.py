# groupplan/core/redis_lifecyle.py
import redis.asyncio as redis
from groupplan.core.config import settings
from groupplan.core.cache import MemoryRateLimitStore, RateLimitStore, RedisRateLimitStore
from groupplan.core.logger import logger
from typing import Optional

_redis_client: Optional[redis.Redis] = None
_store_instance: Optional[RateLimitStore] = None


async def init_redis_client() -> Optional[redis.Redis]:
    """Initialize the Redis client on startup; returns None when REDIS_URL is unset."""
    global _redis_client

    if not settings.REDIS_URL:
        return None

    if _redis_client is None:
        _redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        try:
            await _redis_client.ping()
        except redis.ConnectionError:
            raise Exception("Could not connect to Redis server") from None

    return _redis_client


async def get_rate_limit_store() -> RateLimitStore:
    """FastAPI dependency for the shared rate limit store."""
    global _store_instance

    if _store_instance is None:
        client = await init_redis_client()
        if client is None:
            logger.warning("REDIS_URL not set, rate limits are tracked per process")
            _store_instance = MemoryRateLimitStore()
        else:
            _store_instance = RedisRateLimitStore(client)

    return _store_instance


async def close_redis():
    """Close the Redis connection on application shutdown."""
    global _redis_client, _store_instance
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
    _store_instance = None
