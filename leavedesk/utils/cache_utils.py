import json
import logging
from typing import Any, Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from config import Settings

logger = logging.getLogger(__name__)


class CacheKeys:
    EMPLOYEE_DIRECTORY = "leavedesk:employee_directory"


def get_redis_client(settings: Settings) -> aioredis.Redis:
    return aioredis.Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD or None,
        db=settings.REDIS_DB,
        decode_responses=True,
    )


async def get_from_cache(client: aioredis.Redis, key: str) -> Optional[Any]:
    """Cached JSON value under `key`, or None when absent or unreadable."""
    try:
        value = await client.get(key)
        if value:
            return json.loads(value)
        return None
    except json.JSONDecodeError as e:
        logger.error(f"Failed to decode cached value for key {key}: {e}")
        return None
    except RedisError as e:
        logger.error(f"Error getting from cache for key {key}: {e}")
        return None


async def set_to_cache(client: aioredis.Redis, key: str, value: Any, ttl: int) -> bool:
    try:
        await client.setex(key, ttl, json.dumps(value))
        return True
    except RedisError as e:
        logger.error(f"Error setting cache for key {key}: {e}")
        return False


async def delete_from_cache(client: aioredis.Redis, key: str) -> bool:
    try:
        await client.delete(key)
        return True
    except RedisError as e:
        logger.error(f"Error deleting cache for key {key}: {e}")
        return False
