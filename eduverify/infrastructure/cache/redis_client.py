"""
Redis client for caching operations.
Handles connection management, JSON serialization, and error handling.
"""

import json
from datetime import timedelta
from typing import Any, Optional, Union

import redis.asyncio as redis
from redis.exceptions import RedisError

from eduverify.core.config import settings
from eduverify.core.logging import get_logger

logger = get_logger(__name__)


class RedisClient:
    """Redis client with JSON serialization support."""

    def __init__(self):
        """Initialize Redis client."""
        self._client: Optional[redis.Redis] = None
        self._connection_pool: Optional[redis.ConnectionPool] = None

    async def connect(self) -> None:
        """Establish connection to Redis server."""
        redis_uri = settings.REDIS_URI
        self._connection_pool = redis.ConnectionPool.from_url(
            redis_uri,
            db=settings.REDIS_DB,
            decode_responses=True,
            max_connections=20,
            retry_on_timeout=True,
        )
        client = redis.Redis(connection_pool=self._connection_pool)

        try:
            await client.ping()
        except RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            await self._release(client)
            raise

        self._client = client
        logger.info(f"Connected to Redis at {redis_uri}")

    async def _release(self, client: redis.Redis) -> None:
        # A client built on an explicit pool does not disconnect the pool itself
        await client.aclose()
        if self._connection_pool is not None:
            await self._connection_pool.disconnect()
        self._client = None
        self._connection_pool = None

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._release(self._client)
            logger.info("Disconnected from Redis")

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from Redis cache.

        Args:
            key (str): Cache key

        Returns:
            Optional[Any]: Deserialized value or None if not found or unreachable
        """
        try:
            if not self._client:
                await self.connect()
            value = await self._client.get(key)
        except RedisError as e:
            logger.error(f"Error getting key {key} from Redis: {e}")
            return None

        if value is None:
            logger.debug(f"Cache miss for key: {key}")
            return None

        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.debug(f"Cache hit for key: {key} (non-JSON)")
            return value

    async def set(
        self,
        key: str,
        value: Any,
        expire: Optional[Union[int, timedelta]] = None
    ) -> bool:
        """
        Set value in Redis cache.

        Args:
            key (str): Cache key
            value (Any): Value to cache (will be JSON serialized)
            expire (Optional[Union[int, timedelta]]): Expiration time in seconds or timedelta

        Returns:
            bool: True if successful, False otherwise
        """
        serialized_value = json.dumps(value, default=str)

        try:
            if not self._client:
                await self.connect()
            result = await self._client.set(key, serialized_value, ex=expire)
        except RedisError as e:
            logger.error(f"Error setting key {key} in Redis: {e}")
            return False

        if not result:
            logger.warning(f"Failed to set cache for key: {key}")
            return False
        return True


# Global Redis client instance
redis_client = RedisClient()


async def get_redis_client() -> RedisClient:
    """
    Get Redis client instance.

    Returns:
        RedisClient: Redis client instance
    """
    return redis_client
