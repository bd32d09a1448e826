"""
Cache service for high-level caching operations.
"""

import hashlib
from datetime import timedelta
from typing import Any, Optional, Union

from eduverify.core.logging import get_logger
from eduverify.infrastructure.cache.redis_client import get_redis_client

logger = get_logger(__name__)


class CacheService:
    """High-level cache service used for short-lived lookups."""

    def __init__(self):
        """Initialize cache service."""
        self._redis_client = None

    async def _get_client(self):
        """Get Redis client instance."""
        if not self._redis_client:
            self._redis_client = await get_redis_client()
        return self._redis_client

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        client = await self._get_client()
        return await client.get(key)

    async def set(
        self,
        key: str,
        value: Any,
        expire: Optional[Union[int, timedelta]] = None
    ) -> bool:
        """Set value in cache."""
        client = await self._get_client()
        return await client.set(key, value, expire)

    def secret_key(self, prefix: str, secret: str) -> str:
        """
        Build a cache key for a secret value without storing the secret itself.

        Args:
            prefix (str): Key prefix
            secret (str): Secret material, e.g. a bearer token

        Returns:
            str: ``<prefix>:<sha256 hex>``
        """
        digest = hashlib.sha256(secret.encode("utf-8")).hexdigest()
        return f"{prefix}:{digest}"


# Global cache service instance
cache_service = CacheService()

