"""
Cache infrastructure module.
Redis-backed cache for session access-token lookups.
"""

from .redis_client import RedisClient, redis_client, get_redis_client
from .cache_service import CacheService, cache_service

__all__ = [
    "RedisClient",
    "redis_client",
    "get_redis_client",
    "CacheService",
    "cache_service"
]
