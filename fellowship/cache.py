"""
Cache Manager
Best-effort Redis cache for the story feed and upload rate limits
"""
import json
from typing import Any, Optional, List, Dict
from . import core
import logging

logger = logging.getLogger(__name__)

ACTIVE_STORIES_KEY = "active"


class CacheManager:
    """
    Thin Redis wrapper; every call is a no-op when Redis is not connected
    """

    def __init__(self):
        self.default_ttl = 60

    def _make_key(self, key: str, prefix: str = "") -> str:
        """Generate cache key with prefix"""
        if prefix:
            return f"{prefix}:{key}"
        return key

    async def set(self, key: str, value: Any, ttl: int = None, prefix: str = "") -> bool:
        """Set cache value with TTL"""
        if not core.REDIS:
            return False

        cache_key = self._make_key(key, prefix)
        ttl = ttl or self.default_ttl

        try:
            await core.REDIS.setex(cache_key, ttl, json.dumps(value, default=str))
            return True
        except Exception as e:
            logger.error(f"Cache set failed for key {cache_key}: {str(e)}")
            return False

    async def get(self, key: str, prefix: str = "") -> Optional[Any]:
        """Get cache value"""
        if not core.REDIS:
            return None

        cache_key = self._make_key(key, prefix)

        try:
            value = await core.REDIS.get(cache_key)
            if value is None:
                return None
            return json.loads(value)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Cache value for {cache_key} is not JSON: {str(e)}")
            return None
        except Exception as e:
            logger.error(f"Cache get failed for key {cache_key}: {str(e)}")
            return None

    async def delete(self, key: str, prefix: str = "") -> bool:
        """Delete cache key"""
        if not core.REDIS:
            return False

        cache_key = self._make_key(key, prefix)

        try:
            result = await core.REDIS.delete(cache_key)
            return result > 0
        except Exception as e:
            logger.error(f"Cache delete failed for key {cache_key}: {str(e)}")
            return False

    async def increment(self, key: str, amount: int = 1, prefix: str = "") -> Optional[int]:
        """Increment cache value atomically"""
        if not core.REDIS:
            return None

        cache_key = self._make_key(key, prefix)

        try:
            return await core.REDIS.incrby(cache_key, amount)
        except Exception as e:
            logger.error(f"Cache increment failed for key {cache_key}: {str(e)}")
            return None


# Global cache manager instance
cache = CacheManager()


# Story feed cache functions
async def cache_active_stories(stories: List[Dict], ttl: int = 30):
    """Cache the active story list briefly; expiry is re-checked on every miss"""
    return await cache.set(ACTIVE_STORIES_KEY, stories, ttl, "stories")


async def get_cached_active_stories() -> Optional[List[Dict]]:
    return await cache.get(ACTIVE_STORIES_KEY, "stories")


async def invalidate_active_stories():
    await cache.delete(ACTIVE_STORIES_KEY, "stories")


# Rate limiting functions
async def check_rate_limit(user_id: str, action: str, limit: int = 100, window: int = 3600) -> bool:
    """Check if user is within rate limit"""
    key = f"rate_limit:{user_id}:{action}"

    current = await cache.get(key, "rate")
    if current is None:
        await cache.set(key, 1, window, "rate")
        return True

    if int(current) >= limit:
        return False

    await cache.increment(key, 1, "rate")
    return True
