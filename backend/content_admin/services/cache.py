import redis.asyncio as redis
import json
import logging
from typing import Any, Dict, List, Optional
from datetime import datetime, date

from content_admin.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """Redis cache for sorted sibling snapshots"""

    def __init__(self):
        self.redis_client: Optional[redis.Redis] = None
        self.ttl = settings.cache_ttl

    async def connect(self):
        """Connect to Redis"""
        if not settings.enable_cache:
            logger.info("Caching disabled by configuration")
            return

        try:
            self.redis_client = await redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True
            )
            await self.redis_client.ping()
            logger.info("Connected to Redis successfully")
        except Exception as e:
            logger.warning(f"Failed to connect to Redis: {e}. Caching will be disabled.")
            self.redis_client = None

    async def disconnect(self):
        """Disconnect from Redis"""
        if self.redis_client:
            await self.redis_client.close()
            self.redis_client = None

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        if not self.redis_client:
            return None

        try:
            value = await self.redis_client.get(key)
            if value:
                return json.loads(value)
        except Exception as e:
            logger.error(f"Cache get error: {e}")
        return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None):
        """Set value in cache"""
        if not self.redis_client:
            return

        try:
            serialized = json.dumps(value, default=self._json_serializer)
            await self.redis_client.setex(
                key,
                ttl or self.ttl,
                serialized
            )
        except Exception as e:
            logger.error(f"Cache set error: {e}")

    @staticmethod
    def _json_serializer(obj: Any) -> Any:
        """Custom JSON serializer for datetime and date objects"""
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        raise TypeError(f"Type {type(obj)} not serializable")

    async def delete_pattern(self, pattern: str):
        """Delete all keys matching a pattern"""
        if not self.redis_client:
            return

        try:
            async for key in self.redis_client.scan_iter(match=pattern):
                await self.redis_client.delete(key)
        except Exception as e:
            logger.error(f"Cache delete pattern error: {e}")

    # Sibling snapshots
    #
    # Every scope carries a generation counter. Snapshots are stored under
    # the generation that was current before the database read, and each
    # committed write bumps it, so a reader that raced a write can only
    # fill a key nobody looks up any more.

    @staticmethod
    def _scope_prefix(collection: str, parent_id: Optional[int]) -> str:
        if parent_id is None:
            return f"content:{collection}:all"
        return f"content:{collection}:parent={parent_id}"

    def snapshot_key(self, collection: str, parent_id: Optional[int] = None, generation: int = 0) -> str:
        """Key of the sorted sibling list of one scope at one generation"""
        return f"{self._scope_prefix(collection, parent_id)}:v{generation}"

    def generation_key(self, collection: str, parent_id: Optional[int] = None) -> str:
        return f"{self._scope_prefix(collection, parent_id)}:generation"

    async def scope_generation(self, collection: str, parent_id: Optional[int] = None) -> Optional[int]:
        """Current generation of a scope, None when snapshots cannot be cached"""
        if not self.redis_client:
            return None

        try:
            value = await self.redis_client.get(self.generation_key(collection, parent_id))
            return int(value) if value else 0
        except Exception as e:
            logger.error(f"Cache generation read error for {collection}: {e}")
            return None

    async def get_snapshot(self, collection: str, parent_id: Optional[int], generation: Optional[int]):
        if generation is None:
            return None
        return await self.get(self.snapshot_key(collection, parent_id, generation))

    async def set_snapshot(
        self, collection: str, parent_id: Optional[int], generation: Optional[int], rows: List[Dict[str, Any]]
    ):
        if generation is None:
            return
        await self.set(self.snapshot_key(collection, parent_id, generation), rows)

    async def invalidate_scope(self, collection: str, parent_id: Optional[int] = None):
        """Retire the cached snapshot of a scope after a committed write"""
        if not self.redis_client:
            return

        try:
            generation = await self.redis_client.incr(self.generation_key(collection, parent_id))
            await self.redis_client.delete(self.snapshot_key(collection, parent_id, generation - 1))
            logger.debug(f"Scope {self._scope_prefix(collection, parent_id)} now at generation {generation}")
        except Exception as e:
            logger.error(f"Cache invalidation error for {collection}: {e}")


# Singleton instance
cache_service = CacheService()
