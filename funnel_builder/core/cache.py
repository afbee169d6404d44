import logging
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class CacheService:
    """Best-effort Redis cache for read-mostly API payloads.

    Built with ``redis_client=None`` when Redis is down; every call then
    misses or does nothing, so callers fall through to the database.
    Values are pydantic models stored as their JSON representation.
    """

    def __init__(self, redis_client: Optional[Redis] = None) -> None:
        self._redis: Optional[Redis] = redis_client

    async def get_model(self, key: str, model: Type[ModelT]) -> Optional[ModelT]:
        """Return the cached *model* instance under *key*, or ``None`` on a miss."""
        if self._redis is None:
            return None
        try:
            raw = await self._redis.get(key)
        except RedisError:
            logger.warning("Redis GET failed for key %s", key)
            return None
        if raw is None:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable cache entry %s", key)
            await self.delete(key)
            return None

    async def set_model(self, key: str, value: BaseModel, ttl: Optional[int] = None) -> None:
        """Cache *value*; a falsy *ttl* stores it without expiry."""
        if self._redis is None:
            return
        payload = value.model_dump_json()
        try:
            if ttl:
                await self._redis.setex(key, ttl, payload)
            else:
                await self._redis.set(key, payload)
        except RedisError:
            logger.warning("Redis SET failed for key %s", key)

    async def delete(self, key: str) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.delete(key)
        except RedisError:
            logger.warning("Redis DELETE failed for key %s", key)
