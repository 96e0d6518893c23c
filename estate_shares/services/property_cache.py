import logging
from typing import Optional

from fastapi import Request
from redis.asyncio import Redis

from estate_shares.domain.property import Property
from estate_shares.schemas.property_schema import PropertyOut

logger = logging.getLogger(__name__)


class PropertyCache:
    """Redis copy of serialized property records.

    The database stays the source of truth: every cache failure is logged
    and otherwise ignored, and a disabled cache (no Redis client) turns all
    calls into no-ops.
    """

    def __init__(self, redis: Optional[Redis], ttl_seconds: int = 3600):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(property_id: str) -> str:
        return f"property:{property_id}"

    @property
    def enabled(self) -> bool:
        return self.redis is not None

    async def load(self, property_id: str) -> Optional[PropertyOut]:
        if not self.enabled:
            return None
        try:
            cached = await self.redis.get(self.key(property_id))
        except Exception as e:
            logger.error(f"Failed to read cached property {property_id}: {e}")
            return None
        if cached is None:
            return None
        try:
            return PropertyOut.model_validate_json(cached)
        except ValueError as e:
            logger.warning(f"Discarding malformed cache entry for property {property_id}: {e}")
            return None

    async def store(self, prop: Property) -> None:
        if not self.enabled:
            return
        try:
            payload = PropertyOut.from_domain(prop).model_dump_json(by_alias=True)
            await self.redis.set(self.key(prop.id), payload, ex=self.ttl_seconds)
            logger.info(f"Property {prop.id} cached successfully.")
        except Exception as e:
            logger.error(f"Failed to cache property {prop.id}: {e}")

    async def evict(self, property_id: str) -> None:
        if not self.enabled:
            return
        try:
            await self.redis.delete(self.key(property_id))
        except Exception as e:
            logger.error(f"Failed to evict cached property {property_id}: {e}")


def get_property_cache(request: Request) -> PropertyCache:
    return request.app.state.property_cache
