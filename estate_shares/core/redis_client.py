from typing import Optional

import redis.asyncio as redis


def create_redis_client(redis_url: Optional[str]) -> Optional[redis.Redis]:
    # No URL means the property cache runs disabled
    if not redis_url:
        return None
    return redis.from_url(redis_url, decode_responses=True)
