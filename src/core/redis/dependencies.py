from typing import cast

from fastapi import Request
from redis.asyncio import Redis


async def get_optional_redis_client(request: Request) -> Redis | None:
    """
    Provide the Redis client stored on app.state, or None when no Redis-backed
    component was configured.
    """
    redis_client = getattr(request.app.state, "redis_client", None)
    if redis_client is None:
        return None
    return cast(Redis, redis_client)
