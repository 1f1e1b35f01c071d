from collections.abc import Awaitable

from fastapi import FastAPI

from loggers import get_logger
from src.core.redis.core import create_redis_client

logger = get_logger("redis")


async def on_redis_startup(app: FastAPI, connection_url: str) -> None:
    """
    Create the Redis client, make sure the server answers and attach it to app.state.
    """
    redis_client = create_redis_client(connection_url=connection_url)
    ping_result = redis_client.ping()
    if isinstance(ping_result, Awaitable):
        ping_result = await ping_result
    if not ping_result:
        raise RuntimeError("Redis ping failed during startup")
    app.state.redis_client = redis_client
    logger.info("Redis client connected.")


async def on_redis_shutdown(app: FastAPI) -> None:
    redis_client = getattr(app.state, "redis_client", None)
    if redis_client is None:
        return
    logger.info("Closing Redis client...")
    await redis_client.aclose()
    app.state.redis_client = None
    logger.info("Redis client closed.")
