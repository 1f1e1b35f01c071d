from typing import cast

from redis.asyncio import Redis

from loggers import get_logger

logger = get_logger(__name__)


def create_redis_client(connection_url: str, *, decode_responses: bool = True) -> Redis:
    """
    Build the async client used by the revocation store and the attempt counter.
    """
    client = Redis.from_url(connection_url, decode_responses=decode_responses)
    logger.debug("Redis client built for %s", connection_url.rsplit("@", 1)[-1])
    return cast(Redis, client)
