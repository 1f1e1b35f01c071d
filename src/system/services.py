from collections.abc import Awaitable

from redis.asyncio import Redis
import redis.exceptions as redisExc
import sentry_sdk

from loggers import get_logger
from src.core.errors.exceptions import InfrastructureException
from src.system.schemas import HealthCheckResponse


class HealthService:
    def __init__(self, redis_client: Redis | None) -> None:
        self.redis_client = redis_client
        self.logger = get_logger(__name__)

    async def get_status(self) -> HealthCheckResponse:
        if self.redis_client is None:
            return HealthCheckResponse(status="ok", redis="disabled")
        if not await self._check_redis():
            raise InfrastructureException(
                "System health check failed",
                additional_info={"redis": False},
            )
        return HealthCheckResponse(status="ok", redis="ok")

    async def _check_redis(self) -> bool:
        try:
            ping_result = self.redis_client.ping()  # type: ignore[union-attr]
            if isinstance(ping_result, Awaitable):
                return bool(await ping_result)
            return bool(ping_result)
        except (redisExc.RedisError, OSError) as exc:
            self.logger.error("Redis health check failed", exc_info=exc)
            sentry_sdk.capture_exception(exc)
            return False
