from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from pydantic import Field

from loggers import get_logger
from src.core.errors.exceptions import TooManyRequestsException, UnauthorizedException
from src.core.limiter.backend import AttemptCounter

logger = get_logger(__name__)


class FailedAttemptLimiter:
    """
    Blocks a key once it accumulates `times` failures inside a sliding window.
    Successful attempts are never counted.
    """

    def __init__(
        self,
        counter: AttemptCounter,
        times: Annotated[int, Field(ge=1)] = 5,
        milliseconds: Annotated[int, Field(ge=0)] = 0,
        seconds: Annotated[int, Field(ge=0)] = 0,
        minutes: Annotated[int, Field(ge=0)] = 0,
        hours: Annotated[int, Field(ge=0)] = 0,
        prefix: str = "auth-failures",
    ) -> None:
        """
        Args:
            counter: Attempt storage backend
            times: Number of failures that blocks the key
            milliseconds/seconds/minutes/hours: Sliding window duration
            prefix: Namespace for stored keys
        """
        self.counter = counter
        self.times = times
        self.milliseconds = (
            milliseconds + 1000 * seconds + 60_000 * minutes + 3_600_000 * hours
        )

        if self.milliseconds <= 0:
            raise ValueError("Rate limiter window must be greater than 0ms.")
        if self.times < 1:
            raise ValueError("Rate limiter must allow at least one attempt.")

        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def check(self, key: str) -> None:
        """
        Raises:
            TooManyRequestsException if the key is currently blocked
        """
        pexpire = await self.counter.retry_after(
            self._key(key), self.times, self.milliseconds
        )
        if pexpire != 0:
            logger.warning(
                "[FailedAttemptLimiter] Limit exceeded, retry after %sms",
                pexpire,
                extra={"metadata": {"key": self._key(key)}},
            )
            raise TooManyRequestsException(
                "Too many failed authentication attempts",
                retry_after_ms=pexpire,
            )

    async def register_failure(self, key: str) -> int:
        count = await self.counter.hit(self._key(key), self.milliseconds)
        logger.debug(
            "[FailedAttemptLimiter] Failure recorded",
            extra={"metadata": {"key": self._key(key), "count": count}},
        )
        return count

    @asynccontextmanager
    async def track(
        self,
        key: str,
        failure_types: tuple[type[Exception], ...] = (UnauthorizedException,),
    ) -> AsyncIterator[None]:
        """
        Check the key before the guarded block and record a failure for every
        `failure_types` exception escaping it. The exception is re-raised.
        """
        await self.check(key)
        try:
            yield
        except failure_types:
            await self.register_failure(key)
            raise
