from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Awaitable, Callable
import threading
import time
from typing import Any, Literal, cast
import uuid

from redis.asyncio import Redis
import redis.exceptions as redisExc

from loggers import get_logger
from src.core.limiter.script import RECORD_ATTEMPT_SCRIPT, RETRY_AFTER_SCRIPT

logger = get_logger(__name__)


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class AttemptCounter(ABC):
    """
    Sliding-window counter of attempts per key.
    """

    @abstractmethod
    async def hit(self, key: str, window_ms: int) -> int:
        """Record one attempt and return the number of attempts inside the window."""

    @abstractmethod
    async def retry_after(self, key: str, times: int, window_ms: int) -> int:
        """Return 0 while fewer than `times` attempts are in the window, else ms to wait."""


class InMemoryAttemptCounter(AttemptCounter):
    """
    Per-process counter. Keys with no attempt left inside the window are
    dropped at most once per window, on the next `hit`.
    """

    def __init__(self, clock: Callable[[], int] = _monotonic_ms) -> None:
        self._clock = clock
        self._attempts: dict[str, deque[int]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def _prune(self, key: str, now: int, window_ms: int) -> deque[int]:
        attempts = self._attempts.setdefault(key, deque())
        while attempts and attempts[0] <= now - window_ms:
            attempts.popleft()
        return attempts

    def _drop_stale(self, now: int, window_ms: int) -> int:
        stale = [
            key
            for key, attempts in self._attempts.items()
            if not attempts or attempts[-1] <= now - window_ms
        ]
        for key in stale:
            del self._attempts[key]
        self._last_sweep = now
        return len(stale)

    async def hit(self, key: str, window_ms: int) -> int:
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= window_ms:
                removed = self._drop_stale(now, window_ms)
                if removed:
                    logger.debug(
                        "[AttemptCounter] Dropped stale keys",
                        extra={"metadata": {"removed": removed}},
                    )
            attempts = self._prune(key, now, window_ms)
            attempts.append(now)
            return len(attempts)

    async def retry_after(self, key: str, times: int, window_ms: int) -> int:
        now = self._clock()
        with self._lock:
            attempts = self._prune(key, now, window_ms)
            if not attempts:
                self._attempts.pop(key, None)
            if len(attempts) < times:
                return 0
            # The attempt whose expiry brings the count back under the limit
            unblocking = attempts[len(attempts) - times]
            return max(1, unblocking + window_ms - now)


class RedisAttemptCounter(AttemptCounter):
    """
    Redis sorted-set counter shared by every worker process.

    Redis errors never block authentication: they are logged and the
    counter behaves as if no attempts were recorded.
    """

    def __init__(
        self, redis_client: Redis, clock: Callable[[], int] = _wall_clock_ms
    ) -> None:
        self.redis = redis_client
        self._clock = clock
        self._shas: dict[str, str] = {}

    async def _evalsha(self, script: str, key: str, *args: Any) -> int:
        sha = self._shas.get(script)
        if sha is None:
            sha = await cast(Awaitable[str], self.redis.script_load(script))
            self._shas[script] = sha
        try:
            result = await cast(
                Awaitable[Any], self.redis.evalsha(sha, 1, key, *map(str, args))
            )
        except redisExc.NoScriptError:
            sha = await cast(Awaitable[str], self.redis.script_load(script))
            self._shas[script] = sha
            result = await cast(
                Awaitable[Any], self.redis.evalsha(sha, 1, key, *map(str, args))
            )
        return int(result)

    async def hit(self, key: str, window_ms: int) -> int:
        try:
            return await self._evalsha(
                RECORD_ATTEMPT_SCRIPT,
                key,
                self._clock(),
                window_ms,
                uuid.uuid4().hex,
            )
        except redisExc.RedisError as e:
            logger.error(
                "[AttemptCounter] Redis unavailable: %s. Attempt not recorded.", e
            )
            return 0

    async def retry_after(self, key: str, times: int, window_ms: int) -> int:
        try:
            return await self._evalsha(
                RETRY_AFTER_SCRIPT, key, self._clock(), window_ms, times
            )
        except redisExc.RedisError as e:
            logger.error(
                "[AttemptCounter] Redis unavailable: %s. Skipping limit check.", e
            )
            return 0

def build_attempt_counter(
    backend: Literal["memory", "redis"], redis_client: Redis | None = None
) -> AttemptCounter:
    if backend == "redis":
        if redis_client is None:
            raise RuntimeError(
                "Redis client is not initialized. Ensure startup lifecycle ran."
            )
        return RedisAttemptCounter(redis_client)
    return InMemoryAttemptCounter()
