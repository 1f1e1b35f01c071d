from abc import ABC, abstractmethod
import asyncio
from collections.abc import Awaitable, Callable
import contextlib
import threading
import time
from typing import Literal, cast

from redis.asyncio import Redis
import sentry_sdk

from loggers import get_logger
from src.core.utils.security import build_token_key
from src.user.auth.codec import decode_unverified
from src.user.auth.exceptions import InvalidTokenException

logger = get_logger(__name__)

REVOKED_KEY_PREFIX = "revoked"


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class RevocationStore(ABC):
    """
    Registry of revoked tokens. An entry only has to outlive the token itself,
    after that the signature check rejects the token anyway.
    """

    async def revoke(self, token: str, expires_at_ms: int | None = None) -> bool:
        """
        Record a token as revoked.

        Returns:
            True if the token was newly recorded, False if it already was
        Raises:
            InvalidTokenException: the expiry is unknown and cannot be read from the token
        """
        if expires_at_ms is None:
            claims = decode_unverified(token)
            if claims is None or claims.exp is None:
                raise InvalidTokenException("Cannot revoke a malformed token")
            expires_at_ms = claims.exp * 1000
        return await self._store(token, expires_at_ms)

    @abstractmethod
    async def _store(self, token: str, expires_at_ms: int) -> bool: ...

    @abstractmethod
    async def is_revoked(self, token: str) -> bool: ...

    @abstractmethod
    async def sweep(self) -> int:
        """Drop entries whose token already expired; return how many were dropped."""


class InMemoryRevocationStore(RevocationStore):
    def __init__(self, clock: Callable[[], int] = _wall_clock_ms) -> None:
        self._clock = clock
        self._entries: dict[str, int] = {}
        self._lock = threading.Lock()

    async def _store(self, token: str, expires_at_ms: int) -> bool:
        with self._lock:
            if token in self._entries:
                return False
            self._entries[token] = expires_at_ms
            return True

    async def is_revoked(self, token: str) -> bool:
        return token in self._entries

    async def sweep(self) -> int:
        now = self._clock()
        expired = [
            token
            for token, expires_at_ms in list(self._entries.items())
            if expires_at_ms <= now
        ]
        removed = 0
        for token in expired:
            with self._lock:
                if self._entries.pop(token, None) is not None:
                    removed += 1
        return removed


class RedisRevocationStore(RevocationStore):
    """
    Entries live under `revoked:<sha256(token)>` and expire with the token.
    """

    def __init__(
        self, redis_client: Redis, clock: Callable[[], int] = _wall_clock_ms
    ) -> None:
        self.redis = redis_client
        self._clock = clock

    async def _store(self, token: str, expires_at_ms: int) -> bool:
        ttl_ms = max(expires_at_ms - self._clock(), 1000)
        created = await cast(
            Awaitable[bool | None],
            self.redis.set(
                build_token_key(REVOKED_KEY_PREFIX, token), "1", px=ttl_ms, nx=True
            ),
        )
        return bool(created)

    async def is_revoked(self, token: str) -> bool:
        exists = await cast(
            Awaitable[int],
            self.redis.exists(build_token_key(REVOKED_KEY_PREFIX, token)),
        )
        return bool(exists)

    async def sweep(self) -> int:
        # Keys expire on their own
        return 0


def build_revocation_store(
    backend: Literal["memory", "redis"], redis_client: Redis | None = None
) -> RevocationStore:
    if backend == "redis":
        if redis_client is None:
            raise RuntimeError(
                "Redis client is not initialized. Ensure startup lifecycle ran."
            )
        return RedisRevocationStore(redis_client)
    return InMemoryRevocationStore()


class RevocationSweeper:
    """Background task pruning expired revocation entries."""

    def __init__(self, store: RevocationStore, interval_seconds: float) -> None:
        self.store = store
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="revocation-sweeper")
        logger.info("Revocation sweeper started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Revocation sweeper stopped")

    async def run_once(self) -> int:
        removed = await self.store.sweep()
        if removed:
            logger.debug(
                "Revocation sweep finished", extra={"metadata": {"removed": removed}}
            )
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.run_once()
            except Exception as e:
                logger.error("Revocation sweep failed: %s", e)
                sentry_sdk.capture_exception(e)
