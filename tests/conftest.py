from collections.abc import AsyncGenerator, Generator
import os

from fastapi import FastAPI
import httpx
import pytest
import pytest_asyncio

from src.core.limiter.backend import InMemoryAttemptCounter
from src.core.limiter.depends import FailedAttemptLimiter
from src.core.redis.dependencies import get_optional_redis_client
from src.main.config import Config, get_settings
from src.main.web import get_application
from src.user.auth.codec import TokenCodec
from src.user.auth.dependencies import (
    get_authentication_service,
    get_failed_attempt_limiter,
)
from src.user.auth.revocation import InMemoryRevocationStore
from src.user.auth.service import AuthenticationService
from tests.factories.token_factory import build_codec
from tests.fakes.redis import InMemoryRedis
from tests.helpers.overrides import DependencyOverrides


@pytest.fixture(scope="session")
def settings() -> Config:
    os.environ.setdefault("TESTING", "true")
    get_settings.cache_clear()
    return get_settings()


@pytest.fixture
def token_codec() -> TokenCodec:
    return build_codec()


@pytest.fixture
def revocation_store() -> InMemoryRevocationStore:
    return InMemoryRevocationStore()


@pytest.fixture
def auth_service(
    token_codec: TokenCodec, revocation_store: InMemoryRevocationStore
) -> AuthenticationService:
    return AuthenticationService(token_codec, revocation_store)


@pytest.fixture
def attempt_counter() -> InMemoryAttemptCounter:
    return InMemoryAttemptCounter()


@pytest.fixture
def attempt_limiter(attempt_counter: InMemoryAttemptCounter) -> FailedAttemptLimiter:
    return FailedAttemptLimiter(attempt_counter, times=5, minutes=15)


@pytest.fixture
def app() -> FastAPI:
    return get_application()


@pytest.fixture
def dependency_overrides(app: FastAPI) -> Generator[DependencyOverrides]:
    overrides = DependencyOverrides(app)
    yield overrides
    overrides.reset()


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def app_with_fakes(
    app: FastAPI,
    dependency_overrides: DependencyOverrides,
    auth_service: AuthenticationService,
    attempt_limiter: FailedAttemptLimiter,
    fake_redis: InMemoryRedis,
) -> FastAPI:
    dependency_overrides.provide(get_authentication_service, auth_service)
    dependency_overrides.provide(get_failed_attempt_limiter, attempt_limiter)
    dependency_overrides.provide(get_optional_redis_client, fake_redis)
    return app


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as client:
        yield client


@pytest_asyncio.fixture
async def async_client_with_fakes(
    app_with_fakes: FastAPI,
) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app_with_fakes)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as client:
        yield client
