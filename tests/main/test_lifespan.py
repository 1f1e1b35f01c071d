from __future__ import annotations

from unittest.mock import AsyncMock, Mock

from fastapi import FastAPI
import pytest

from src.main import lifespan as lifespan_module
from src.main.config import config
from src.main.lifespan import lifespan


@pytest.fixture
def hooks(monkeypatch: pytest.MonkeyPatch) -> dict[str, Mock]:
    mocks: dict[str, Mock] = {
        "init_sentry": Mock(),
        "on_redis_startup": AsyncMock(),
        "on_redis_shutdown": AsyncMock(),
        "on_auth_startup": AsyncMock(),
        "on_auth_shutdown": AsyncMock(),
    }
    for name, mock in mocks.items():
        monkeypatch.setattr(lifespan_module, name, mock)
    return mocks


@pytest.mark.asyncio
async def test_lifespan_without_redis_backends(
    hooks: dict[str, Mock], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(config.auth, "REVOCATION_BACKEND", "memory")
    monkeypatch.setattr(config.auth, "FAILED_ATTEMPTS_BACKEND", "memory")

    app = FastAPI()
    async with lifespan(app):
        hooks["on_auth_startup"].assert_awaited_once_with(app, config)
        hooks["on_auth_shutdown"].assert_not_awaited()

    hooks["init_sentry"].assert_called_once()
    hooks["on_redis_startup"].assert_not_awaited()
    hooks["on_auth_shutdown"].assert_awaited_once_with(app)
    hooks["on_redis_shutdown"].assert_awaited_once_with(app)


@pytest.mark.asyncio
async def test_lifespan_starts_redis_before_auth(
    hooks: dict[str, Mock], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(config.auth, "REVOCATION_BACKEND", "redis")
    calls: list[str] = []
    hooks["on_redis_startup"].side_effect = lambda *_: calls.append("redis")
    hooks["on_auth_startup"].side_effect = lambda *_: calls.append("auth")

    app = FastAPI()
    async with lifespan(app):
        pass

    hooks["on_redis_startup"].assert_awaited_once_with(app, config.redis.dsn)
    assert calls == ["redis", "auth"]
