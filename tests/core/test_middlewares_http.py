import logging

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient
import pytest

import src.core.middleware as middleware


def _make_app(exception_factory) -> FastAPI:
    app = FastAPI()
    middleware.register_middlewares(app)

    @app.get("/boom")
    async def boom() -> PlainTextResponse:  # type: ignore[return-type]
        raise exception_factory()

    @app.get("/ok")
    async def ok() -> PlainTextResponse:
        return PlainTextResponse("ok")

    return app


@pytest.fixture(autouse=True)
def _mute_sentry(monkeypatch: pytest.MonkeyPatch) -> list[BaseException]:
    captured: list[BaseException] = []
    monkeypatch.setattr(
        middleware.sentry_sdk, "capture_exception", lambda e, **__: captured.append(e)
    )
    return captured


def test_security_headers_added() -> None:
    app = _make_app(lambda: None)
    client = TestClient(app)

    resp = client.get("/ok")

    assert resp.status_code == 200
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["Content-Security-Policy"] == "frame-ancestors 'none'"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_request_timing_is_logged(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setattr(middleware.timing_logger, "propagate", True)
    caplog.set_level(logging.INFO, logger=middleware.timing_logger.name)
    client = TestClient(_make_app(lambda: None))

    client.get("/ok")

    assert any(
        "[FAST] GET /ok" in record.getMessage() and record.getMessage().endswith("200")
        for record in caplog.records
    )


def test_slow_request_is_logged_as_warning(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    ticks = iter([0.0, 3.0])
    monkeypatch.setattr(middleware.time, "perf_counter", lambda: next(ticks))
    monkeypatch.setattr(middleware.timing_logger, "propagate", True)
    caplog.set_level(logging.INFO, logger=middleware.timing_logger.name)
    client = TestClient(_make_app(lambda: None))

    client.get("/ok")

    assert any(
        record.levelno == logging.WARNING and "[SLOW]" in record.getMessage()
        for record in caplog.records
    )


def test_unexpected_error_middleware(_mute_sentry: list[BaseException]) -> None:
    class Unexpected(Exception):
        pass

    def factory() -> Exception:
        return Unexpected("database password is hunter2")

    app = _make_app(factory)
    client = TestClient(app, raise_server_exceptions=False)

    resp = client.get("/boom")

    assert resp.status_code == 500
    assert resp.json() == {"detail": middleware.UNEXPECTED_ERROR_DETAIL}
    assert "hunter2" not in resp.text
    assert len(_mute_sentry) == 1
    assert isinstance(_mute_sentry[0], Unexpected)
