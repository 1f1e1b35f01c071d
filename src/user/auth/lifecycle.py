from fastapi import FastAPI

from loggers import get_logger
from src.core.limiter.backend import build_attempt_counter
from src.core.limiter.depends import FailedAttemptLimiter
from src.main.config import Config, config
from src.user.auth.codec import build_token_codec
from src.user.auth.revocation import RevocationSweeper, build_revocation_store
from src.user.auth.service import AuthenticationService

logger = get_logger(__name__)


async def on_auth_startup(app: FastAPI, settings: Config = config) -> None:
    """
    Build the token codec, revocation store, failed-attempt limiter and
    authentication service, attach them to app.state and start the sweeper.
    Redis-backed components expect app.state.redis_client to be ready.
    """
    redis_client = getattr(app.state, "redis_client", None)

    codec = build_token_codec(settings)
    store = build_revocation_store(settings.auth.REVOCATION_BACKEND, redis_client)
    counter = build_attempt_counter(settings.auth.FAILED_ATTEMPTS_BACKEND, redis_client)

    app.state.auth_service = AuthenticationService(codec, store)
    app.state.failed_attempt_limiter = FailedAttemptLimiter(
        counter,
        times=settings.auth.FAILED_ATTEMPTS_LIMIT,
        minutes=settings.auth.FAILED_ATTEMPTS_WINDOW_MINUTES,
    )

    sweeper = RevocationSweeper(
        store, interval_seconds=settings.auth.REVOCATION_SWEEP_INTERVAL_SECONDS
    )
    sweeper.start()
    app.state.revocation_sweeper = sweeper

    logger.info(
        "Authentication ready",
        extra={
            "metadata": {
                "revocation_backend": settings.auth.REVOCATION_BACKEND,
                "attempts_backend": settings.auth.FAILED_ATTEMPTS_BACKEND,
            }
        },
    )


async def on_auth_shutdown(app: FastAPI) -> None:
    sweeper: RevocationSweeper | None = getattr(app.state, "revocation_sweeper", None)
    if sweeper is not None:
        await sweeper.stop()
    app.state.revocation_sweeper = None
    app.state.auth_service = None
    app.state.failed_attempt_limiter = None
