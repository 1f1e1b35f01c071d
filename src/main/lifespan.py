from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from loggers import get_logger
from src.core.redis.lifecycle import on_redis_shutdown, on_redis_startup
from src.main.config import config
from src.main.sentry import init_sentry
from src.user.auth.lifecycle import on_auth_shutdown, on_auth_startup

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    init_sentry()
    if config.auth.uses_redis:
        await on_redis_startup(app, config.redis.dsn)
    else:
        logger.info("No Redis backed component configured. Skipping Redis startup.")

    await on_auth_startup(app, config)

    yield

    await on_auth_shutdown(app)
    await on_redis_shutdown(app)
