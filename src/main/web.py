import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.asgi import SentryAsgiMiddleware

from loggers import get_logger
from src.core.middleware import register_middlewares
from src.main.config import AppConfig, config
from src.main.lifespan import lifespan
from src.main.presentation import include_exceptions_handlers, include_routers
from src.user.auth.dependencies import EXPIRING_SOON_HEADER

logging.getLogger("uvicorn.access").disabled = True
logger = get_logger(__name__)

OPENAPI_TAGS = [
    {"name": "Users", "description": "Current identity and token lifecycle."},
    {"name": "System", "description": "Health and time probes."},
]


def add_cors_middleware(application: FastAPI, app_config: AppConfig) -> None:
    """
    Browsers only let clients read the advisory and throttling headers
    when they are exposed explicitly.
    """
    expose_headers = list(app_config.CORS_EXPOSE_HEADERS)
    for header in (EXPIRING_SOON_HEADER, "Retry-After"):
        if header not in expose_headers:
            expose_headers.append(header)

    application.add_middleware(
        CORSMiddleware,  # noqa
        allow_origins=app_config.CORS_ALLOWED_ORIGINS,
        allow_credentials=app_config.CORS_ALLOW_CREDENTIALS,
        allow_methods=app_config.CORS_ALLOWED_METHODS,
        allow_headers=app_config.CORS_ALLOWED_HEADERS,
        expose_headers=expose_headers,
    )


def get_application() -> FastAPI:
    # Interactive docs are not served in production
    docs_enabled = not config.app.is_production
    application = FastAPI(
        title=config.app.PROJECT_NAME,
        debug=config.app.DEBUG,
        version=config.app.VERSION,
        lifespan=lifespan,
        openapi_tags=OPENAPI_TAGS,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
    )

    register_middlewares(application)
    add_cors_middleware(application, config.app)
    include_exceptions_handlers(application)
    include_routers(application)
    logger.debug(
        "Application assembled",
        extra={
            "metadata": {
                "routes": len(application.routes),
                "environment": config.app.ENVIRONMENT,
            }
        },
    )

    # Outermost, so Sentry sees errors from every other layer
    application.add_middleware(SentryAsgiMiddleware)

    return application


app = get_application()
