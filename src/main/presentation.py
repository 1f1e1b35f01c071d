from fastapi import APIRouter, FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from src.core.errors.exceptions import (
    CoreException,
    InfrastructureException,
    PermissionDeniedException,
    TooManyRequestsException,
    UnauthorizedException,
    ValidationException,
)
from src.core.errors.handlers import (
    CoreExceptionHandler,
    InfrastructureExceptionHandler,
    PermissionDeniedExceptionHandler,
    RequestValidationExceptionHandler,
    TooManyRequestsExceptionHandler,
    UnauthorizedExceptionHandler,
    ValidationErrorExceptionHandler,
    ValidationExceptionHandler,
    as_exception_handler,
)
from src.system import routers as system_routers

# Import routers here
from src.user import routers as user_routers


def include_routers(app: FastAPI) -> None:
    """
    Includes API routers into the FastAPI application.

    Parameters:
        app (FastAPI): The FastAPI application instance to which routers will
        be added.
    """
    v1_router = APIRouter()
    v1_router.include_router(user_routers.router, prefix="/users", tags=["Users"])

    app.include_router(v1_router, prefix="/v1")
    app.include_router(system_routers.router, tags=["System"])


def include_exceptions_handlers(app: FastAPI) -> None:
    """
    Registers exception handlers for the custom exceptions. Handlers are
    resolved by the exception's MRO, so subclasses such as the token errors
    reuse their parent's handler.
    """
    app.add_exception_handler(
        InfrastructureException, as_exception_handler(InfrastructureExceptionHandler())
    )
    app.add_exception_handler(
        RequestValidationError,
        as_exception_handler(RequestValidationExceptionHandler()),
    )
    app.add_exception_handler(
        ValidationError, as_exception_handler(ValidationErrorExceptionHandler())
    )
    app.add_exception_handler(
        CoreException,
        as_exception_handler(CoreExceptionHandler()),
    )
    app.add_exception_handler(
        ValidationException, as_exception_handler(ValidationExceptionHandler())
    )
    app.add_exception_handler(
        UnauthorizedException, as_exception_handler(UnauthorizedExceptionHandler())
    )
    app.add_exception_handler(
        PermissionDeniedException,
        as_exception_handler(PermissionDeniedExceptionHandler()),
    )
    app.add_exception_handler(
        TooManyRequestsException,
        as_exception_handler(TooManyRequestsExceptionHandler()),
    )
