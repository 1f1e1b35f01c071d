from typing import cast

from fastapi import Depends, Request, Response, Security
from fastapi.security.api_key import APIKeyHeader

from loggers import get_logger
from src.core.errors.exceptions import (
    CoreException,
    InfrastructureException,
    UnauthorizedException,
)
from src.core.limiter import build_attempt_key
from src.core.limiter.depends import FailedAttemptLimiter
from src.core.utils.datetime_utils import get_utc_now, seconds_until
from src.core.utils.security import mask_token
from src.main.config import config
from src.user.auth.enums import TokenPurpose
from src.user.auth.exceptions import TokenExpiredException
from src.user.auth.schemas import AuthIdentity
from src.user.auth.service import AuthenticationService

logger = get_logger(__name__)

EXPIRING_SOON_HEADER = "X-Token-Expiring-Soon"

access_token_header = APIKeyHeader(
    name="Authorization", scheme_name="access-token", auto_error=False
)


def get_authentication_service(request: Request) -> AuthenticationService:
    auth_service = getattr(request.app.state, "auth_service", None)
    if auth_service is None:
        raise RuntimeError(
            "Authentication service is not initialized. Ensure startup lifecycle ran."
        )
    return cast(AuthenticationService, auth_service)


def get_failed_attempt_limiter(request: Request) -> FailedAttemptLimiter:
    limiter = getattr(request.app.state, "failed_attempt_limiter", None)
    if limiter is None:
        raise RuntimeError(
            "Failed attempt limiter is not initialized. Ensure startup lifecycle ran."
        )
    return cast(FailedAttemptLimiter, limiter)


def extract_bearer_token(authorization: str | None) -> str:
    """
    Accepts `Bearer <token>` in any letter case as well as a raw token.

    Raises:
        UnauthorizedException: no credential was sent
    """
    value = (authorization or "").strip()
    scheme, _, rest = value.partition(" ")
    if scheme.lower() == "bearer":
        value = rest.strip()
    if not value:
        raise UnauthorizedException("Authentication token not found")
    return value


async def get_current_identity(
    request: Request,
    response: Response,
    authorization: str | None = Security(access_token_header),
    auth_service: AuthenticationService = Depends(get_authentication_service),
    limiter: FailedAttemptLimiter = Depends(get_failed_attempt_limiter),
) -> AuthIdentity:
    """
    Authenticate the request from its bearer access token.

    The identity is attached to request.state.identity, the raw token to
    request.state.access_token. When the token is about to expire the
    response carries `X-Token-Expiring-Soon: true`.

    Raises:
        TooManyRequestsException: too many failed attempts for this client and credential
        UnauthorizedException: missing, invalid, expired or revoked token
    """
    attempt_key = build_attempt_key(request, authorization)
    async with limiter.track(attempt_key):
        token = extract_bearer_token(authorization)
        try:
            payload = await auth_service.verify_token(token, TokenPurpose.ACCESS)
        except TokenExpiredException:
            try:
                await auth_service.revoke_token(token)
            except CoreException as e:
                logger.error(
                    "Could not record expired token %s as revoked: %s",
                    mask_token(token),
                    e.message,
                )
            raise
        except CoreException:
            raise
        except Exception as e:
            logger.error("Unexpected authentication failure: %s", e, exc_info=True)
            raise InfrastructureException("Authentication failed") from e

    expiring_soon = (
        seconds_until(payload.expires_at) < config.jwt.TOKEN_EXPIRING_SOON_SECONDS
    )
    identity = AuthIdentity(
        id=payload.subject_id,
        subject_id=payload.subject_id,
        email=payload.email,
        role=payload.role,
        last_activity=get_utc_now(),
        token_expiring_soon=expiring_soon,
    )
    if expiring_soon:
        response.headers[EXPIRING_SOON_HEADER] = "true"

    request.state.identity = identity
    request.state.access_token = token
    return identity


async def get_current_token(
    request: Request,
    identity: AuthIdentity = Depends(get_current_identity),
) -> str:
    """Raw bearer token of the authenticated request."""
    return cast(str, request.state.access_token)
