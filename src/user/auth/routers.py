from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.core.errors.exceptions import PermissionDeniedException
from src.core.limiter import build_attempt_key
from src.core.limiter.depends import FailedAttemptLimiter
from src.core.schemas import ErrorResponse, SuccessResponse
from src.user.auth.dependencies import (
    get_authentication_service,
    get_current_identity,
    get_current_token,
    get_failed_attempt_limiter,
)
from src.user.auth.enums import TokenPurpose
from src.user.auth.exceptions import TokenExpiredException, TokenRevokedException
from src.user.auth.permissions.checker import require_admin
from src.user.auth.schemas import (
    AccessTokenModel,
    AuthIdentity,
    LogoutModel,
    RefreshTokenModel,
    RevokeTokenModel,
    TokenStatusModel,
    TokenStatusViewModel,
)
from src.user.auth.service import AuthenticationService

router = APIRouter(
    responses={
        401: {"model": ErrorResponse, "description": "Token rejected"},
        429: {"model": ErrorResponse, "description": "Too many failed attempts"},
    }
)


@router.post("/token/refresh", response_model=AccessTokenModel)
async def refresh_access_token(
    request: Request,
    data: RefreshTokenModel,
    auth_service: Annotated[AuthenticationService, Depends(get_authentication_service)],
    limiter: Annotated[FailedAttemptLimiter, Depends(get_failed_attempt_limiter)],
) -> AccessTokenModel:
    """
    Exchange a refresh token for a new access token. Each refresh token works once.
    """
    async with limiter.track(build_attempt_key(request, data.refresh_token)):
        access_token = await auth_service.refresh_token(data.refresh_token)
    return AccessTokenModel(
        access_token=access_token, expires_in=auth_service.access_token_ttl
    )


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    data: LogoutModel,
    identity: Annotated[AuthIdentity, Depends(get_current_identity)],
    access_token: Annotated[str, Depends(get_current_token)],
    auth_service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> SuccessResponse:
    """
    Revoke the caller's access token and, when given, their refresh token.
    An expired or already revoked refresh token has nothing left to revoke.
    """
    await auth_service.revoke_token(access_token)
    if data.refresh_token:
        try:
            payload = await auth_service.verify_token(
                data.refresh_token, TokenPurpose.REFRESH
            )
        except (TokenExpiredException, TokenRevokedException):
            return SuccessResponse(success=True)
        if payload.subject_id != identity.subject_id:
            raise PermissionDeniedException(
                "Refresh token belongs to another user",
                {"subject_id": identity.subject_id},
            )
        await auth_service.revoke_token(data.refresh_token)
    return SuccessResponse(success=True)


@router.post(
    "/revoke",
    response_model=SuccessResponse,
    responses={403: {"model": ErrorResponse, "description": "Caller is not ADMIN"}},
)
async def revoke_token(
    data: RevokeTokenModel,
    _admin: Annotated[AuthIdentity, Depends(require_admin)],
    auth_service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> SuccessResponse:
    await auth_service.revoke_token(data.token)
    return SuccessResponse(success=True)


@router.post("/token/status", response_model=TokenStatusViewModel)
async def get_token_status(
    data: TokenStatusModel,
    _identity: Annotated[AuthIdentity, Depends(get_current_identity)],
    auth_service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> TokenStatusViewModel:
    """
    Expiry and validity of an access token.
    """
    return TokenStatusViewModel(
        expired=auth_service.is_token_expired(data.token),
        seconds_remaining=auth_service.get_token_time_remaining(data.token),
        valid=await auth_service.is_token_valid(data.token),
    )
