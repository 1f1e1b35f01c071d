from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from pydantic import ValidationError

from loggers import get_logger
from src.core.errors.exceptions import (
    CoreException,
    InfrastructureException,
    UnauthorizedException,
    ValidationException,
)
from src.core.utils.datetime_utils import get_utc_now
from src.core.utils.security import mask_email
from src.user.auth.codec import TokenCodec
from src.user.auth.enums import TokenPurpose
from src.user.auth.exceptions import (
    InvalidTokenException,
    InvalidTokenPurposeException,
    TokenGenerationException,
    TokenRevocationException,
    TokenRevokedException,
    TokenVerificationException,
)
from src.user.auth.revocation import RevocationStore
from src.user.auth.schemas import TokenSubject, VerifiedPayload

logger = get_logger(__name__)


@contextmanager
def _reraise_unexpected(
    error_cls: type[InfrastructureException], message: str
) -> Iterator[None]:
    """
    Domain errors pass through untouched. Anything else is logged and replaced
    with a generic `error_cls` so internals never reach the client.
    """
    try:
        yield
    except CoreException:
        raise
    except Exception as e:
        logger.error("%s: %s", message, e, exc_info=True)
        raise error_cls(message) from e


def _coerce_purpose(purpose: TokenPurpose | str) -> TokenPurpose:
    try:
        return TokenPurpose(purpose)
    except ValueError:
        raise InvalidTokenPurposeException(
            "Unknown token purpose", {"purpose": str(purpose)}
        )


def _coerce_subject(subject: TokenSubject | Mapping[str, Any]) -> TokenSubject:
    if isinstance(subject, TokenSubject):
        return subject
    try:
        return TokenSubject.model_validate(subject)
    except ValidationError as e:
        raise ValidationException(
            "Invalid token payload",
            {"errors": [err["loc"] for err in e.errors()]},
        )


class AuthenticationService:
    """
    Token lifecycle on top of a codec and a revocation store.
    """

    def __init__(self, codec: TokenCodec, store: RevocationStore) -> None:
        self.codec = codec
        self.store = store

    @property
    def access_token_ttl(self) -> int:
        return self.codec.ttl_for(TokenPurpose.ACCESS)

    def generate_token(
        self,
        subject: TokenSubject | Mapping[str, Any],
        purpose: TokenPurpose | str,
        ttl_seconds: int | None = None,
    ) -> str:
        """
        Sign a token for the subject.

        Raises:
            ValidationException: the subject is incomplete or the lifetime is not allowed
            InvalidTokenPurposeException: unknown purpose
            TokenGenerationException: signing failed
        """
        token_subject = _coerce_subject(subject)
        token_purpose = _coerce_purpose(purpose)
        with _reraise_unexpected(TokenGenerationException, "Failed to generate token"):
            token = self.codec.sign(token_subject, token_purpose, ttl_seconds)
        logger.debug(
            "Token issued",
            extra={
                "metadata": {
                    "purpose": str(token_purpose),
                    "subject": token_subject.subject,
                    "email": mask_email(token_subject.email),
                }
            },
        )
        return token

    async def verify_token(
        self, token: str, purpose: TokenPurpose | str
    ) -> VerifiedPayload:
        """
        Revocation is checked before the signature, so a revoked token is
        rejected whatever else is true about it.
        """
        if not token:
            raise InvalidTokenException("Token is required")
        token_purpose = _coerce_purpose(purpose)
        with _reraise_unexpected(TokenVerificationException, "Failed to verify token"):
            if await self.store.is_revoked(token):
                raise TokenRevokedException("Token has been revoked")
            return self.codec.verify(token, token_purpose)

    async def refresh_token(self, refresh_token: str) -> str:
        """
        Exchange a refresh token for a new access token. A refresh token works once.
        """
        payload = await self.verify_token(refresh_token, TokenPurpose.REFRESH)
        access_token = self.generate_token(
            TokenSubject(
                subject_id=payload.subject_id, email=payload.email, role=payload.role
            ),
            TokenPurpose.ACCESS,
        )
        with _reraise_unexpected(TokenRevocationException, "Failed to revoke token"):
            newly_revoked = await self.store.revoke(
                refresh_token,
                expires_at_ms=int(payload.expires_at.timestamp() * 1000),
            )
        if not newly_revoked:
            # Lost the race against a concurrent refresh with the same token
            raise TokenRevokedException("Token has been revoked")
        return access_token

    async def revoke_token(self, token: str) -> None:
        claims = self.codec.decode_unsafe(token)
        if claims is None or claims.exp is None:
            raise InvalidTokenException("Cannot revoke a malformed token")
        with _reraise_unexpected(TokenRevocationException, "Failed to revoke token"):
            await self.store.revoke(token, expires_at_ms=claims.exp * 1000)
        logger.info(
            "Token revoked",
            extra={"metadata": {"jti": claims.jti, "purpose": claims.purpose}},
        )

    def is_token_expired(self, token: str) -> bool:
        # Unreadable tokens count as expired
        claims = self.codec.decode_unsafe(token)
        if claims is None or claims.exp is None:
            return True
        return claims.exp <= int(get_utc_now().timestamp())

    def get_token_time_remaining(self, token: str) -> int:
        claims = self.codec.decode_unsafe(token)
        if claims is None or claims.exp is None:
            return 0
        return max(0, claims.exp - int(get_utc_now().timestamp()))

    async def is_token_valid(
        self, token: str, purpose: TokenPurpose | str = TokenPurpose.ACCESS
    ) -> bool:
        try:
            await self.verify_token(token, purpose)
        except UnauthorizedException:
            return False
        return True
