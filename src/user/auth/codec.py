from collections.abc import Mapping
from datetime import datetime, timezone
import secrets
from typing import Any
import uuid

import jwt
from pydantic import ValidationError

from loggers import get_logger
from src.core.errors.exceptions import ValidationException
from src.core.utils.datetime_utils import get_utc_now
from src.main.config import Config, JWTConfig
from src.user.auth.enums import TokenPurpose
from src.user.auth.exceptions import (
    InvalidTokenException,
    InvalidTokenPurposeException,
    TokenExpiredException,
    TokenGenerationException,
)
from src.user.auth.schemas import TokenSubject, UnverifiedClaims, VerifiedPayload

logger = get_logger(__name__)

REQUIRED_CLAIMS = ["exp", "iat", "sub", "jti"]


def decode_unverified(token: str) -> UnverifiedClaims | None:
    """
    Read the claims of a token without verifying anything.

    Returns None when the token cannot be decoded at all.
    """
    if not isinstance(token, str) or not token:
        return None
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    if not isinstance(claims, Mapping):
        return None
    return UnverifiedClaims.from_claims(claims)


def ttl_seconds_from_config(jwt_config: JWTConfig) -> dict[TokenPurpose, int]:
    return {
        TokenPurpose.ACCESS: jwt_config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        TokenPurpose.REFRESH: jwt_config.REFRESH_TOKEN_EXPIRE_MINUTES * 60,
        TokenPurpose.RESET_PASSWORD: jwt_config.RESET_PASSWORD_TOKEN_EXPIRE_MINUTES
        * 60,
        TokenPurpose.VERIFY_EMAIL: jwt_config.VERIFY_EMAIL_TOKEN_EXPIRE_MINUTES * 60,
        TokenPurpose.API_KEY: jwt_config.API_KEY_TOKEN_EXPIRE_MINUTES * 60,
        TokenPurpose.TEMPORARY_ACCESS: jwt_config.TEMPORARY_ACCESS_TOKEN_EXPIRE_MINUTES
        * 60,
        TokenPurpose.IMPERSONATION: jwt_config.IMPERSONATION_TOKEN_EXPIRE_MINUTES
        * 60,
    }


class TokenCodec:
    """
    Signs and verifies HS256 tokens.

    REFRESH tokens are signed with their own secret, every other purpose
    shares the access secret. The purpose travels inside the payload and is
    checked on both sides of signature verification.
    """

    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        issuer: str,
        audience: str,
        ttl_seconds: Mapping[TokenPurpose, int],
    ) -> None:
        if not access_secret or not refresh_secret:
            raise TokenGenerationException("Token signing secrets are not configured")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self._ttl_seconds = dict(ttl_seconds)

    def secret_for(self, purpose: TokenPurpose) -> str:
        if purpose is TokenPurpose.REFRESH:
            return self._refresh_secret
        return self._access_secret

    def ttl_for(self, purpose: TokenPurpose) -> int:
        return self._ttl_seconds[purpose]

    def _resolve_ttl(self, purpose: TokenPurpose, ttl_seconds: int | None) -> int:
        if ttl_seconds is None:
            return self.ttl_for(purpose)
        if purpose.has_fixed_lifetime:
            raise ValidationException(
                f"Lifetime of {purpose} tokens cannot be overridden"
            )
        if ttl_seconds <= 0:
            raise ValidationException("Token lifetime must be a positive number")
        return ttl_seconds

    def sign(
        self,
        subject: TokenSubject,
        purpose: TokenPurpose,
        ttl_seconds: int | None = None,
    ) -> str:
        ttl = self._resolve_ttl(purpose, ttl_seconds)
        issued_at = int(get_utc_now().timestamp())
        claims: dict[str, Any] = {
            "sub": subject.subject,
            "email": subject.email,
            "role": str(subject.role),
            "purpose": str(purpose),
            "iat": issued_at,
            "exp": issued_at + ttl,
            "jti": uuid.uuid4().hex,
            "iss": self.issuer,
            "aud": self.audience,
        }
        try:
            return jwt.encode(claims, self.secret_for(purpose), algorithm=self.algorithm)
        except Exception as e:
            logger.error("Token signing failed: %s", e)
            raise TokenGenerationException("Failed to generate token") from e

    def decode_unsafe(self, token: str) -> UnverifiedClaims | None:
        return decode_unverified(token)

    def verify(self, token: str, expected_purpose: TokenPurpose) -> VerifiedPayload:
        """
        Raises:
            InvalidTokenException: token is malformed, tampered or structurally wrong
            InvalidTokenPurposeException: token was issued for another purpose
            TokenExpiredException: token lifetime is over
        """
        peeked = decode_unverified(token)
        if peeked is None:
            raise InvalidTokenException("Invalid token")
        if peeked.purpose != expected_purpose:
            raise InvalidTokenPurposeException(
                "Token purpose mismatch",
                {"expected": str(expected_purpose), "actual": peeked.purpose},
            )

        try:
            claims = jwt.decode(
                token,
                self.secret_for(expected_purpose),
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredException("Token expired")
        except jwt.PyJWTError as e:
            raise InvalidTokenException("Invalid token", {"reason": str(e)})

        if claims.get("purpose") != expected_purpose:
            raise InvalidTokenPurposeException("Token purpose mismatch")

        try:
            return VerifiedPayload(
                subject_id=claims["sub"],
                email=claims.get("email"),
                role=claims.get("role"),
                purpose=claims["purpose"],
                issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
                jti=claims["jti"],
            )
        except (ValidationError, TypeError, ValueError, OverflowError) as e:
            raise InvalidTokenException(
                "Invalid token structure", {"reason": str(e).splitlines()[0]}
            )


def _resolve_secret(value: str | None, name: str, production: bool) -> str:
    if value:
        return value
    if production:
        raise TokenGenerationException(
            f"{name} must be set in production",
            {"setting": name},
        )
    logger.warning(
        "%s is not set; using an ephemeral secret. Tokens will not survive a restart.",
        name,
    )
    return secrets.token_hex(32)


def build_token_codec(settings: Config) -> TokenCodec:
    production = settings.app.is_production
    return TokenCodec(
        access_secret=_resolve_secret(
            settings.jwt.JWT_ACCESS_SECRET_KEY, "JWT_ACCESS_SECRET_KEY", production
        ),
        refresh_secret=_resolve_secret(
            settings.jwt.JWT_REFRESH_SECRET_KEY, "JWT_REFRESH_SECRET_KEY", production
        ),
        algorithm=settings.jwt.ALGORITHM,
        issuer=settings.jwt.JWT_ISSUER,
        audience=settings.jwt.JWT_AUDIENCE,
        ttl_seconds=ttl_seconds_from_config(settings.jwt),
    )
