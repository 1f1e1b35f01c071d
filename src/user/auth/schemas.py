from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.core.schemas import Base
from src.user.auth.enums import TokenPurpose
from src.user.enums import UserRole


class TokenSubject(BaseModel):
    """Who a token is issued for. Validated once, before signing."""

    subject_id: int = Field(gt=0, strict=True)
    email: str = Field(min_length=1)
    role: UserRole

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def subject(self) -> str:
        # Value of the `sub` claim
        return str(self.subject_id)


class VerifiedPayload(TokenSubject):
    """Claims of a token whose signature, expiry, issuer and audience were checked."""

    # `sub` is a string claim
    subject_id: int = Field(gt=0)
    purpose: TokenPurpose
    issued_at: datetime
    expires_at: datetime
    jti: str = Field(min_length=1)


def _optional_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return None


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True, slots=True)
class UnverifiedClaims:
    """
    Claims read without checking the signature.
    Good for expiry bookkeeping only, never for authorization.
    """

    sub: str | None = None
    email: str | None = None
    role: str | None = None
    purpose: str | None = None
    iat: int | None = None
    exp: int | None = None
    jti: str | None = None
    iss: str | None = None
    aud: str | list[str] | None = None

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "UnverifiedClaims":
        aud = claims.get("aud")
        return cls(
            sub=_optional_str(claims.get("sub")),
            email=_optional_str(claims.get("email")),
            role=_optional_str(claims.get("role")),
            purpose=_optional_str(claims.get("purpose")),
            iat=_optional_int(claims.get("iat")),
            exp=_optional_int(claims.get("exp")),
            jti=_optional_str(claims.get("jti")),
            iss=_optional_str(claims.get("iss")),
            aud=aud if isinstance(aud, (str, list)) else None,
        )


class AuthIdentity(BaseModel):
    """Authenticated caller attached to request.state.identity."""

    id: int
    subject_id: int
    email: str
    role: UserRole
    last_activity: datetime
    token_expiring_soon: bool = False


# ----- Route models ----- #
class RefreshTokenModel(Base):
    refresh_token: str = Field(min_length=1)


class AccessTokenModel(Base):
    access_token: str
    token_type: Literal["bearer"] = "bearer"
    expires_in: int


class LogoutModel(Base):
    refresh_token: str | None = None


class RevokeTokenModel(Base):
    token: str = Field(min_length=1)


class TokenStatusModel(Base):
    token: str = Field(min_length=1)


class TokenStatusViewModel(Base):
    expired: bool
    seconds_remaining: int
    valid: bool


class IdentityViewModel(Base):
    subject_id: int
    email: str
    role: UserRole
    rank: int
    permissions: list[str]
    token_expiring_soon: bool
