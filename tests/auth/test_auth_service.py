from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from src.core.errors.exceptions import ValidationException
from src.core.utils.datetime_utils import get_utc_now
from src.user.auth import service as service_module
from src.user.auth.enums import TokenPurpose
from src.user.auth.exceptions import (
    InvalidTokenException,
    InvalidTokenPurposeException,
    TokenExpiredException,
    TokenRevocationException,
    TokenRevokedException,
    TokenVerificationException,
)
from src.user.auth.revocation import InMemoryRevocationStore
from src.user.auth.service import AuthenticationService
from src.user.enums import UserRole
from tests.factories.token_factory import (
    build_claims,
    build_codec,
    build_expired_token,
    build_subject,
    encode_claims,
    tamper_signature,
)


@pytest.mark.asyncio
async def test_generate_then_verify_round_trips_subject(
    auth_service: AuthenticationService,
) -> None:
    token = auth_service.generate_token(
        {"subject_id": 5, "email": "sup@example.com", "role": "SUPERVISOR"},
        TokenPurpose.ACCESS,
    )

    payload = await auth_service.verify_token(token, TokenPurpose.ACCESS)

    assert (payload.subject_id, payload.email, payload.role) == (
        5,
        "sup@example.com",
        UserRole.SUPERVISOR,
    )


@pytest.mark.asyncio
async def test_generate_accepts_purpose_as_string(
    auth_service: AuthenticationService,
) -> None:
    token = auth_service.generate_token(build_subject(), "VERIFY_EMAIL")

    payload = await auth_service.verify_token(token, "VERIFY_EMAIL")

    assert payload.purpose == TokenPurpose.VERIFY_EMAIL


@pytest.mark.parametrize(
    "subject",
    [
        {"subject_id": 0, "email": "a@example.com", "role": "USER"},
        {"subject_id": 1, "email": "", "role": "USER"},
        {"subject_id": 1, "email": "a@example.com", "role": "OWNER"},
        {"email": "a@example.com", "role": "USER"},
        {"subject_id": "7", "email": "a@example.com", "role": "USER"},
        {"subject_id": True, "email": "a@example.com", "role": "USER"},
        {"subject_id": 7.0, "email": "a@example.com", "role": "USER"},
    ],
)
def test_generate_rejects_invalid_subject(
    auth_service: AuthenticationService, subject: dict[str, object]
) -> None:
    with pytest.raises(ValidationException):
        auth_service.generate_token(subject, TokenPurpose.ACCESS)


def test_generate_rejects_unknown_purpose(auth_service: AuthenticationService) -> None:
    with pytest.raises(InvalidTokenPurposeException):
        auth_service.generate_token(build_subject(), "SESSION")


@pytest.mark.asyncio
async def test_verify_rejects_empty_token(auth_service: AuthenticationService) -> None:
    with pytest.raises(InvalidTokenException):
        await auth_service.verify_token("", TokenPurpose.ACCESS)


@pytest.mark.asyncio
async def test_verify_rejects_purpose_mismatch(
    auth_service: AuthenticationService,
) -> None:
    token = auth_service.generate_token(build_subject(), TokenPurpose.REFRESH)

    with pytest.raises(InvalidTokenPurposeException):
        await auth_service.verify_token(token, TokenPurpose.ACCESS)


@pytest.mark.asyncio
@pytest.mark.parametrize("purpose", list(TokenPurpose))
async def test_revoked_token_is_rejected_for_every_purpose(
    auth_service: AuthenticationService, purpose: TokenPurpose
) -> None:
    token = auth_service.generate_token(build_subject(), purpose)

    await auth_service.revoke_token(token)

    with pytest.raises(TokenRevokedException) as exc_info:
        await auth_service.verify_token(token, purpose)
    assert exc_info.value.code == "TOKEN_REVOKED"


@pytest.mark.asyncio
async def test_revocation_wins_over_signature_state(
    auth_service: AuthenticationService,
) -> None:
    tampered = tamper_signature(
        auth_service.generate_token(build_subject(), TokenPurpose.ACCESS)
    )
    await auth_service.revoke_token(tampered)

    with pytest.raises(TokenRevokedException):
        await auth_service.verify_token(tampered, TokenPurpose.ACCESS)


@pytest.mark.asyncio
async def test_refresh_mints_access_token_for_same_subject(
    auth_service: AuthenticationService,
) -> None:
    subject = build_subject(9, email="mgr@example.com", role=UserRole.MANAGER)
    refresh = auth_service.generate_token(subject, TokenPurpose.REFRESH)

    access = await auth_service.refresh_token(refresh)
    payload = await auth_service.verify_token(access, TokenPurpose.ACCESS)

    assert payload.subject_id == 9
    assert payload.email == "mgr@example.com"
    assert payload.role == UserRole.MANAGER


@pytest.mark.asyncio
async def test_refresh_token_is_single_use(
    auth_service: AuthenticationService,
) -> None:
    refresh = auth_service.generate_token(build_subject(), TokenPurpose.REFRESH)

    await auth_service.refresh_token(refresh)

    with pytest.raises(TokenRevokedException):
        await auth_service.refresh_token(refresh)


@pytest.mark.asyncio
async def test_concurrent_refresh_has_a_single_winner(
    auth_service: AuthenticationService,
) -> None:
    refresh = auth_service.generate_token(build_subject(), TokenPurpose.REFRESH)

    results = await asyncio.gather(
        *(auth_service.refresh_token(refresh) for _ in range(5)),
        return_exceptions=True,
    )

    successes = [r for r in results if isinstance(r, str)]
    failures = [r for r in results if isinstance(r, TokenRevokedException)]
    assert len(successes) == 1
    assert len(failures) == 4


@pytest.mark.asyncio
async def test_refresh_with_access_token_fails_without_revoking(
    auth_service: AuthenticationService,
    revocation_store: InMemoryRevocationStore,
) -> None:
    access = auth_service.generate_token(build_subject(), TokenPurpose.ACCESS)

    with pytest.raises(InvalidTokenPurposeException):
        await auth_service.refresh_token(access)

    assert await revocation_store.is_revoked(access) is False


@pytest.mark.asyncio
async def test_refresh_with_expired_token_fails(
    auth_service: AuthenticationService,
) -> None:
    with pytest.raises(TokenExpiredException):
        await auth_service.refresh_token(build_expired_token(TokenPurpose.REFRESH))


@pytest.mark.asyncio
async def test_revoke_rejects_garbage(auth_service: AuthenticationService) -> None:
    with pytest.raises(InvalidTokenException):
        await auth_service.revoke_token("not-a-token")


@pytest.mark.asyncio
async def test_revoke_is_idempotent(auth_service: AuthenticationService) -> None:
    token = auth_service.generate_token(build_subject(), TokenPurpose.ACCESS)

    await auth_service.revoke_token(token)
    await auth_service.revoke_token(token)

    assert await auth_service.is_token_valid(token) is False


def test_is_token_expired(auth_service: AuthenticationService) -> None:
    fresh = auth_service.generate_token(build_subject(), TokenPurpose.ACCESS)

    assert auth_service.is_token_expired(fresh) is False
    assert auth_service.is_token_expired(build_expired_token()) is True
    assert auth_service.is_token_expired("garbage") is True


def test_is_token_expired_counts_exact_expiry_as_expired(
    auth_service: AuthenticationService,
) -> None:
    token = encode_claims(build_claims(issued_ago=60, expires_in=0))

    assert auth_service.is_token_expired(token) is True


def test_is_token_expired_is_monotonic(
    auth_service: AuthenticationService, monkeypatch: pytest.MonkeyPatch
) -> None:
    token = encode_claims(build_claims(expires_in=100))
    start = get_utc_now()
    observed = []
    for offset in (0, 50, 99, 100, 101, 500):
        moment = start + timedelta(seconds=offset)
        monkeypatch.setattr(service_module, "get_utc_now", lambda m=moment: m)
        observed.append(auth_service.is_token_expired(token))

    assert observed == sorted(observed)
    assert observed[0] is False
    assert observed[-1] is True


def test_get_token_time_remaining(auth_service: AuthenticationService) -> None:
    token = encode_claims(build_claims(expires_in=120))

    assert 118 <= auth_service.get_token_time_remaining(token) <= 120
    assert auth_service.get_token_time_remaining(build_expired_token()) == 0
    assert auth_service.get_token_time_remaining("garbage") == 0


@pytest.mark.asyncio
async def test_is_token_valid(auth_service: AuthenticationService) -> None:
    token = auth_service.generate_token(build_subject(), TokenPurpose.ACCESS)

    assert await auth_service.is_token_valid(token) is True
    assert await auth_service.is_token_valid(token, TokenPurpose.REFRESH) is False
    assert await auth_service.is_token_valid(build_expired_token()) is False
    assert await auth_service.is_token_valid("garbage") is False


@pytest.mark.asyncio
async def test_unexpected_store_failure_on_verify_is_wrapped() -> None:
    store = InMemoryRevocationStore()
    store.is_revoked = AsyncMock(side_effect=ConnectionError("store down"))  # type: ignore[method-assign]
    service = AuthenticationService(build_codec(), store)
    token = service.generate_token(build_subject(), TokenPurpose.ACCESS)

    with pytest.raises(TokenVerificationException) as exc_info:
        await service.verify_token(token, TokenPurpose.ACCESS)

    assert exc_info.value.message == "Failed to verify token"
    assert "store down" not in str(exc_info.value)


@pytest.mark.asyncio
async def test_unexpected_store_failure_on_revoke_is_wrapped() -> None:
    store = InMemoryRevocationStore()
    store.revoke = AsyncMock(side_effect=ConnectionError("store down"))  # type: ignore[method-assign]
    service = AuthenticationService(build_codec(), store)
    token = service.generate_token(build_subject(), TokenPurpose.ACCESS)

    with pytest.raises(TokenRevocationException):
        await service.revoke_token(token)


def test_access_token_ttl_comes_from_codec() -> None:
    service = AuthenticationService(build_codec(ACCESS=900), InMemoryRevocationStore())

    assert service.access_token_ttl == 900
