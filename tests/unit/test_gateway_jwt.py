"""Tests for cx_gateway.auth: token verification and the current-user dependency."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException
from jose import jwt

from config.settings import settings
from src.cx_common.errors import InvalidCredentialsError
from src.cx_gateway.auth.dependencies import CurrentUser, get_current_user
from src.cx_gateway.auth.jwt_handler import decode_access_token


def _make_token(secret: str | None = None, **claims) -> str:
    payload = {
        "sub": "7",
        "type": "access",
        "roles": ["member"],
        "exp": datetime.now(UTC) + timedelta(minutes=30),
    }
    payload.update(claims)
    return jwt.encode(
        payload, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM
    )


class TestDecodeAccessToken:
    def test_valid_token(self) -> None:
        payload = decode_access_token(_make_token())
        assert payload["sub"] == "7"
        assert payload["roles"] == ["member"]

    def test_wrong_secret_rejected(self) -> None:
        with pytest.raises(InvalidCredentialsError):
            decode_access_token(_make_token(secret="someone-else"))

    def test_expired_token_rejected(self) -> None:
        token = _make_token(exp=datetime.now(UTC) - timedelta(minutes=1))
        with pytest.raises(InvalidCredentialsError):
            decode_access_token(token)

    def test_refresh_token_rejected(self) -> None:
        with pytest.raises(InvalidCredentialsError):
            decode_access_token(_make_token(type="refresh"))

    def test_garbage_rejected(self) -> None:
        with pytest.raises(InvalidCredentialsError):
            decode_access_token("not-a-jwt")


class TestGetCurrentUser:
    @pytest.mark.asyncio
    async def test_extracts_id_and_roles(self) -> None:
        user = await get_current_user(_make_token(roles=["member", "admin"]))
        assert user == CurrentUser(id=7, roles=("member", "admin"))

    @pytest.mark.asyncio
    async def test_missing_roles_means_none(self) -> None:
        user = await get_current_user(_make_token(roles=None))
        assert user.roles == ()

    @pytest.mark.asyncio
    async def test_non_numeric_subject_is_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_make_token(sub="alice"))
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token_is_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user("bad")
        assert exc_info.value.status_code == 401
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}

    @pytest.mark.asyncio
    async def test_roles_must_be_a_list(self) -> None:
        with pytest.raises(HTTPException):
            await get_current_user(_make_token(roles="admin"))
