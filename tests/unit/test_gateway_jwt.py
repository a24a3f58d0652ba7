"""Unit tests for JWT verification and role dependencies."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from jose import jwt

from config.settings import settings
from src.fp_common.enums import UserRole
from src.fp_common.errors import InvalidCredentialsError, RoleRequiredError
from src.fp_gateway.auth.dependencies import CurrentUser, get_current_user, require_roles
from src.fp_gateway.auth.jwt_handler import create_access_token, decode_access_token


def test_access_token_contains_correct_claims() -> None:
    token = create_access_token("user-123", UserRole.TRAINER)
    payload = jwt.get_unverified_claims(token)
    assert payload["sub"] == "user-123"
    assert payload["role"] == "trainer"
    assert payload["type"] == "access"


def test_decode_valid_access_token() -> None:
    payload = decode_access_token(create_access_token("user-abc"))
    assert payload["sub"] == "user-abc"
    assert payload["role"] == "user"


def test_expired_access_token_raises_credentials_error() -> None:
    with patch(
        "src.fp_gateway.auth.jwt_handler._ACCESS_EXPIRE",
        timedelta(seconds=-1),
    ):
        token = create_access_token("user-abc")
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(token)


def test_foreign_secret_rejected() -> None:
    token = jwt.encode({"sub": "user-abc", "type": "access"}, "other-secret", algorithm="HS256")
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(token)


def test_refresh_token_rejected() -> None:
    token = jwt.encode(
        {"sub": "user-abc", "type": "refresh"}, settings.JWT_SECRET, algorithm="HS256"
    )
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(token)


def test_missing_subject_rejected() -> None:
    token = jwt.encode({"type": "access"}, settings.JWT_SECRET, algorithm="HS256")
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(token)


class TestDependencies:
    async def test_current_user_from_token(self) -> None:
        user = await get_current_user(create_access_token("admin-1", UserRole.ADMIN))
        assert user == CurrentUser(user_id="admin-1", role=UserRole.ADMIN)
        assert user.is_admin

    async def test_unknown_role_is_401(self) -> None:
        token = jwt.encode(
            {"sub": "user-abc", "type": "access", "role": "superuser"},
            settings.JWT_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(token)
        assert exc_info.value.status_code == 401

    async def test_garbage_token_is_401(self) -> None:
        with pytest.raises(HTTPException):
            await get_current_user("not-a-token")

    async def test_require_roles_admits_listed_role(self) -> None:
        dependency = require_roles(UserRole.TRAINER, UserRole.ADMIN)
        trainer = CurrentUser(user_id="t-1", role=UserRole.TRAINER)
        assert await dependency(current_user=trainer) is trainer

    async def test_require_roles_rejects_others(self) -> None:
        dependency = require_roles(UserRole.ADMIN)
        with pytest.raises(RoleRequiredError):
            await dependency(current_user=CurrentUser(user_id="u-1", role=UserRole.USER))
