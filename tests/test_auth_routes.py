"""
Tests for authentication and API token routes.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi import HTTPException

from app.api.auth_routes import create_token, list_tokens, login, register, revoke_token
from app.exceptions import (
    AuthenticationError,
    DuplicateUserError,
    TokenNotFoundError,
    ValidationFailedError,
)
from app.models.api import (
    LoginRequest,
    RegisterRequest,
    Role,
    TokenCreateRequest,
    TokenRevokeRequest,
)
from app.models.domain import Actor, UserData
from app.services.api_token import ApiTokenData, GeneratedApiToken
from app.services.auth import IssuedSession

NOW = datetime(2026, 6, 15, tzinfo=UTC)


def _service(method: str, result) -> MagicMock:
    instance = MagicMock()
    if isinstance(result, BaseException):
        setattr(instance, method, AsyncMock(side_effect=result))
    else:
        setattr(instance, method, AsyncMock(return_value=result))
    return MagicMock(return_value=instance)


def _user(role: Role = Role.EDITOR) -> UserData:
    return UserData(
        user_id=uuid4(),
        email="user@example.com",
        role=role,
        is_active=True,
        created_at=NOW,
        last_login_at=None,
    )


class TestLogin:
    """POST /auth/login."""

    @pytest.mark.asyncio
    async def test_success(self, db_session):
        """Valid credentials return a bearer token and the user's role."""
        user = _user(Role.ADMIN)
        service = _service(
            "authenticate", IssuedSession(user=user, access_token="jwt", expires_in=3600)
        )
        with patch("app.api.auth_routes.SessionAuthService", service):
            response = await login(LoginRequest(email="a@b.c", password="pw"), db_session)

        assert response.access_token == "jwt"
        assert response.token_type == "bearer"
        assert response.user.role == Role.ADMIN

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "request_body", [None, LoginRequest(), LoginRequest(email="a@b.c")]
    )
    async def test_missing_fields_is_400(self, db_session, request_body):
        """Both fields are required."""
        with pytest.raises(HTTPException) as exc_info:
            await login(request_body, db_session)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == 'Fields "email" and "password" are required.'

    @pytest.mark.asyncio
    async def test_bad_credentials_is_401(self, db_session):
        """Wrong credentials are 401 with a generic message."""
        service = _service("authenticate", AuthenticationError("Invalid email or password."))
        with patch("app.api.auth_routes.SessionAuthService", service):
            with pytest.raises(HTTPException) as exc_info:
                await login(LoginRequest(email="a@b.c", password="x"), db_session)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Invalid email or password."


class TestRegister:
    """POST /auth/register."""

    @pytest.mark.asyncio
    async def test_duplicate_is_409(self, db_session):
        """Existing email conflicts."""
        service = _service("register", DuplicateUserError("a@b.c"))
        with patch("app.api.auth_routes.SessionAuthService", service):
            with pytest.raises(HTTPException) as exc_info:
                await register(RegisterRequest(email="a@b.c", password="long-enough"), db_session)

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_success(self, db_session):
        """New account is returned."""
        service = _service("register", _user())
        with patch("app.api.auth_routes.SessionAuthService", service):
            envelope = await register(
                RegisterRequest(email="a@b.c", password="long-enough"), db_session
            )

        assert envelope.user.role == Role.EDITOR


class TestTokenRoutes:
    """GET/POST/DELETE /tokens."""

    @pytest.mark.asyncio
    async def test_create_returns_raw_token(self, db_session, editor_actor: Actor):
        """Raw value appears in the creation response."""
        generated = GeneratedApiToken(
            token_id=uuid4(), plaintext_token="spk_" + "a" * 64, name="ci", created_at=NOW
        )
        service = _service("create_token", generated)
        with patch("app.api.auth_routes.ApiTokenService", service):
            response = await create_token(TokenCreateRequest(name="ci"), db_session, editor_actor)

        assert response.token == generated.plaintext_token
        assert response.id == generated.token_id
        service.return_value.create_token.assert_awaited_once_with(editor_actor.user_id, "ci")

    @pytest.mark.asyncio
    async def test_create_without_name_is_400(self, db_session, editor_actor: Actor):
        """Missing name is a bad request."""
        service = _service("create_token", ValidationFailedError(['Token "name" is required.']))
        with patch("app.api.auth_routes.ApiTokenService", service):
            with pytest.raises(HTTPException) as exc_info:
                await create_token(None, db_session, editor_actor)

        assert exc_info.value.status_code == 400
        service.return_value.create_token.assert_awaited_once_with(editor_actor.user_id, None)

    @pytest.mark.asyncio
    async def test_list_has_no_secrets(self, db_session, editor_actor: Actor):
        """Listing returns metadata only."""
        token = ApiTokenData(
            token_id=uuid4(), name="ci", is_active=False, created_at=NOW
        )
        service = _service("list_tokens", [token])
        with patch("app.api.auth_routes.ApiTokenService", service):
            response = await list_tokens(db_session, editor_actor)

        dumped = response.tokens[0].model_dump()
        assert dumped["is_active"] is False
        assert "token" not in dumped

    @pytest.mark.asyncio
    async def test_revoke_requires_id(self, db_session, editor_actor: Actor):
        """Missing id is 400."""
        with pytest.raises(HTTPException) as exc_info:
            await revoke_token(TokenRevokeRequest(), db_session, editor_actor)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == 'Token "id" is required.'

    @pytest.mark.asyncio
    async def test_revoke_unknown_is_404(self, db_session, editor_actor: Actor):
        """Unknown, foreign or already revoked tokens are 404."""
        service = _service("revoke_token", TokenNotFoundError("x"))
        with patch("app.api.auth_routes.ApiTokenService", service):
            with pytest.raises(HTTPException) as exc_info:
                await revoke_token(TokenRevokeRequest(id=uuid4()), db_session, editor_actor)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_revoke(self, db_session, editor_actor: Actor):
        """Revoked id is echoed back."""
        token_id = uuid4()
        service = _service("revoke_token", token_id)
        with patch("app.api.auth_routes.ApiTokenService", service):
            response = await revoke_token(TokenRevokeRequest(id=token_id), db_session, editor_actor)

        assert response.id == token_id
        assert response.message == "Token revoked."
