"""
Tests for Admin Routes (moderation and user roles).
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from conftest import TODAY, make_sale_data
from fastapi import HTTPException

from app.api.admin_routes import (
    approve_sale,
    list_sales_for_moderation,
    list_users,
    reject_sale,
    update_user_role,
)
from app.exceptions import SaleNotFoundError, UserNotFoundError, ValidationFailedError
from app.models.api import Role, RoleUpdateRequest, SaleStatus
from app.models.domain import Actor, UserData


def _service(method: str, result) -> MagicMock:
    instance = MagicMock()
    if isinstance(result, BaseException):
        setattr(instance, method, AsyncMock(side_effect=result))
    else:
        setattr(instance, method, AsyncMock(return_value=result))
    return MagicMock(return_value=instance)


def _user_data(role: Role = Role.EDITOR) -> UserData:
    return UserData(
        user_id=uuid4(),
        email="user@example.com",
        role=role,
        is_active=True,
        created_at=datetime(2026, 1, 1, tzinfo=UTC),
        last_login_at=None,
    )


class TestModerationRoutes:
    """Moderation queue and decisions."""

    @pytest.mark.asyncio
    async def test_queue_filtered_by_status(self, db_session, admin_actor: Actor):
        """?status narrows the queue."""
        pending = make_sale_data(status=SaleStatus.PENDING)
        service = _service("list_for_moderation", [pending])
        with patch("app.api.admin_routes.SaleService", service):
            response = await list_sales_for_moderation(
                SaleStatus.PENDING, db_session, admin_actor, TODAY
            )

        assert response.total == 1
        service.return_value.list_for_moderation.assert_awaited_once_with(
            admin_actor, SaleStatus.PENDING
        )

    @pytest.mark.asyncio
    async def test_approve(self, db_session, admin_actor: Actor):
        """Approved sale is returned."""
        service = _service("approve_sale", make_sale_data(status=SaleStatus.APPROVED))
        with patch("app.api.admin_routes.SaleService", service):
            envelope = await approve_sale(uuid4(), db_session, admin_actor, TODAY)

        assert envelope.sale.status == SaleStatus.APPROVED

    @pytest.mark.asyncio
    async def test_reject_unknown(self, db_session, admin_actor: Actor):
        """Unknown sale is 404."""
        service = _service("reject_sale", SaleNotFoundError("x"))
        with patch("app.api.admin_routes.SaleService", service):
            with pytest.raises(HTTPException) as exc_info:
                await reject_sale(uuid4(), db_session, admin_actor, TODAY)

        assert exc_info.value.status_code == 404


class TestUserRoutes:
    """User listing and role changes."""

    @pytest.mark.asyncio
    async def test_list_users(self, db_session, admin_actor: Actor):
        """Users are listed without password hashes."""
        service = _service("list_users", [_user_data()])
        with patch("app.api.admin_routes.UserService", service):
            response = await list_users(db_session, admin_actor)

        assert len(response.users) == 1
        assert "password_hash" not in response.users[0].model_dump()

    @pytest.mark.asyncio
    async def test_promote(self, db_session, admin_actor: Actor):
        """Role change is returned."""
        service = _service("update_role", _user_data(Role.ADMIN))
        with patch("app.api.admin_routes.UserService", service):
            envelope = await update_user_role(
                uuid4(), RoleUpdateRequest(role=Role.ADMIN), db_session, admin_actor
            )

        assert envelope.user.role == Role.ADMIN

    @pytest.mark.asyncio
    async def test_own_role_is_400(self, db_session, admin_actor: Actor):
        """Self-targeted role changes are bad requests."""
        service = _service(
            "update_role", ValidationFailedError(["You cannot change your own role."])
        )
        with patch("app.api.admin_routes.UserService", service):
            with pytest.raises(HTTPException) as exc_info:
                await update_user_role(
                    admin_actor.user_id,
                    RoleUpdateRequest(role=Role.EDITOR),
                    db_session,
                    admin_actor,
                )

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_user_is_404(self, db_session, admin_actor: Actor):
        """Unknown user is 404."""
        service = _service("update_role", UserNotFoundError("x"))
        with patch("app.api.admin_routes.UserService", service):
            with pytest.raises(HTTPException) as exc_info:
                await update_user_role(
                    uuid4(), RoleUpdateRequest(role=Role.ADMIN), db_session, admin_actor
                )

        assert exc_info.value.status_code == 404
