"""
User Service - Role resolution and admin user management.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.db.models import User
from app.exceptions import AuthorizationError, UserNotFoundError, ValidationFailedError
from app.models.api import Role
from app.models.domain import Actor, UserData

logger = get_logger(__name__)


def resolve_role(role: str | None) -> Role:
    """Stored role to effective role; anything but "admin" is an editor."""
    return Role.ADMIN if role == Role.ADMIN.value else Role.EDITOR


def to_user_data(user: User) -> UserData:
    return UserData(
        user_id=user.id,
        email=user.email,
        role=resolve_role(user.role),
        is_active=user.is_active,
        created_at=user.created_at,
        last_login_at=user.last_login_at,
    )


class UserService:
    """Admin-only user listing and role management."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_user(self, user_id: UUID) -> User | None:
        return await self.session.get(User, user_id)

    async def list_users(self, actor: Actor) -> list[UserData]:
        """All users, oldest first."""
        self._require_admin(actor)
        result = await self.session.execute(select(User).order_by(User.created_at.asc()))
        return [to_user_data(user) for user in result.scalars().all()]

    async def update_role(self, user_id: UUID, role: Role, actor: Actor) -> UserData:
        """
        Grant or revoke admin.

        Raises:
            AuthorizationError: Actor is not an admin
            ValidationFailedError: Actor targets their own account
            UserNotFoundError: No such user
        """
        self._require_admin(actor)
        if user_id == actor.user_id:
            raise ValidationFailedError(["You cannot change your own role."])

        user = await self.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)

        previous = resolve_role(user.role)
        user.role = role.value
        await self.session.commit()

        logger.info(
            "user_role_updated",
            user_id=str(user_id),
            admin_id=str(actor.user_id),
            previous_role=previous.value,
            role=role.value,
        )
        return to_user_data(user)

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Admin role required.")
