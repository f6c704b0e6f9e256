"""
FastAPI Dependencies - Authentication and authorization.

Every request resolves its caller from scratch: the bearer credential is
verified, the user row is loaded and the role is read from it. Nothing about
identity or role is cached between requests.

NO DICTIONARIES - All dependencies return typed objects.
"""

from datetime import UTC, date, datetime
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.db.models import User
from app.db.session import get_write_db
from app.models.api import AuthType
from app.models.domain import Actor
from app.services.api_token import TOKEN_PREFIX, ApiTokenService
from app.services.auth import SessionAuthService
from app.services.users import resolve_role

logger = get_logger(__name__)

# Bearer token scheme; missing or non-Bearer headers resolve to None
bearer_scheme = HTTPBearer(auto_error=False)


def get_today() -> date:
    """Current UTC calendar date (overridden in tests to pin "today")."""
    return datetime.now(UTC).date()


def _actor_from_user(
    user: User, auth_type: AuthType, token_id: UUID | None = None
) -> Actor:
    return Actor(
        user_id=user.id,
        email=user.email,
        role=resolve_role(user.role),
        auth_type=auth_type,
        token_id=token_id,
    )


async def resolve_actor(credential: str, db: AsyncSession) -> Actor | None:
    """
    Resolve a bearer credential to an Actor.

    ``spk_`` credentials are API tokens acting as their owner; anything else
    is treated as a session token. Returns None when the credential doesn't
    identify an active user.
    """
    if credential.startswith(TOKEN_PREFIX):
        identity = await ApiTokenService(db).verify_api_token(credential)
        if identity is None:
            return None
        owner = await db.get(User, identity.user_id)
        if owner is None or not owner.is_active:
            logger.warning("api_token_owner_unavailable", token_id=str(identity.token_id))
            return None
        return _actor_from_user(owner, AuthType.API_TOKEN, identity.token_id)

    user = await SessionAuthService(db).verify_session(credential)
    if user is None:
        return None
    return _actor_from_user(user, AuthType.SESSION)


async def get_optional_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_write_db),
) -> Actor | None:
    """Caller identity if a valid credential was sent, else None."""
    if credentials is None:
        return None
    return await resolve_actor(credentials.credentials, db)


async def get_current_actor(
    actor: Actor | None = Depends(get_optional_actor),
) -> Actor:
    """
    Require an authenticated caller (session or API token).

    Raises:
        HTTPException 401 if no valid credential
    """
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. Provide a valid session or API token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor


async def get_session_actor(
    actor: Actor = Depends(get_current_actor),
) -> Actor:
    """
    Require a session credential; API tokens can't manage API tokens.

    Raises:
        HTTPException 401 for API-token callers
    """
    if actor.auth_type != AuthType.SESSION:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. Provide a valid session token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor


async def require_admin(
    actor: Actor = Depends(get_current_actor),
) -> Actor:
    """
    Require the admin role.

    Raises:
        HTTPException 403 if the caller is not an admin
    """
    if not actor.is_admin:
        logger.warning("admin_required", actor_id=str(actor.user_id))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required.",
        )
    return actor
