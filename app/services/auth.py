"""
Session authentication - password login and session JWTs.

Passwords are hashed with Argon2id. Session tokens are HS256 JWTs that carry
only the user id; the role is re-read from the database on every request.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.config import settings
from app.db.models import User, utc_now
from app.exceptions import AuthenticationError, DuplicateUserError
from app.models.api import Role
from app.models.domain import UserData
from app.services.users import to_user_data

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"

_password_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    return _password_hasher.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    """Check a password against its Argon2 hash; malformed hashes never match."""
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


@dataclass(frozen=True)
class IssuedSession:
    """Result of a successful login."""

    user: UserData
    access_token: str
    expires_in: int


class SessionAuthService:
    """Password login, registration and session token verification."""

    def __init__(
        self,
        session: AsyncSession,
        jwt_secret: str | None = None,
        expire_seconds: int | None = None,
    ) -> None:
        self.session = session
        self.jwt_secret = jwt_secret or settings.session_jwt_secret
        self.expire_seconds = expire_seconds or settings.session_expire_seconds

    async def authenticate(self, email: str, password: str) -> IssuedSession:
        """
        Exchange email and password for a session token.

        Raises:
            AuthenticationError: Unknown email, wrong password or deactivated account
        """
        user = await self._find_user_by_email(email)
        if user is None or not verify_password(user.password_hash, password):
            logger.warning("login_failed", email=email.strip().lower())
            raise AuthenticationError("Invalid email or password.")

        if not user.is_active:
            logger.warning("inactive_user_login_attempt", user_id=str(user.id))
            raise AuthenticationError("Invalid email or password.")

        if _password_hasher.check_needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)

        user.last_login_at = utc_now()
        await self.session.commit()

        logger.info("login_success", user_id=str(user.id))
        return IssuedSession(
            user=to_user_data(user),
            access_token=self.create_session_token(user),
            expires_in=self.expire_seconds,
        )

    async def register(self, email: str, password: str) -> UserData:
        """
        Create an editor account.

        Raises:
            DuplicateUserError: Email already registered
        """
        normalized = email.strip().lower()
        if await self._find_user_by_email(normalized) is not None:
            raise DuplicateUserError(normalized)

        user = User(
            id=uuid4(),
            email=normalized,
            password_hash=hash_password(password),
            role=Role.EDITOR.value,
            is_active=True,
            created_at=utc_now(),
        )
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateUserError(normalized) from e

        logger.info("user_registered", user_id=str(user.id))
        return to_user_data(user)

    def create_session_token(self, user: User) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "iat": now,
            "exp": now + timedelta(seconds=self.expire_seconds),
        }
        return jwt.encode(payload, self.jwt_secret, algorithm=JWT_ALGORITHM)

    def decode_session_token(self, token: str) -> UUID | None:
        """Return the user id from a valid token, or None."""
        try:
            payload = jwt.decode(token, self.jwt_secret, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            logger.info("session_token_expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning("session_token_invalid", error=str(e))
            return None

        try:
            return UUID(str(payload.get("sub")))
        except ValueError:
            logger.warning("session_token_bad_subject")
            return None

    async def verify_session(self, credential: str) -> User | None:
        """
        Resolve a session credential to an active user.

        "Not authenticated" is None, never an exception. Database failures
        propagate.
        """
        user_id = self.decode_session_token(credential)
        if user_id is None:
            return None

        user = await self.session.get(User, user_id)
        if user is None or not user.is_active:
            return None
        return user

    async def _find_user_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email.strip().lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
