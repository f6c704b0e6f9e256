"""
API Token Service - Long-lived machine credentials.

Raw tokens look like ``spk_<64 hex chars>`` and are shown exactly once, at
creation. Only a one-way digest is stored: SHA-256, or HMAC-SHA-256 keyed with
API_TOKEN_PEPPER when one is configured.

NO DICTIONARIES - All data uses typed models/dataclasses.
"""

import hashlib
import hmac
import secrets
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.config import settings
from app.db.models import ApiToken, utc_now
from app.exceptions import TokenNotFoundError, ValidationFailedError
from app.models.domain import ApiTokenIdentity

logger = get_logger(__name__)

TOKEN_PREFIX = "spk_"


class ApiTokenData:
    """Data class for API token metadata (never carries the secret)."""

    def __init__(
        self,
        token_id: UUID,
        name: str,
        is_active: bool,
        created_at: datetime,
    ):
        self.token_id = token_id
        self.name = name
        self.is_active = is_active
        self.created_at = created_at


class GeneratedApiToken:
    """Data class for a newly generated token (includes plaintext, shown once)."""

    def __init__(self, token_id: UUID, plaintext_token: str, name: str, created_at: datetime):
        self.token_id = token_id
        self.plaintext_token = plaintext_token
        self.name = name
        self.created_at = created_at


def hash_token(raw_token: str, pepper: str | None = None) -> str:
    """Deterministic hex digest of a raw token."""
    key = settings.api_token_pepper if pepper is None else pepper
    if key:
        return hmac.new(key.encode("utf-8"), raw_token.encode("utf-8"), hashlib.sha256).hexdigest()
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


class ApiTokenService:
    """Service for API token management and verification."""

    def __init__(self, db: AsyncSession, pepper: str | None = None):
        self.db = db
        self.pepper = pepper

    def generate_token(self) -> tuple[str, str]:
        """
        Generate a new token.

        Returns:
            tuple: (plaintext_token, token_hash)
        """
        plaintext_token = f"{TOKEN_PREFIX}{secrets.token_hex(32)}"
        return plaintext_token, hash_token(plaintext_token, self.pepper)

    async def create_token(self, user_id: UUID, name: str | None) -> GeneratedApiToken:
        """
        Create a token owned by ``user_id``.

        Raises:
            ValidationFailedError: name missing or blank
        """
        if not isinstance(name, str) or not name.strip():
            raise ValidationFailedError(['Token "name" is required.'])

        plaintext_token, token_hash = self.generate_token()
        api_token = ApiToken(
            id=uuid4(),
            user_id=user_id,
            name=name.strip(),
            token_hash=token_hash,
            is_active=True,
            created_at=utc_now(),
        )
        self.db.add(api_token)
        await self.db.commit()

        logger.info(
            "api_token_created",
            token_id=str(api_token.id),
            user_id=str(user_id),
            name=api_token.name,
        )
        return GeneratedApiToken(
            token_id=api_token.id,
            plaintext_token=plaintext_token,
            name=api_token.name,
            created_at=api_token.created_at,
        )

    async def list_tokens(self, user_id: UUID) -> list[ApiTokenData]:
        """The user's tokens (active and revoked), newest first."""
        stmt = (
            select(ApiToken)
            .where(ApiToken.user_id == user_id)
            .order_by(ApiToken.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return [
            ApiTokenData(
                token_id=token.id,
                name=token.name,
                is_active=token.is_active,
                created_at=token.created_at,
            )
            for token in result.scalars().all()
        ]

    async def revoke_token(self, user_id: UUID, token_id: UUID) -> UUID:
        """
        Soft-revoke one of the user's active tokens.

        Raises:
            TokenNotFoundError: not found, owned by someone else or already revoked
        """
        stmt = (
            update(ApiToken)
            .where(
                ApiToken.id == token_id,
                ApiToken.user_id == user_id,
                ApiToken.is_active.is_(True),
            )
            .values(is_active=False)
            .returning(ApiToken.id)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        revoked_id = result.scalar_one_or_none()
        if revoked_id is None:
            await self.db.rollback()
            raise TokenNotFoundError(token_id)

        await self.db.commit()
        logger.info("api_token_revoked", token_id=str(token_id), user_id=str(user_id))
        return revoked_id

    async def verify_api_token(self, raw_token: str) -> ApiTokenIdentity | None:
        """
        Resolve a raw token to its owner. Read-only: nothing is written.

        Returns None for anything that isn't a live token. Database failures
        propagate.
        """
        if not raw_token.startswith(TOKEN_PREFIX):
            logger.warning("api_token_invalid_format", prefix=raw_token[:8])
            return None

        stmt = select(ApiToken).where(
            ApiToken.token_hash == hash_token(raw_token, self.pepper),
            ApiToken.is_active.is_(True),
        )
        result = await self.db.execute(stmt)
        api_token = result.scalar_one_or_none()

        if api_token is None:
            logger.warning("api_token_not_found", prefix=raw_token[:8])
            return None

        return ApiTokenIdentity(user_id=api_token.user_id, token_id=api_token.id)
