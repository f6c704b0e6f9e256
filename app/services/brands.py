"""
Brand Service - Brand registry (public read, admin write).
"""

from collections.abc import Mapping
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.config import settings
from app.db.models import Brand, utc_now
from app.exceptions import (
    AuthorizationError,
    BrandNotFoundError,
    DuplicateBrandError,
    ValidationFailedError,
)
from app.models.domain import Actor, BrandData, BrandInput

logger = get_logger(__name__)

_OPTIONAL_FIELDS = ("website_url", "category", "logo_url")

# Column sizes in app.db.models.Brand
_FIELD_LIMITS = {"name": 255, "website_url": 1024, "category": 255, "logo_url": 1024}


def _clean_optional(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def build_brand_input(fields: Mapping[str, Any]) -> BrandInput:
    """
    Trim and validate brand fields.

    Raises:
        ValidationFailedError: name missing or blank, or a field longer than its column
    """
    errors: list[str] = []
    name = fields.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append('Field "name" is required and must be a non-empty string.')

    for field, limit in _FIELD_LIMITS.items():
        value = fields.get(field)
        if isinstance(value, str) and len(value.strip()) > limit:
            errors.append(f'Field "{field}" must be at most {limit} characters.')

    if errors:
        raise ValidationFailedError(errors)

    assert isinstance(name, str)
    return BrandInput(
        name=name.strip(),
        website_url=_clean_optional(fields.get("website_url")),
        category=_clean_optional(fields.get("category")),
        logo_url=_clean_optional(fields.get("logo_url")),
    )


class BrandService:
    """Brand CRUD. Mutations require the admin role."""

    def __init__(self, session: AsyncSession, unique_names: bool | None = None) -> None:
        self.session = session
        self.unique_names = (
            unique_names if unique_names is not None else settings.brand_name_unique
        )

    async def list_brands(self) -> list[BrandData]:
        """All brands, newest first."""
        stmt = select(Brand).order_by(Brand.created_at.desc())
        result = await self.session.execute(stmt)
        return [self._to_domain(brand) for brand in result.scalars().all()]

    async def create_brand(self, fields: Mapping[str, Any], actor: Actor) -> BrandData:
        """
        Register a brand.

        Raises:
            AuthorizationError: Actor is not an admin
            ValidationFailedError: Name missing or blank
            DuplicateBrandError: Name already taken (case-insensitive)
        """
        self._require_admin(actor)
        brand_input = build_brand_input(fields)
        await self._ensure_name_available(brand_input.name)

        brand = Brand(
            id=uuid4(),
            name=brand_input.name,
            website_url=brand_input.website_url,
            category=brand_input.category,
            logo_url=brand_input.logo_url,
            created_at=utc_now(),
        )
        self.session.add(brand)
        await self.session.commit()

        logger.info(
            "brand_created",
            brand_id=str(brand.id),
            name=brand.name,
            actor_id=str(actor.user_id),
            auth_type=actor.auth_type.value,
        )
        return self._to_domain(brand)

    async def update_brand(
        self, brand_id: UUID, changes: Mapping[str, Any], actor: Actor
    ) -> BrandData:
        """
        Partially update a brand; supplied fields go through the create rules.

        Raises:
            AuthorizationError, BrandNotFoundError, ValidationFailedError,
            DuplicateBrandError
        """
        self._require_admin(actor)
        brand = await self._get_brand(brand_id)
        if brand is None:
            raise BrandNotFoundError(brand_id)

        merged = {
            "name": brand.name,
            **{field: getattr(brand, field) for field in _OPTIONAL_FIELDS},
            **changes,
        }
        brand_input = build_brand_input(merged)
        if brand_input.name.lower() != brand.name.lower():
            await self._ensure_name_available(brand_input.name, exclude_id=brand.id)

        brand.name = brand_input.name
        brand.website_url = brand_input.website_url
        brand.category = brand_input.category
        brand.logo_url = brand_input.logo_url
        await self.session.commit()

        logger.info("brand_updated", brand_id=str(brand.id), actor_id=str(actor.user_id))
        return self._to_domain(brand)

    async def delete_brand(self, brand_id: UUID, actor: Actor) -> None:
        """
        Delete a brand; its sales go with it (ON DELETE CASCADE).

        Raises:
            AuthorizationError, BrandNotFoundError
        """
        self._require_admin(actor)
        brand = await self._get_brand(brand_id)
        if brand is None:
            raise BrandNotFoundError(brand_id)

        await self.session.delete(brand)
        await self.session.commit()

        logger.info("brand_deleted", brand_id=str(brand_id), actor_id=str(actor.user_id))

    # ========================================================================
    # Private Helper Methods
    # ========================================================================

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        if not actor.is_admin:
            logger.warning("brand_mutation_forbidden", actor_id=str(actor.user_id))
            raise AuthorizationError("Admin role required.")

    async def _get_brand(self, brand_id: UUID) -> Brand | None:
        stmt = select(Brand).where(Brand.id == brand_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _ensure_name_available(self, name: str, exclude_id: UUID | None = None) -> None:
        if not self.unique_names:
            return

        # Held until commit, so concurrent writers of the same name queue
        # behind each other's check and insert
        await self.session.execute(
            select(func.pg_advisory_xact_lock(func.hashtext(func.lower(name))))
        )

        stmt = select(Brand.id).where(func.lower(Brand.name) == name.lower())
        if exclude_id is not None:
            stmt = stmt.where(Brand.id != exclude_id)
        result = await self.session.execute(stmt.limit(1))
        if result.scalar_one_or_none() is not None:
            raise DuplicateBrandError(name)

    @staticmethod
    def _to_domain(brand: Brand) -> BrandData:
        return BrandData(
            brand_id=brand.id,
            name=brand.name,
            website_url=brand.website_url,
            category=brand.category,
            logo_url=brand.logo_url,
            created_at=brand.created_at,
        )
