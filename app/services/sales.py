"""
Sale Service - Submission, moderation and engagement workflow.

Composes the pure rules in ``app.services.sale_rules`` with persistence.
Every operation receives the calling ``Actor`` explicitly.
"""

from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.config import settings
from app.db.models import Brand, Sale, utc_now
from app.exceptions import (
    ActiveSaleLimitError,
    AuthorizationError,
    BrandNotFoundError,
    SaleNotFoundError,
    ValidationFailedError,
)
from app.models.api import DiscountMode, SaleStatus, SaleType
from app.models.domain import Actor, ListingFilters, SaleData, SaleFields, SaleSubmission
from app.observability.metrics import metrics
from app.observability.tracing import trace_operation
from app.services.listing import apply_listing
from app.services.sale_rules import (
    can_modify,
    can_view,
    initial_status,
    merge_sale_fields,
    resolve_requested_status,
    validate_sale_fields,
)

logger = get_logger(__name__)


def _parse_uuid(value: str | UUID) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(value)
    except (ValueError, AttributeError, TypeError):
        return None


class SaleService:
    """
    Sale workflow over the ``sales`` table.

    The active-sale cap is checked while holding a row lock on the brand
    (SELECT ... FOR UPDATE), so two concurrent submissions for the same brand
    are serialised and cannot both slip under the limit.
    """

    def __init__(
        self,
        session: AsyncSession,
        max_active_sales: int | None = None,
        editor_pending_only: bool | None = None,
    ) -> None:
        self.session = session
        self.max_active_sales = (
            max_active_sales
            if max_active_sales is not None
            else settings.max_active_sales_per_brand
        )
        self.editor_pending_only = (
            editor_pending_only
            if editor_pending_only is not None
            else settings.editor_mutations_pending_only
        )

    # ========================================================================
    # Submission
    # ========================================================================

    async def create_sale(self, fields: SaleFields, actor: Actor, today: date) -> SaleData:
        """
        Submit a new sale.

        Raises:
            ValidationFailedError: One or more fields are missing or malformed
            BrandNotFoundError: brand_id doesn't reference an existing brand
            ActiveSaleLimitError: Brand already has the maximum non-expired sales
        """
        with trace_operation("sale_create", actor_id=actor.user_id) as span:
            try:
                submission = validate_sale_fields(fields)
            except ValidationFailedError:
                metrics.record_sale_submission("invalid")
                raise

            brand = await self._lock_brand(submission.brand_id)
            if brand is None:
                metrics.record_sale_submission("brand_not_found")
                raise BrandNotFoundError(submission.brand_id)

            await self._enforce_active_limit(brand.id, today)

            status = initial_status(actor)
            sale = Sale(
                id=uuid4(),
                brand_id=brand.id,
                created_by=actor.user_id,
                status=status.value,
                view_count=0,
                favorite_count=0,
                created_at=utc_now(),
            )
            self._apply_submission(sale, submission)

            self.session.add(sale)
            await self.session.flush()
            await self.session.commit()

            span.set_attribute("sale.id", str(sale.id))
            span.set_attribute("sale.status", status.value)

        metrics.record_sale_submission("created")
        logger.info(
            "sale_submitted",
            sale_id=str(sale.id),
            brand_id=str(brand.id),
            created_by=str(actor.user_id),
            auth_type=actor.auth_type.value,
            status=status.value,
        )
        return self._to_domain(sale, brand)

    async def update_sale(
        self, sale_id: UUID, changes: Mapping[str, Any], actor: Actor, today: date
    ) -> SaleData:
        """
        Apply a partial update.

        ``changes`` contains only the fields the client sent. A status change
        from a non-admin is dropped; the merged record must pass the create
        rules again. The cap is only re-checked when the sale moves brands.

        Raises:
            SaleNotFoundError, AuthorizationError, ValidationFailedError,
            BrandNotFoundError, ActiveSaleLimitError
        """
        sale = await self._load_sale(sale_id)
        if sale is None:
            raise SaleNotFoundError(sale_id)

        current = self._to_domain(sale)
        if not can_modify(current, actor, self.editor_pending_only):
            logger.warning(
                "sale_update_forbidden", sale_id=str(sale_id), actor_id=str(actor.user_id)
            )
            raise AuthorizationError("You can only modify your own pending sales.")

        new_status = resolve_requested_status(changes.get("status"), actor)
        if changes.get("status") is not None and not actor.is_admin:
            logger.info("sale_status_stripped", sale_id=str(sale_id), actor_id=str(actor.user_id))

        submission = validate_sale_fields(merge_sale_fields(current, changes))

        brand = sale.brand
        target_brand_id = _parse_uuid(submission.brand_id)
        if target_brand_id != sale.brand_id:
            new_brand = await self._lock_brand(submission.brand_id)
            if new_brand is None:
                raise BrandNotFoundError(submission.brand_id)
            await self._enforce_active_limit(new_brand.id, today)
            sale.brand = new_brand
            sale.brand_id = new_brand.id
            brand = new_brand

        self._apply_submission(sale, submission)
        if new_status is not None:
            sale.status = new_status.value

        await self.session.flush()
        await self.session.commit()

        logger.info(
            "sale_updated",
            sale_id=str(sale.id),
            actor_id=str(actor.user_id),
            status=sale.status,
        )
        return self._to_domain(sale, brand)

    async def delete_sale(self, sale_id: UUID, actor: Actor) -> None:
        """
        Delete a sale.

        Raises:
            SaleNotFoundError: Sale doesn't exist
            AuthorizationError: Actor may not delete this sale
        """
        sale = await self._load_sale(sale_id)
        if sale is None:
            raise SaleNotFoundError(sale_id)

        if not can_modify(self._to_domain(sale), actor, self.editor_pending_only):
            logger.warning(
                "sale_delete_forbidden", sale_id=str(sale_id), actor_id=str(actor.user_id)
            )
            raise AuthorizationError("You can only delete your own pending sales.")

        await self.session.delete(sale)
        await self.session.commit()

        logger.info("sale_deleted", sale_id=str(sale_id), actor_id=str(actor.user_id))

    # ========================================================================
    # Moderation
    # ========================================================================

    async def approve_sale(self, sale_id: UUID, actor: Actor) -> SaleData:
        return await self._moderate(sale_id, actor, SaleStatus.APPROVED)

    async def reject_sale(self, sale_id: UUID, actor: Actor) -> SaleData:
        return await self._moderate(sale_id, actor, SaleStatus.REJECTED)

    async def _moderate(self, sale_id: UUID, actor: Actor, decision: SaleStatus) -> SaleData:
        """Set a moderation decision. Repeating a decision is a no-op."""
        if not actor.is_admin:
            raise AuthorizationError("Admin role required.")

        sale = await self._load_sale(sale_id)
        if sale is None:
            raise SaleNotFoundError(sale_id)

        previous = sale.status
        sale.status = decision.value
        await self.session.commit()

        metrics.record_moderation(decision.value)
        logger.info(
            "sale_moderated",
            sale_id=str(sale_id),
            admin_id=str(actor.user_id),
            previous_status=previous,
            status=decision.value,
        )
        return self._to_domain(sale)

    # ========================================================================
    # Reads
    # ========================================================================

    async def get_sale(self, sale_id: UUID, actor: Actor | None) -> SaleData:
        """
        Read one sale. Non-approved sales are only visible to their creator
        and admins; for anyone else they don't exist.
        """
        sale = await self._load_sale(sale_id)
        if sale is None:
            raise SaleNotFoundError(sale_id)

        data = self._to_domain(sale)
        if not can_view(data, actor):
            raise SaleNotFoundError(sale_id)
        return data

    async def list_public(self, filters: ListingFilters, today: date) -> list[SaleData]:
        """Approved sales, filtered and sorted for the public listing."""
        stmt = select(Sale).where(Sale.status == SaleStatus.APPROVED.value)
        if filters.brand_id is not None:
            stmt = stmt.where(Sale.brand_id == filters.brand_id)
        if filters.sale_type is not None:
            stmt = stmt.where(Sale.sale_type == filters.sale_type.value)

        result = await self.session.execute(stmt.order_by(Sale.created_at.desc()))
        sales = [self._to_domain(sale) for sale in result.scalars().all()]
        return apply_listing(sales, filters, today)

    async def list_dashboard(self, actor: Actor) -> list[SaleData]:
        """Admins see every sale; editors see the sales they created."""
        stmt = select(Sale)
        if not actor.is_admin:
            stmt = stmt.where(Sale.created_by == actor.user_id)

        result = await self.session.execute(stmt.order_by(Sale.created_at.desc()))
        return [self._to_domain(sale) for sale in result.scalars().all()]

    async def list_for_moderation(
        self, actor: Actor, status: SaleStatus | None = None
    ) -> list[SaleData]:
        """Admin moderation queue, optionally narrowed to one status."""
        if not actor.is_admin:
            raise AuthorizationError("Admin role required.")

        stmt = select(Sale)
        if status is not None:
            stmt = stmt.where(Sale.status == status.value)

        result = await self.session.execute(stmt.order_by(Sale.created_at.asc()))
        return [self._to_domain(sale) for sale in result.scalars().all()]

    # ========================================================================
    # Engagement counters
    # ========================================================================

    async def increment_views(self, sale_id: UUID) -> None:
        await self._bump_counter(sale_id, "view_count", 1)

    async def increment_favorites(self, sale_id: UUID) -> None:
        await self._bump_counter(sale_id, "favorite_count", 1)

    async def decrement_favorites(self, sale_id: UUID) -> None:
        await self._bump_counter(sale_id, "favorite_count", -1)

    async def _bump_counter(self, sale_id: UUID, column_name: str, delta: int) -> None:
        """
        Atomically add ``delta`` to a counter column, never going below zero.

        Raises:
            SaleNotFoundError: No such sale
        """
        column = getattr(Sale, column_name)
        stmt = (
            update(Sale)
            .where(Sale.id == sale_id)
            .values({column_name: func.greatest(column + delta, 0)})
            .returning(Sale.id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.scalar_one_or_none() is None:
            await self.session.rollback()
            raise SaleNotFoundError(sale_id)
        await self.session.commit()

        metrics.record_counter_update(column_name, "up" if delta > 0 else "down")

    # ========================================================================
    # Private Helper Methods
    # ========================================================================

    async def _lock_brand(self, brand_id: str) -> Brand | None:
        """Lock the brand row (SELECT FOR UPDATE); malformed ids match nothing."""
        parsed = _parse_uuid(brand_id)
        if parsed is None:
            return None

        stmt = select(Brand).where(Brand.id == parsed).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _count_active_sales(self, brand_id: UUID, today: date) -> int:
        """Count the brand's sales that haven't expired as of ``today``."""
        stmt = (
            select(func.count())
            .select_from(Sale)
            .where(Sale.brand_id == brand_id, Sale.end_date >= today)
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def _enforce_active_limit(self, brand_id: UUID, today: date) -> None:
        count = await self._count_active_sales(brand_id, today)
        if count >= self.max_active_sales:
            metrics.record_sale_submission("limit_reached")
            logger.warning(
                "active_sale_limit_reached",
                brand_id=str(brand_id),
                active_sales=count,
                limit=self.max_active_sales,
            )
            raise ActiveSaleLimitError(brand_id, self.max_active_sales)

    async def _load_sale(self, sale_id: UUID) -> Sale | None:
        stmt = select(Sale).where(Sale.id == sale_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _apply_submission(sale: Sale, submission: SaleSubmission) -> None:
        sale.title = submission.title
        sale.sale_type = submission.sale_type.value
        sale.discount_value = (
            Decimal(str(submission.discount_value))
            if submission.discount_value is not None
            else None
        )
        sale.discount_mode = submission.discount_mode.value if submission.discount_mode else None
        sale.notes = submission.notes
        sale.start_date = submission.start_date
        sale.end_date = submission.end_date
        sale.sale_url = submission.sale_url

    @staticmethod
    def _to_domain(sale: Sale, brand: Brand | None = None) -> SaleData:
        """Convert ORM sale to domain model."""
        brand = brand if brand is not None else sale.brand
        return SaleData(
            sale_id=sale.id,
            brand_id=sale.brand_id,
            brand_name=brand.name if brand is not None else None,
            brand_logo_url=brand.logo_url if brand is not None else None,
            title=sale.title,
            sale_type=SaleType(sale.sale_type),
            discount_value=float(sale.discount_value) if sale.discount_value is not None else None,
            discount_mode=DiscountMode(sale.discount_mode) if sale.discount_mode else None,
            notes=sale.notes,
            start_date=sale.start_date,
            end_date=sale.end_date,
            sale_url=sale.sale_url,
            status=SaleStatus(sale.status),
            created_by=sale.created_by,
            view_count=sale.view_count,
            favorite_count=sale.favorite_count,
            created_at=sale.created_at,
        )
