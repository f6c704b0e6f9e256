"""
Tests for API Routes.

Tests route handler functions directly with mocked services.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from conftest import TODAY, make_sale_data
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from app.api.routes import (
    add_favorite,
    create_brand,
    create_sale,
    delete_sale,
    get_sale,
    health_check,
    list_sales,
    record_view,
    remove_favorite,
    sale_to_response,
    update_brand,
    update_sale,
)
from app.exceptions import (
    ActiveSaleLimitError,
    AuthorizationError,
    BrandNotFoundError,
    DuplicateBrandError,
    SaleNotFoundError,
    ValidationFailedError,
)
from app.models.api import (
    BrandCreateRequest,
    BrandUpdateRequest,
    ListingSort,
    SaleCreateRequest,
    SaleStatus,
    SaleUpdateRequest,
    SaleWindow,
)
from app.models.domain import Actor, ListingFilters


def _service_mock(**methods) -> MagicMock:
    """Patchable service class whose instance exposes the given async methods."""
    instance = MagicMock()
    for name, value in methods.items():
        if isinstance(value, BaseException):
            setattr(instance, name, AsyncMock(side_effect=value))
        else:
            setattr(instance, name, AsyncMock(return_value=value))
    return MagicMock(return_value=instance)


# ============================================================================
# Serialisation
# ============================================================================


class TestSaleToResponse:
    """Derived fields are computed per read."""

    def test_active_and_label(self):
        """is_active and label are derived from the stored fields."""
        response = sale_to_response(make_sale_data(), TODAY)

        assert response.is_active is True
        assert response.label == "Up to 25% OFF"
        assert response.brand.name == "Acme"

    def test_expired(self):
        """A past sale is not active."""
        sale = make_sale_data(start_date=TODAY.replace(month=1), end_date=TODAY.replace(month=2))
        assert sale_to_response(sale, TODAY).is_active is False


# ============================================================================
# Brand Route Tests
# ============================================================================


class TestBrandRoutes:
    """Brand endpoints."""

    @pytest.mark.asyncio
    async def test_create_duplicate_is_409(self, db_session, admin_actor: Actor):
        """Duplicate names conflict."""
        service = _service_mock(create_brand=DuplicateBrandError("Acme"))
        with patch("app.api.routes.BrandService", service):
            with pytest.raises(HTTPException) as exc_info:
                await create_brand(BrandCreateRequest(name="Acme"), db_session, admin_actor)

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_create_invalid_is_400(self, db_session, admin_actor: Actor):
        """Missing name is a bad request."""
        service = _service_mock(create_brand=ValidationFailedError(["name required"]))
        with patch("app.api.routes.BrandService", service):
            with pytest.raises(HTTPException) as exc_info:
                await create_brand(BrandCreateRequest(), db_session, admin_actor)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "name required"

    @pytest.mark.asyncio
    async def test_update_sends_only_supplied_fields(self, db_session, admin_actor: Actor):
        """Unset request fields are not forwarded."""
        service = _service_mock(update_brand=BrandNotFoundError("x"))
        brand_id = uuid4()
        with patch("app.api.routes.BrandService", service):
            with pytest.raises(HTTPException) as exc_info:
                await update_brand(
                    brand_id, BrandUpdateRequest(category="Shoes"), db_session, admin_actor
                )

        assert exc_info.value.status_code == 404
        service.return_value.update_brand.assert_awaited_once_with(
            brand_id, {"category": "Shoes"}, admin_actor
        )


# ============================================================================
# Sale Route Tests
# ============================================================================


class TestSaleRoutes:
    """Sale endpoints."""

    @pytest.mark.asyncio
    async def test_list_builds_filters(self, db_session):
        """Query parameters become listing filters."""
        sale = make_sale_data()
        service = _service_mock(list_public=[sale])
        brand_id = uuid4()
        with patch("app.api.routes.SaleService", service):
            response = await list_sales(
                brand_id, None, SaleWindow.ACTIVE, ListingSort.NEWEST, db_session, TODAY
            )

        assert response.total == 1
        assert response.sales[0].id == sale.sale_id
        service.return_value.list_public.assert_awaited_once_with(
            ListingFilters(brand_id=brand_id, window=SaleWindow.ACTIVE, sort=ListingSort.NEWEST),
            TODAY,
        )

    @pytest.mark.asyncio
    async def test_create_success(self, db_session, editor_actor: Actor):
        """Created sale is returned with derived fields."""
        sale = make_sale_data(status=SaleStatus.PENDING, created_by=editor_actor.user_id)
        service = _service_mock(create_sale=sale)
        with patch("app.api.routes.SaleService", service):
            envelope = await create_sale(
                SaleCreateRequest(title="Summer Sale"), db_session, editor_actor, TODAY
            )

        assert envelope.sale.status == SaleStatus.PENDING
        assert envelope.sale.created_by == editor_actor.user_id

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (ValidationFailedError(["bad"]), 400),
            (BrandNotFoundError("x"), 404),
            (ActiveSaleLimitError(uuid4(), 3), 409),
        ],
    )
    async def test_create_errors(self, db_session, editor_actor: Actor, error, status_code):
        """Domain errors map to HTTP statuses."""
        service = _service_mock(create_sale=error)
        with patch("app.api.routes.SaleService", service):
            with pytest.raises(HTTPException) as exc_info:
                await create_sale(SaleCreateRequest(), db_session, editor_actor, TODAY)

        assert exc_info.value.status_code == status_code
        assert exc_info.value.detail == str(error)

    @pytest.mark.asyncio
    async def test_get_hidden_sale_is_404(self, db_session):
        """Invisible sales look missing."""
        service = _service_mock(get_sale=SaleNotFoundError("x"))
        with patch("app.api.routes.SaleService", service):
            with pytest.raises(HTTPException) as exc_info:
                await get_sale(uuid4(), db_session, None, TODAY)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_update_forbidden_is_403(self, db_session, editor_actor: Actor):
        """Permission failures are 403 with the bare message."""
        service = _service_mock(
            update_sale=AuthorizationError("You can only modify your own pending sales.")
        )
        with patch("app.api.routes.SaleService", service):
            with pytest.raises(HTTPException) as exc_info:
                await update_sale(
                    uuid4(), SaleUpdateRequest(title="x"), db_session, editor_actor, TODAY
                )

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "You can only modify your own pending sales."

    @pytest.mark.asyncio
    async def test_update_forwards_only_sent_fields(self, db_session, admin_actor: Actor):
        """Status and other unset fields are only sent when supplied."""
        service = _service_mock(update_sale=make_sale_data())
        sale_id = uuid4()
        with patch("app.api.routes.SaleService", service):
            await update_sale(
                sale_id, SaleUpdateRequest(status="rejected"), db_session, admin_actor, TODAY
            )

        service.return_value.update_sale.assert_awaited_once_with(
            sale_id, {"status": "rejected"}, admin_actor, TODAY
        )

    @pytest.mark.asyncio
    async def test_delete_returns_204(self, db_session, editor_actor: Actor):
        """Successful delete has no body."""
        service = _service_mock(delete_sale=None)
        with patch("app.api.routes.SaleService", service):
            response = await delete_sale(uuid4(), db_session, editor_actor)

        assert response.status_code == 204


# ============================================================================
# Counter Route Tests
# ============================================================================


class TestCounterRoutes:
    """Unauthenticated engagement counters."""

    @pytest.mark.asyncio
    async def test_record_view(self, db_session):
        """Views return 204."""
        service = _service_mock(increment_views=None)
        with patch("app.api.routes.SaleService", service):
            response = await record_view(uuid4(), db_session)

        assert response.status_code == 204

    @pytest.mark.asyncio
    async def test_favorite_unknown_sale(self, db_session):
        """Unknown sale is 404."""
        service = _service_mock(increment_favorites=SaleNotFoundError("x"))
        with patch("app.api.routes.SaleService", service):
            with pytest.raises(HTTPException) as exc_info:
                await add_favorite(uuid4(), db_session)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_unfavorite(self, db_session):
        """Decrement returns 204."""
        service = _service_mock(decrement_favorites=None)
        with patch("app.api.routes.SaleService", service):
            response = await remove_favorite(uuid4(), db_session)

        assert response.status_code == 204
        service.return_value.decrement_favorites.assert_awaited_once()


# ============================================================================
# Health Route Tests
# ============================================================================


class TestHealth:
    """Database-backed health check."""

    @pytest.mark.asyncio
    async def test_healthy(self, db_session):
        """Reachable database reports healthy."""
        response = await health_check(db_session)

        assert response.status == "healthy"
        assert response.database == "connected"

    @pytest.mark.asyncio
    async def test_database_down(self, db_session):
        """Unreachable database is 503."""
        db_session.execute = AsyncMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("down"))
        )

        with pytest.raises(HTTPException) as exc_info:
            await health_check(db_session)

        assert exc_info.value.status_code == 503
