"""
API Routes - Public catalogue, brand registry and sale submission endpoints.

NO DICTIONARIES - All requests/responses use Pydantic models.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.api.dependencies import (
    get_current_actor,
    get_optional_actor,
    get_today,
    require_admin,
)
from app.config import settings
from app.db.session import get_read_db, get_write_db
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
    BrandEnvelope,
    BrandListResponse,
    BrandResponse,
    BrandUpdateRequest,
    HealthResponse,
    ListingSort,
    SaleBrandSummary,
    SaleCreateRequest,
    SaleEnvelope,
    SaleListResponse,
    SaleResponse,
    SaleType,
    SaleUpdateRequest,
    SaleWindow,
)
from app.models.domain import Actor, BrandData, ListingFilters, SaleData, SaleFields
from app.services.brands import BrandService
from app.services.sale_rules import format_sale_label
from app.services.sales import SaleService

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Response builders
# ============================================================================


def brand_to_response(brand: BrandData) -> BrandResponse:
    return BrandResponse(
        id=brand.brand_id,
        name=brand.name,
        website_url=brand.website_url,
        category=brand.category,
        logo_url=brand.logo_url,
        created_at=brand.created_at,
    )


def sale_to_response(sale: SaleData, today: date) -> SaleResponse:
    """Serialise a sale, computing ``is_active`` and ``label`` for ``today``."""
    brand = (
        SaleBrandSummary(id=sale.brand_id, name=sale.brand_name, logo_url=sale.brand_logo_url)
        if sale.brand_name is not None
        else None
    )
    return SaleResponse(
        id=sale.sale_id,
        brand_id=sale.brand_id,
        brand=brand,
        title=sale.title,
        sale_type=sale.sale_type,
        discount_value=sale.discount_value,
        discount_mode=sale.discount_mode,
        notes=sale.notes,
        start_date=sale.start_date,
        end_date=sale.end_date,
        sale_url=sale.sale_url,
        status=sale.status,
        created_by=sale.created_by,
        view_count=sale.view_count,
        favorite_count=sale.favorite_count,
        is_active=sale.is_active(today),
        label=format_sale_label(sale.sale_type, sale.discount_value, sale.discount_mode),
        created_at=sale.created_at,
    )


def sales_to_list(sales: list[SaleData], today: date) -> SaleListResponse:
    return SaleListResponse(
        sales=[sale_to_response(sale, today) for sale in sales],
        total=len(sales),
    )


# ============================================================================
# Brands
# ============================================================================


@router.get("/brands", response_model=BrandListResponse, tags=["brands"])
async def list_brands(db: AsyncSession = Depends(get_read_db)) -> BrandListResponse:
    """List all brands, newest first. Public."""
    brands = await BrandService(db).list_brands()
    return BrandListResponse(brands=[brand_to_response(brand) for brand in brands])


@router.post(
    "/brands",
    response_model=BrandEnvelope,
    status_code=status.HTTP_201_CREATED,
    tags=["brands"],
)
async def create_brand(
    request: BrandCreateRequest,
    db: AsyncSession = Depends(get_write_db),
    actor: Actor = Depends(require_admin),
) -> BrandEnvelope:
    """
    Register a brand.

    Requires: admin (session or an admin's API token).
    """
    try:
        brand = await BrandService(db).create_brand(request.model_dump(), actor)
    except ValidationFailedError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except DuplicateBrandError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return BrandEnvelope(brand=brand_to_response(brand))


@router.patch("/brands/{brand_id}", response_model=BrandEnvelope, tags=["brands"])
async def update_brand(
    brand_id: UUID,
    request: BrandUpdateRequest,
    db: AsyncSession = Depends(get_write_db),
    actor: Actor = Depends(require_admin),
) -> BrandEnvelope:
    """Update a brand. Only supplied fields change. Requires: admin."""
    try:
        brand = await BrandService(db).update_brand(
            brand_id, request.model_dump(exclude_unset=True), actor
        )
    except BrandNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValidationFailedError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except DuplicateBrandError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return BrandEnvelope(brand=brand_to_response(brand))


@router.delete(
    "/brands/{brand_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["brands"],
)
async def delete_brand(
    brand_id: UUID,
    db: AsyncSession = Depends(get_write_db),
    actor: Actor = Depends(require_admin),
) -> Response:
    """Delete a brand and, by cascade, its sales. Requires: admin."""
    try:
        await BrandService(db).delete_brand(brand_id, actor)
    except BrandNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Sales
# ============================================================================


@router.get("/sales", response_model=SaleListResponse, tags=["sales"])
async def list_sales(
    brand_id: UUID | None = Query(None),
    sale_type: SaleType | None = Query(None),
    window: SaleWindow | None = Query(None, description="active or expired, as of today"),
    sort: ListingSort = Query(ListingSort.DISCOUNT_HIGH),
    db: AsyncSession = Depends(get_read_db),
    today: date = Depends(get_today),
) -> SaleListResponse:
    """Public listing of approved sales, filtered and sorted."""
    filters = ListingFilters(brand_id=brand_id, sale_type=sale_type, window=window, sort=sort)
    sales = await SaleService(db).list_public(filters, today)
    return sales_to_list(sales, today)


@router.get("/sales/mine", response_model=SaleListResponse, tags=["sales"])
async def list_my_sales(
    db: AsyncSession = Depends(get_write_db),
    actor: Actor = Depends(get_current_actor),
    today: date = Depends(get_today),
) -> SaleListResponse:
    """Dashboard view: admins see all sales, editors their own."""
    sales = await SaleService(db).list_dashboard(actor)
    return sales_to_list(sales, today)


@router.post(
    "/sales",
    response_model=SaleEnvelope,
    status_code=status.HTTP_201_CREATED,
    tags=["sales"],
)
async def create_sale(
    request: SaleCreateRequest,
    db: AsyncSession = Depends(get_write_db),
    actor: Actor = Depends(get_current_actor),
    today: date = Depends(get_today),
) -> SaleEnvelope:
    """
    Submit a sale.

    Admin submissions are approved immediately; everyone else's start as pending.
    Requires: session or API token.
    """
    try:
        sale = await SaleService(db).create_sale(SaleFields(**request.model_dump()), actor, today)
    except ValidationFailedError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except BrandNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ActiveSaleLimitError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return SaleEnvelope(sale=sale_to_response(sale, today))


@router.get("/sales/{sale_id}", response_model=SaleEnvelope, tags=["sales"])
async def get_sale(
    sale_id: UUID,
    db: AsyncSession = Depends(get_write_db),
    actor: Actor | None = Depends(get_optional_actor),
    today: date = Depends(get_today),
) -> SaleEnvelope:
    """Read one sale. Unapproved sales are visible only to their creator and admins."""
    try:
        sale = await SaleService(db).get_sale(sale_id, actor)
    except SaleNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return SaleEnvelope(sale=sale_to_response(sale, today))


@router.patch("/sales/{sale_id}", response_model=SaleEnvelope, tags=["sales"])
async def update_sale(
    sale_id: UUID,
    request: SaleUpdateRequest,
    db: AsyncSession = Depends(get_write_db),
    actor: Actor = Depends(get_current_actor),
    today: date = Depends(get_today),
) -> SaleEnvelope:
    """
    Update a sale. Editors may only edit their own pending sales and can't
    change status (it is ignored); admins may edit anything.
    """
    try:
        sale = await SaleService(db).update_sale(
            sale_id, request.model_dump(exclude_unset=True), actor, today
        )
    except SaleNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except AuthorizationError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message) from exc
    except ValidationFailedError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except BrandNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ActiveSaleLimitError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return SaleEnvelope(sale=sale_to_response(sale, today))


@router.delete(
    "/sales/{sale_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["sales"],
)
async def delete_sale(
    sale_id: UUID,
    db: AsyncSession = Depends(get_write_db),
    actor: Actor = Depends(get_current_actor),
) -> Response:
    """Delete a sale (admin: any; editor: own pending)."""
    try:
        await SaleService(db).delete_sale(sale_id, actor)
    except SaleNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except AuthorizationError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message) from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Engagement counters (unauthenticated)
# ============================================================================


@router.post(
    "/sales/{sale_id}/views",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["engagement"],
)
async def record_view(sale_id: UUID, db: AsyncSession = Depends(get_write_db)) -> Response:
    try:
        await SaleService(db).increment_views(sale_id)
    except SaleNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/sales/{sale_id}/favorites",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["engagement"],
)
async def add_favorite(sale_id: UUID, db: AsyncSession = Depends(get_write_db)) -> Response:
    try:
        await SaleService(db).increment_favorites(sale_id)
    except SaleNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/sales/{sale_id}/favorites",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["engagement"],
)
async def remove_favorite(sale_id: UUID, db: AsyncSession = Depends(get_write_db)) -> Response:
    """Decrement the favorite counter (floored at zero)."""
    try:
        await SaleService(db).decrement_favorites(sale_id)
    except SaleNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Health
# ============================================================================


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(db: AsyncSession = Depends(get_read_db)) -> HealthResponse:
    """
    Health check for load balancer.

    Verifies database connectivity.
    """
    try:
        await db.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("health_check_database_failed", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        ) from exc

    return HealthResponse(
        status="healthy",
        service=settings.service_name,
        version=settings.api_version,
        database="connected",
    )
