"""
Admin API routes - sale moderation and user role management.

Every route requires an authenticated admin (session or an admin's API token).
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.api.dependencies import get_today, require_admin
from app.api.routes import sale_to_response, sales_to_list
from app.db.session import get_write_db
from app.exceptions import SaleNotFoundError, UserNotFoundError, ValidationFailedError
from app.models.api import (
    RoleUpdateRequest,
    SaleEnvelope,
    SaleListResponse,
    SaleStatus,
    UserEnvelope,
    UserListResponse,
    UserResponse,
)
from app.models.domain import Actor, UserData
from app.services.sales import SaleService
from app.services.users import UserService

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


def _user_to_response(user: UserData) -> UserResponse:
    return UserResponse(
        id=user.user_id,
        email=user.email,
        role=user.role,
        is_active=user.is_active,
        created_at=user.created_at,
        last_login_at=user.last_login_at,
    )


# ============================================================================
# Moderation
# ============================================================================


@router.get("/sales", response_model=SaleListResponse)
async def list_sales_for_moderation(
    sale_status: SaleStatus | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_write_db),
    admin: Actor = Depends(require_admin),
    today: date = Depends(get_today),
) -> SaleListResponse:
    """Moderation queue, oldest first. ``?status=pending`` for the review backlog."""
    sales = await SaleService(db).list_for_moderation(admin, sale_status)
    return sales_to_list(sales, today)


@router.post("/sales/{sale_id}/approve", response_model=SaleEnvelope)
async def approve_sale(
    sale_id: UUID,
    db: AsyncSession = Depends(get_write_db),
    admin: Actor = Depends(require_admin),
    today: date = Depends(get_today),
) -> SaleEnvelope:
    try:
        sale = await SaleService(db).approve_sale(sale_id, admin)
    except SaleNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return SaleEnvelope(sale=sale_to_response(sale, today))


@router.post("/sales/{sale_id}/reject", response_model=SaleEnvelope)
async def reject_sale(
    sale_id: UUID,
    db: AsyncSession = Depends(get_write_db),
    admin: Actor = Depends(require_admin),
    today: date = Depends(get_today),
) -> SaleEnvelope:
    try:
        sale = await SaleService(db).reject_sale(sale_id, admin)
    except SaleNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return SaleEnvelope(sale=sale_to_response(sale, today))


# ============================================================================
# Users
# ============================================================================


@router.get("/users", response_model=UserListResponse)
async def list_users(
    db: AsyncSession = Depends(get_write_db),
    admin: Actor = Depends(require_admin),
) -> UserListResponse:
    users = await UserService(db).list_users(admin)
    return UserListResponse(users=[_user_to_response(user) for user in users])


@router.patch("/users/{user_id}/role", response_model=UserEnvelope)
async def update_user_role(
    user_id: UUID,
    request: RoleUpdateRequest,
    db: AsyncSession = Depends(get_write_db),
    admin: Actor = Depends(require_admin),
) -> UserEnvelope:
    """Grant or revoke admin. Admins can't change their own role."""
    try:
        user = await UserService(db).update_role(user_id, request.role, admin)
    except ValidationFailedError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return UserEnvelope(user=_user_to_response(user))
