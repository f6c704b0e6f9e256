"""
API Models - Pydantic models for request/response validation.

Request bodies for sales and brands are deliberately loose (every field optional)
so that the workflow rules can report all missing or malformed fields together.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class Role(str, Enum):
    """User role enumeration."""

    ADMIN = "admin"
    EDITOR = "editor"


class AuthType(str, Enum):
    """How the caller proved its identity."""

    SESSION = "session"
    API_TOKEN = "api_token"


class SaleType(str, Enum):
    """Kind of promotional offer."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"
    BOGO = "bogo"
    B2G1 = "b2g1"
    DEAL = "deal"


class DiscountMode(str, Enum):
    """How a discount value is phrased ("up to" vs "flat")."""

    UPTO = "upto"
    FLAT = "flat"


class SaleStatus(str, Enum):
    """Moderation status of a sale."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SaleWindow(str, Enum):
    """Date-window filter for listings."""

    ACTIVE = "active"
    EXPIRED = "expired"


class ListingSort(str, Enum):
    """Sort orders offered by the public listing."""

    DISCOUNT_HIGH = "discount_high"
    DISCOUNT_LOW = "discount_low"
    NEWEST = "newest"
    OLDEST = "oldest"
    ENDING_SOON = "ending_soon"
    POPULAR = "popular"
    FAVORITES = "favorites"


# ============================================================================
# Auth Models
# ============================================================================


class LoginRequest(BaseModel):
    """POST /auth/login request body."""

    email: str | None = None
    password: str | None = None


class RegisterRequest(BaseModel):
    """POST /auth/register request body."""

    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=8, max_length=255)


class UserResponse(BaseModel):
    """Public view of a user account."""

    id: UUID
    email: str
    role: Role
    is_active: bool
    created_at: datetime
    last_login_at: datetime | None = None


class UserEnvelope(BaseModel):
    """Single user wrapper."""

    user: UserResponse


class UserListResponse(BaseModel):
    """GET /admin/users response."""

    users: list[UserResponse]


class LoginUser(BaseModel):
    """User summary returned with a session token."""

    id: UUID
    email: str
    role: Role


class LoginResponse(BaseModel):
    """POST /auth/login response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: LoginUser


class RoleUpdateRequest(BaseModel):
    """PATCH /admin/users/{id}/role request body."""

    role: Role


# ============================================================================
# Brand Models
# ============================================================================


class BrandCreateRequest(BaseModel):
    """POST /brands request body."""

    name: str | None = None
    website_url: str | None = None
    category: str | None = None
    logo_url: str | None = None


class BrandUpdateRequest(BaseModel):
    """PATCH /brands/{id} request body - only supplied fields change."""

    name: str | None = None
    website_url: str | None = None
    category: str | None = None
    logo_url: str | None = None


class BrandResponse(BaseModel):
    """Brand representation."""

    id: UUID
    name: str
    website_url: str | None = None
    category: str | None = None
    logo_url: str | None = None
    created_at: datetime


class BrandEnvelope(BaseModel):
    """Single brand wrapper."""

    brand: BrandResponse


class BrandListResponse(BaseModel):
    """GET /brands response."""

    brands: list[BrandResponse]


# ============================================================================
# Sale Models
# ============================================================================


class SaleCreateRequest(BaseModel):
    """POST /sales request body."""

    # Raw JSON values; validate_sale_fields owns every type check
    brand_id: Any = None
    title: Any = None
    sale_type: Any = None
    discount_value: Any = None
    discount_mode: Any = None
    notes: Any = None
    start_date: Any = None
    end_date: Any = None
    sale_url: Any = None


class SaleUpdateRequest(SaleCreateRequest):
    """PATCH /sales/{id} request body - only supplied fields change."""

    status: Any = None


class SaleBrandSummary(BaseModel):
    """Brand fields embedded in a sale."""

    id: UUID
    name: str
    logo_url: str | None = None


class SaleResponse(BaseModel):
    """Sale representation with derived presentation fields."""

    id: UUID
    brand_id: UUID
    brand: SaleBrandSummary | None = None
    title: str
    sale_type: SaleType
    discount_value: float | None = None
    discount_mode: DiscountMode | None = None
    notes: str | None = None
    start_date: date
    end_date: date
    sale_url: str | None = None
    status: SaleStatus
    created_by: UUID
    view_count: int = 0
    favorite_count: int = 0
    is_active: bool = Field(..., description="start_date <= today <= end_date, computed per read")
    label: str
    created_at: datetime


class SaleEnvelope(BaseModel):
    """Single sale wrapper."""

    sale: SaleResponse


class SaleListResponse(BaseModel):
    """Sale listing response."""

    sales: list[SaleResponse]
    total: int


# ============================================================================
# API Token Models
# ============================================================================


class TokenCreateRequest(BaseModel):
    """POST /tokens request body."""

    name: str | None = None


class TokenRevokeRequest(BaseModel):
    """DELETE /tokens request body."""

    id: UUID | None = None


class TokenResponse(BaseModel):
    """API token metadata (never includes the secret)."""

    id: UUID
    name: str
    is_active: bool
    created_at: datetime


class TokenListResponse(BaseModel):
    """GET /tokens response."""

    tokens: list[TokenResponse]


class TokenCreateResponse(BaseModel):
    """POST /tokens response - the only time the raw token is returned."""

    token: str = Field(..., description="SAVE THIS - It won't be shown again")
    id: UUID
    name: str
    created_at: datetime
    warning: str = "Store this token securely. It will not be shown again."


class TokenRevokeResponse(BaseModel):
    """DELETE /tokens response."""

    message: str = "Token revoked."
    id: UUID


# ============================================================================
# Health Models
# ============================================================================


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str
    service: str
    version: str
    database: str
