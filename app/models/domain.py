"""
Domain Models - Internal business logic models using dataclasses.

All data structures are strongly typed immutable dataclasses.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any
from uuid import UUID

from app.models.api import (
    AuthType,
    DiscountMode,
    ListingSort,
    Role,
    SaleStatus,
    SaleType,
    SaleWindow,
)


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a workflow operation.

    Resolved once per request and passed explicitly into every service call.
    """

    user_id: UUID
    email: str
    role: Role
    auth_type: AuthType = AuthType.SESSION
    token_id: UUID | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def owns(self, created_by: UUID) -> bool:
        return self.user_id == created_by


@dataclass(frozen=True)
class ApiTokenIdentity:
    """Service identity resolved from a long-lived API token."""

    user_id: UUID
    token_id: UUID


@dataclass(frozen=True)
class SaleTypeInfo:
    """Presentation and validation traits of a sale type."""

    value: SaleType
    label: str
    has_value: bool = False
    has_notes: bool = False
    unit: str | None = None
    default_mode: DiscountMode | None = None


@dataclass(frozen=True)
class SaleFields:
    """Raw, unvalidated sale fields as submitted (or merged for an update)."""

    brand_id: Any = None
    title: Any = None
    sale_type: Any = None
    discount_value: Any = None
    discount_mode: Any = None
    notes: Any = None
    start_date: Any = None
    end_date: Any = None
    sale_url: Any = None


@dataclass(frozen=True)
class SaleSubmission:
    """Validated and normalised sale fields, ready to persist."""

    brand_id: str
    title: str
    sale_type: SaleType
    discount_value: float | None
    discount_mode: DiscountMode | None
    notes: str | None
    start_date: date
    end_date: date
    sale_url: str | None

    def __post_init__(self) -> None:
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")


@dataclass(frozen=True)
class SaleData:
    """Immutable sale snapshot read from the store."""

    sale_id: UUID
    brand_id: UUID
    brand_name: str | None
    brand_logo_url: str | None
    title: str
    sale_type: SaleType
    discount_value: float | None
    discount_mode: DiscountMode | None
    notes: str | None
    start_date: date
    end_date: date
    sale_url: str | None
    status: SaleStatus
    created_by: UUID
    view_count: int
    favorite_count: int
    created_at: datetime

    def is_active(self, today: date) -> bool:
        """Derived, never stored: the date range contains today."""
        return self.start_date <= today <= self.end_date

    def is_expired(self, today: date) -> bool:
        return self.end_date < today


@dataclass(frozen=True)
class BrandInput:
    """Validated and trimmed brand fields."""

    name: str
    website_url: str | None = None
    category: str | None = None
    logo_url: str | None = None


@dataclass(frozen=True)
class BrandData:
    """Immutable brand snapshot."""

    brand_id: UUID
    name: str
    website_url: str | None
    category: str | None
    logo_url: str | None
    created_at: datetime


@dataclass(frozen=True)
class UserData:
    """Immutable user snapshot (never carries the password hash)."""

    user_id: UUID
    email: str
    role: Role
    is_active: bool
    created_at: datetime
    last_login_at: datetime | None


@dataclass(frozen=True)
class ListingFilters:
    """Filter and sort configuration for a sale listing."""

    brand_id: UUID | None = None
    sale_type: SaleType | None = None
    window: SaleWindow | None = None
    sort: ListingSort = ListingSort.DISCOUNT_HIGH
