"""
Database Models - SQLAlchemy ORM models with strict typing.

All columns use Mapped[] type annotations.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class User(Base):
    """
    ORM model for users table.

    Accounts that can sign in. Role is authoritative here and re-read per request.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)

    # Identity (email stored lower-cased)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    # Role - NULL resolves to editor
    role: Mapped[str | None] = mapped_column(String(20), nullable=True, default="editor")

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("role IS NULL OR role IN ('admin', 'editor')", name="ck_users_role"),
        Index("idx_users_role", "role"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class Brand(Base):
    """
    ORM model for brands table.

    Deleting a brand cascades to its sales (database-level ON DELETE CASCADE).
    """

    __tablename__ = "brands"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    website_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    sales: Mapped[list["Sale"]] = relationship(
        "Sale",
        back_populates="brand",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("length(trim(name)) > 0", name="ck_brands_name_not_blank"),
        Index("idx_brands_created_at", "created_at"),
        Index("idx_brands_name_lower", text("lower(name)")),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Brand(id={self.id}, name={self.name})>"


class Sale(Base):
    """
    ORM model for sales table.

    Whether a sale is active is derived from its dates at read time and never stored.
    """

    __tablename__ = "sales"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)

    brand_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("brands.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    brand: Mapped["Brand"] = relationship("Brand", back_populates="sales", lazy="selectin")

    # Offer
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    sale_type: Mapped[str] = mapped_column(String(20), nullable=False)
    discount_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    discount_mode: Mapped[str | None] = mapped_column(String(10), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    sale_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # Calendar window
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Moderation
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    created_by: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )

    # Engagement counters - only changed through atomic increments
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    favorite_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint(
            "sale_type IN ('percentage', 'fixed', 'bogo', 'b2g1', 'deal')",
            name="ck_sales_sale_type",
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="ck_sales_status"
        ),
        CheckConstraint(
            "discount_mode IS NULL OR discount_mode IN ('upto', 'flat')",
            name="ck_sales_discount_mode",
        ),
        CheckConstraint(
            "discount_value IS NULL OR discount_value >= 0",
            name="ck_sales_discount_non_negative",
        ),
        CheckConstraint("start_date <= end_date", name="ck_sales_date_order"),
        CheckConstraint("view_count >= 0", name="ck_sales_view_count_non_negative"),
        CheckConstraint("favorite_count >= 0", name="ck_sales_favorite_count_non_negative"),
        Index("idx_sales_brand_end_date", "brand_id", "end_date"),
        Index("idx_sales_status", "status"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Sale(id={self.id}, brand_id={self.brand_id}, "
            f"type={self.sale_type}, status={self.status})>"
        )


class ApiToken(Base):
    """
    ORM model for api_tokens table.

    Stores only a one-way digest of the raw token. Tokens are soft-revoked, never deleted.
    """

    __tablename__ = "api_tokens"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)

    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # SHA-256 hex digest of the raw token
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    __table_args__ = (
        Index("idx_api_tokens_hash_active", "token_hash", postgresql_where=text("is_active")),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<ApiToken(id={self.id}, user_id={self.user_id}, active={self.is_active})>"
