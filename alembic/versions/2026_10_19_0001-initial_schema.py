"""initial schema

Revision ID: 2026_10_19_0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates:
- users: sign-in accounts with role
- brands: brand registry
- sales: submissions with moderation status and engagement counters
- api_tokens: hashed machine credentials
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "2026_10_19_0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            nullable=False,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=True, server_default="editor"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role IS NULL OR role IN ('admin', 'editor')", name="ck_users_role"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("idx_users_role", "users", ["role"])

    op.create_table(
        "brands",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            nullable=False,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("website_url", sa.String(length=1024), nullable=True),
        sa.Column("category", sa.String(length=255), nullable=True),
        sa.Column("logo_url", sa.String(length=1024), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.CheckConstraint("length(trim(name)) > 0", name="ck_brands_name_not_blank"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_brands_created_at", "brands", ["created_at"])
    op.create_index("idx_brands_name_lower", "brands", [sa.text("lower(name)")])

    op.create_table(
        "sales",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            nullable=False,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("brand_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("sale_type", sa.String(length=20), nullable=False),
        sa.Column("discount_value", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("discount_mode", sa.String(length=10), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("sale_url", sa.String(length=1024), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("favorite_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.CheckConstraint(
            "sale_type IN ('percentage', 'fixed', 'bogo', 'b2g1', 'deal')",
            name="ck_sales_sale_type",
        ),
        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="ck_sales_status"),
        sa.CheckConstraint(
            "discount_mode IS NULL OR discount_mode IN ('upto', 'flat')",
            name="ck_sales_discount_mode",
        ),
        sa.CheckConstraint(
            "discount_value IS NULL OR discount_value >= 0",
            name="ck_sales_discount_non_negative",
        ),
        sa.CheckConstraint("start_date <= end_date", name="ck_sales_date_order"),
        sa.CheckConstraint("view_count >= 0", name="ck_sales_view_count_non_negative"),
        sa.CheckConstraint("favorite_count >= 0", name="ck_sales_favorite_count_non_negative"),
        sa.ForeignKeyConstraint(["brand_id"], ["brands.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sales_brand_id", "sales", ["brand_id"])
    op.create_index("ix_sales_created_by", "sales", ["created_by"])
    op.create_index("idx_sales_brand_end_date", "sales", ["brand_id", "end_date"])
    op.create_index("idx_sales_status", "sales", ["status"])

    op.create_table(
        "api_tokens",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            nullable=False,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token_hash"),
    )
    op.create_index("ix_api_tokens_user_id", "api_tokens", ["user_id"])
    op.create_index(
        "idx_api_tokens_hash_active",
        "api_tokens",
        ["token_hash"],
        postgresql_where=sa.text("is_active"),
    )


def downgrade() -> None:
    op.drop_index("idx_api_tokens_hash_active", table_name="api_tokens")
    op.drop_index("ix_api_tokens_user_id", table_name="api_tokens")
    op.drop_table("api_tokens")

    op.drop_index("idx_sales_status", table_name="sales")
    op.drop_index("idx_sales_brand_end_date", table_name="sales")
    op.drop_index("ix_sales_created_by", table_name="sales")
    op.drop_index("ix_sales_brand_id", table_name="sales")
    op.drop_table("sales")

    op.drop_index("idx_brands_name_lower", table_name="brands")
    op.drop_index("idx_brands_created_at", table_name="brands")
    op.drop_table("brands")

    op.drop_index("idx_users_role", table_name="users")
    op.drop_table("users")
