"""Initial schema: usage, subscriptions, CRM, saved searches, GenieNet.

Each table is created only if missing, because app startup also runs
Base.metadata.create_all before migrations.

Revision ID: 001_initial
Revises:
Create Date: 2026-01-28

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _has_table(name: str) -> bool:
    return sa.inspect(op.get_bind()).has_table(name)


def upgrade() -> None:
    if not _has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("email", sa.String(), nullable=True),
            sa.Column("first_name", sa.String(), nullable=True),
            sa.Column("last_name", sa.String(), nullable=True),
            sa.Column("subscription_tier", sa.String(), nullable=False, server_default="free"),
            sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("notify_usage", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_users_id", "users", ["id"])
        op.create_index("ix_users_email", "users", ["email"], unique=True)

    if not _has_table("subscriptions"):
        op.create_table(
            "subscriptions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
            sa.Column("stripe_subscription_id", sa.String(), nullable=True, unique=True),
            sa.Column("tier", sa.String(), nullable=False, server_default="free"),
            sa.Column("status", sa.String(), nullable=False),
            sa.Column("current_period_end", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )

    if not _has_table("usage_log"):
        op.create_table(
            "usage_log",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(), nullable=False),
            sa.Column("feature", sa.String(), nullable=False),
            sa.Column("metadata", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_usage_log_user_feature_created", "usage_log", ["user_id", "feature", "created_at"])

    if not _has_table("crm_leads"):
        op.create_table(
            "crm_leads",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("user_id", sa.String(), nullable=False),
            sa.Column("property_id", sa.String(), nullable=True),
            sa.Column("address", sa.String(), nullable=False),
            sa.Column("normalized_address", sa.String(), nullable=False),
            sa.Column("city", sa.String(), nullable=False),
            sa.Column("state", sa.String(), nullable=True),
            sa.Column("zipcode", sa.String(), nullable=True),
            sa.Column("price", sa.Integer(), nullable=True),
            sa.Column("property_type", sa.String(), nullable=True),
            sa.Column("days_on_market", sa.Integer(), nullable=True),
            sa.Column("source", sa.String(), nullable=False, server_default="lead-genie"),
            sa.Column("status", sa.String(), nullable=False, server_default="new"),
            sa.Column("lead_notes", sa.Text(), nullable=True),
            sa.Column("listing_url", sa.String(), nullable=True),
            sa.Column("keywords_matched", sa.JSON(), nullable=True),
            sa.Column("enrichment", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("user_id", "property_id", name="uq_crm_leads_user_property"),
        )
        op.create_index("ix_crm_leads_user_id", "crm_leads", ["user_id"])
        op.create_index("ix_crm_leads_normalized_address", "crm_leads", ["normalized_address"])
        op.create_index(
            "uq_crm_leads_user_address",
            "crm_leads",
            ["user_id", "normalized_address"],
            unique=True,
            postgresql_where=sa.text("property_id IS NULL"),
            sqlite_where=sa.text("property_id IS NULL"),
        )

    if not _has_table("saved_searches"):
        op.create_table(
            "saved_searches",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("city", sa.String(), nullable=False),
            sa.Column("state", sa.String(), nullable=True),
            sa.Column("sources", sa.JSON(), nullable=False),
            sa.Column("keywords", sa.String(), nullable=True),
            sa.Column("days_on_market", sa.Integer(), nullable=True),
            sa.Column("days_on_market_option", sa.String(), nullable=True, server_default="less"),
            sa.Column("price_min", sa.Integer(), nullable=True),
            sa.Column("price_max", sa.Integer(), nullable=True),
            sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("email_alert", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_saved_searches_user_id", "saved_searches", ["user_id"])

    if not _has_table("genienet_deals"):
        op.create_table(
            "genienet_deals",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(), nullable=False),
            sa.Column("address", sa.String(), nullable=False),
            sa.Column("normalized_address", sa.String(), nullable=False, unique=True),
            sa.Column("zip_code", sa.String(), nullable=True),
            sa.Column("state", sa.String(), nullable=True),
            sa.Column("property_type", sa.String(), nullable=True),
            sa.Column("purchase_price", sa.Numeric(14, 2), nullable=True),
            sa.Column("arv", sa.Numeric(14, 2), nullable=True),
            sa.Column("rehab_cost", sa.Numeric(14, 2), nullable=True),
            sa.Column("monthly_rent", sa.Numeric(14, 2), nullable=True),
            sa.Column("noi", sa.Numeric(14, 2), nullable=True),
            sa.Column("deal_score", sa.Integer(), nullable=False, server_default="50"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_genienet_deals_zip_code", "genienet_deals", ["zip_code"])
        op.create_index("ix_genienet_deals_state", "genienet_deals", ["state"])

    if not _has_table("genienet_waitlist"):
        op.create_table(
            "genienet_waitlist",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(), nullable=False, unique=True),
            sa.Column("name", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )


def downgrade() -> None:
    for table in (
        "genienet_waitlist",
        "genienet_deals",
        "saved_searches",
        "crm_leads",
        "usage_log",
        "subscriptions",
        "users",
    ):
        if _has_table(table):
            op.drop_table(table)
