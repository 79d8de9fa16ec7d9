"""create users, projects, bids and audit log

Revision ID: 0001_marketplace_core
Revises:
Create Date: 2026-10-18 09:12:31.104522

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_marketplace_core'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _ts(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("now()"),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=256), nullable=False, server_default=sa.text("''")),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("role", sa.String(length=32), nullable=False, server_default=sa.text("'User'")),
        sa.Column("profile_picture", sa.String(length=1024), nullable=True),
        sa.Column("company_name", sa.String(length=256), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(length=256), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("category_id", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default=sa.text("'Draft'")),
        sa.Column("views", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        # award
        sa.Column("assigned_merchant_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("awarded_bid_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("agreed_price", sa.Numeric(14, 2), nullable=True),
        sa.Column("accepted_days", sa.Integer(), nullable=True),
        _ts("execution_started_at", nullable=True),
        _ts("execution_due_at", nullable=True),
        # delivery
        _ts("delivered_at", nullable=True),
        sa.Column("delivery_note", sa.Text(), nullable=True),
        sa.Column(
            "delivery_files",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        _ts("completed_at", nullable=True),
        sa.Column("platform_commission_pct", sa.Float(), nullable=True),
        sa.Column("platform_commission", sa.Numeric(14, 2), nullable=True),
        sa.Column("merchant_earnings", sa.Numeric(14, 2), nullable=True),
        # rating
        sa.Column("rating_value", sa.Integer(), nullable=True),
        sa.Column("rating_comment", sa.Text(), nullable=True),
        sa.Column("rating_by", postgresql.UUID(as_uuid=True), nullable=True),
        _ts("rated_at", nullable=True),
        # commercial
        sa.Column("ptype", sa.String(length=128), nullable=True),
        sa.Column("psubtype", sa.String(length=128), nullable=True),
        sa.Column("type", sa.String(length=128), nullable=True),
        sa.Column("material", sa.String(length=128), nullable=True),
        sa.Column("color", sa.String(length=64), nullable=True),
        sa.Column("width", sa.Float(), nullable=True),
        sa.Column("height", sa.Float(), nullable=True),
        sa.Column("length", sa.Float(), nullable=True),
        sa.Column("quantity", sa.Float(), nullable=True),
        sa.Column("days", sa.Integer(), nullable=True),
        sa.Column("price_per_meter", sa.Float(), nullable=True),
        sa.Column("total", sa.Float(), nullable=True),
        sa.Column("selected_acc", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("accessories", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column(
            "measurement_mode",
            sa.String(length=32),
            nullable=False,
            server_default=sa.text("'area_wh'"),
        ),
        sa.Column("is_custom_product", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("custom_product_details", postgresql.JSONB(), nullable=True),
        sa.Column("items", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_projects_customer_id", "projects", ["customer_id"])
    op.create_index("ix_projects_assigned_merchant_id", "projects", ["assigned_merchant_id"])
    op.create_index("ix_projects_status_created", "projects", ["status", "created_at"])

    op.create_table(
        "bids",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("merchant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        sa.Column("days", sa.Integer(), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'pending'")),
        _ts("created_at"),
        _ts("updated_at"),
        sa.UniqueConstraint("project_id", "merchant_id", name="uq_bid_project_merchant"),
    )
    op.create_index("ix_bids_project_created", "bids", ["project_id", "created_at"])
    op.create_index("ix_bids_merchant_created", "bids", ["merchant_id", "created_at"])

    op.create_table(
        "audit_log_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _ts("created_at"),
        sa.Column("request_id", sa.String(length=128), nullable=False),
        sa.Column("route", sa.String(length=256), nullable=False),
        sa.Column("method", sa.String(length=16), nullable=False),
        sa.Column("actor_user_id", sa.String(length=64), nullable=False),
        sa.Column("actor_role", sa.String(length=32), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action", sa.String(length=96), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default=sa.text("'ok'")),
        sa.Column("payload_hash", sa.String(length=128), nullable=False),
        sa.Column("payload_summary_json", postgresql.JSONB(), nullable=False),
        sa.Column("ref_id", sa.String(length=128), nullable=True),
    )
    op.create_index("ix_audit_log_records_request_id", "audit_log_records", ["request_id"])
    op.create_index("ix_audit_project", "audit_log_records", ["project_id"])
    op.create_index("ix_audit_action", "audit_log_records", ["action"])
    op.create_index("ix_audit_created", "audit_log_records", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_audit_created", table_name="audit_log_records")
    op.drop_index("ix_audit_action", table_name="audit_log_records")
    op.drop_index("ix_audit_project", table_name="audit_log_records")
    op.drop_index("ix_audit_log_records_request_id", table_name="audit_log_records")
    op.drop_table("audit_log_records")

    op.drop_index("ix_bids_merchant_created", table_name="bids")
    op.drop_index("ix_bids_project_created", table_name="bids")
    op.drop_table("bids")

    op.drop_index("ix_projects_status_created", table_name="projects")
    op.drop_index("ix_projects_assigned_merchant_id", table_name="projects")
    op.drop_index("ix_projects_customer_id", table_name="projects")
    op.drop_table("projects")

    op.drop_index("ix_users_role", table_name="users")
    op.drop_table("users")
