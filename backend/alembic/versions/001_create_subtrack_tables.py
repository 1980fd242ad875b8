"""Create SubTrack tables

Revision ID: 001
Revises: None
Create Date: 2025-01-10 00:00:00.000000+00:00

What:  Creates the nine `sub_*` tables: profiles, vendors, subscriptions,
       subscription services, invoices, invoice line items, employees,
       devices and assignments.
How:   Same columns as sql/phase6_new_schema.sql; use one or the other on a
       given database, not both.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
        primary_key=True,
    )


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.TIMESTAMP(timezone=True),
                  server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True),
                  server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def _money(name: str, default: str = "0") -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), nullable=False, server_default=sa.text(default))


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "sub_profiles",
        # Equals the auth provider's user id, so no server default
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False, primary_key=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'user'"),
                  comment="user | admin | super_admin"),
        *_timestamps(),
    )

    op.create_table(
        "sub_vendors",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("website", sa.String(500), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        *_timestamps(),
    )
    # Invoice ingestion looks vendors up by lower(name)
    op.create_index("idx_sub_vendors_name_lower", "sub_vendors", [sa.text("lower(name)")])

    op.create_table(
        "sub_subscriptions",
        _id(),
        sa.Column("vendor_id", postgresql.UUID(as_uuid=True),
                  sa.ForeignKey("sub_vendors.id"), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("logo", sa.Text(), nullable=True),
        sa.Column("renewal_date", sa.Date(), nullable=True),
        _money("cost"),
        sa.Column("billing_cycle", sa.String(20), nullable=False, server_default=sa.text("'Monthly'")),
        sa.Column("payment_method", sa.String(20), nullable=False, server_default=sa.text("'Credit Card'")),
        sa.Column("payment_details", sa.String(255), nullable=True),
        sa.Column("auto_renewal", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("owner_name", sa.String(255), nullable=False, server_default=sa.text("'Unknown'")),
        sa.Column("owner_email", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("seats_total", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("seats_used", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'Active'")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("agreement_type", sa.String(50), nullable=False,
                  server_default=sa.text("'Subscription'")),
        sa.Column("line_items", postgresql.JSONB(), nullable=False,
                  server_default=sa.text("'[]'::jsonb"),
                  comment="Array of granular cost items (e.g. AWS S3, EC2)"),
        *_timestamps(),
    )
    op.create_index("idx_sub_subscriptions_vendor", "sub_subscriptions", ["vendor_id"])
    op.create_index("idx_sub_subscriptions_renewal", "sub_subscriptions", ["renewal_date"])

    op.create_table(
        "sub_subscription_services",
        _id(),
        sa.Column("subscription_id", postgresql.UUID(as_uuid=True),
                  sa.ForeignKey("sub_subscriptions.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'Active'")),
        _money("current_quantity", "1"),
        _money("current_unit_price"),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'USD'")),
        *_timestamps(),
    )
    op.create_index("idx_sub_services_subscription", "sub_subscription_services", ["subscription_id"])

    op.create_table(
        "sub_invoices",
        _id(),
        sa.Column("vendor_id", postgresql.UUID(as_uuid=True),
                  sa.ForeignKey("sub_vendors.id"), nullable=True),
        sa.Column("subscription_id", postgresql.UUID(as_uuid=True),
                  sa.ForeignKey("sub_subscriptions.id"), nullable=True),
        sa.Column("invoice_number", sa.String(100), nullable=True, unique=True),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        _money("total_amount"),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'USD'")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'Pending'")),
        sa.Column("file_url", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_sub_invoices_subscription", "sub_invoices", ["subscription_id"])
    op.create_index("idx_sub_invoices_date", "sub_invoices", [sa.text("invoice_date DESC")])

    op.create_table(
        "sub_invoice_line_items",
        _id(),
        sa.Column("invoice_id", postgresql.UUID(as_uuid=True),
                  sa.ForeignKey("sub_invoices.id"), nullable=False),
        sa.Column("service_id", postgresql.UUID(as_uuid=True),
                  sa.ForeignKey("sub_subscription_services.id"), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        _money("quantity", "1"),
        _money("unit_price"),
        _money("total_amount"),
        sa.Column("period_start", sa.Date(), nullable=True),
        sa.Column("period_end", sa.Date(), nullable=True),
        sa.Column("billing_month_override", sa.Date(), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_sub_line_items_invoice", "sub_invoice_line_items", ["invoice_id"])
    op.create_index("idx_sub_line_items_service", "sub_invoice_line_items", ["service_id"])

    op.create_table(
        "sub_employees",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("department", sa.String(100), nullable=True),
        sa.Column("job_title", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'Active'")),
        *_timestamps(),
    )

    op.create_table(
        "sub_devices",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("model", sa.String(255), nullable=True),
        sa.Column("serial_number", sa.String(255), nullable=True),
        sa.Column("assigned_to", postgresql.UUID(as_uuid=True),
                  sa.ForeignKey("sub_employees.id"), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "sub_assignments",
        _id(),
        sa.Column("subscription_id", postgresql.UUID(as_uuid=True),
                  sa.ForeignKey("sub_subscriptions.id"), nullable=False),
        sa.Column("employee_id", postgresql.UUID(as_uuid=True),
                  sa.ForeignKey("sub_employees.id"), nullable=True),
        sa.Column("device_id", postgresql.UUID(as_uuid=True),
                  sa.ForeignKey("sub_devices.id"), nullable=True),
        sa.Column("assigned_date", sa.TIMESTAMP(timezone=True),
                  server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("idx_sub_assignments_subscription", "sub_assignments", ["subscription_id"])


def downgrade() -> None:
    """Drop every table, children first. Destroys all data."""
    op.drop_table("sub_assignments")
    op.drop_table("sub_devices")
    op.drop_table("sub_employees")
    op.drop_table("sub_invoice_line_items")
    op.drop_table("sub_invoices")
    op.drop_table("sub_subscription_services")
    op.drop_table("sub_subscriptions")
    op.drop_table("sub_vendors")
    op.drop_table("sub_profiles")
