# backend/alembic/versions/001_scheduling_core.py
"""Scheduling core: businesses, staff, services, bookings, activity log, wallet ledger

Revision ID: 001_scheduling_core
Revises:
Create Date: 2026-09-01 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_scheduling_core"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create scheduling tables."""
    print("Creating scheduling core tables...")

    op.create_table(
        "businesses",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("working_hours", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_cleanup_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "staff",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("business_id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("working_hours", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_staff_business_id", "staff", ["business_id"])

    op.create_table(
        "staff_availabilities",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("staff_id", sa.String(26), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["staff_id"], ["staff.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "type IN ('vacation', 'sick', 'blocked', 'available')",
            name="ck_staff_availabilities_type",
        ),
    )
    op.create_index(
        "idx_staff_availabilities_staff_date", "staff_availabilities", ["staff_id", "date"]
    )

    op.create_table(
        "services",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("business_id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("min_advance_hours", sa.Integer(), nullable=True),
        sa.Column("advance_booking_days", sa.Integer(), nullable=True),
        sa.Column("cancellation_hours", sa.Integer(), nullable=True),
        sa.Column("max_bookings_per_slot", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("slot_interval_minutes", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("duration_minutes > 0", name="check_service_duration_positive"),
        sa.CheckConstraint("max_bookings_per_slot >= 1", name="check_service_capacity_positive"),
        sa.CheckConstraint("price >= 0", name="check_service_price_non_negative"),
    )
    op.create_index("ix_services_business_id", "services", ["business_id"])

    op.create_table(
        "service_staff",
        sa.Column("service_id", sa.String(26), nullable=False),
        sa.Column("staff_id", sa.String(26), nullable=False),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["staff_id"], ["staff.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("service_id", "staff_id"),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("booking_ref", sa.String(16), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("business_id", sa.String(26), nullable=False),
        sa.Column("service_id", sa.String(26), nullable=False),
        sa.Column("staff_id", sa.String(26), nullable=True),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column(
            "payment_intent_id",
            sa.String(255),
            nullable=True,
            comment="Held payment authorization",
        ),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_by", sa.String(20), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"]),
        sa.ForeignKeyConstraint(["staff_id"], ["staff.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("booking_ref"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled', 'no_show')",
            name="ck_bookings_status",
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'partially_paid', 'refunded')",
            name="ck_bookings_payment_status",
        ),
        sa.CheckConstraint("amount >= 0", name="check_booking_amount_non_negative"),
        sa.CheckConstraint("start_time < end_time", name="check_booking_time_order"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_booking_date", "bookings", ["booking_date"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("idx_bookings_business_date", "bookings", ["business_id", "booking_date"])
    op.create_index("idx_bookings_staff_date", "bookings", ["staff_id", "booking_date"])
    op.create_index(
        "idx_bookings_expiration", "bookings", ["status", "payment_status", "created_at"]
    )

    op.create_table(
        "booking_activity_logs",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("booking_id", sa.String(26), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("performed_by", sa.String(30), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_booking_activity_logs_booking", "booking_activity_logs", ["booking_id", "created_at"]
    )

    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(10, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("reference_type", sa.String(20), nullable=True),
        sa.Column("reference_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("type IN ('credit', 'debit')", name="ck_wallet_transactions_type"),
        sa.CheckConstraint("amount > 0", name="ck_wallet_transactions_amount_positive"),
    )
    op.create_index(
        "idx_wallet_transactions_user_created_at",
        "wallet_transactions",
        ["user_id", "created_at"],
    )
    op.create_index(
        "idx_wallet_transactions_reference",
        "wallet_transactions",
        ["reference_type", "reference_id"],
    )

    print("Scheduling core tables created")


def downgrade() -> None:
    """Drop scheduling tables."""
    print("Dropping scheduling core tables...")

    op.drop_index("idx_wallet_transactions_reference", table_name="wallet_transactions")
    op.drop_index("idx_wallet_transactions_user_created_at", table_name="wallet_transactions")
    op.drop_table("wallet_transactions")

    op.drop_index("idx_booking_activity_logs_booking", table_name="booking_activity_logs")
    op.drop_table("booking_activity_logs")

    op.drop_index("idx_bookings_expiration", table_name="bookings")
    op.drop_index("idx_bookings_staff_date", table_name="bookings")
    op.drop_index("idx_bookings_business_date", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_booking_date", table_name="bookings")
    op.drop_index("ix_bookings_user_id", table_name="bookings")
    op.drop_index("ix_bookings_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_table("service_staff")
    op.drop_index("ix_services_business_id", table_name="services")
    op.drop_table("services")

    op.drop_index("idx_staff_availabilities_staff_date", table_name="staff_availabilities")
    op.drop_table("staff_availabilities")
    op.drop_index("ix_staff_business_id", table_name="staff")
    op.drop_table("staff")
    op.drop_table("businesses")
