"""Initial schema: users, roles, profiles, slots, bookings and waitlist entries.

Revision ID: 001
Revises: None
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "user_roles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "role", name="uq_user_role"),
        sa.CheckConstraint("role IN ('admin', 'moderator', 'user')", name="check_user_role"),
    )
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])

    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
        ),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("venmo_username", sa.String(100), nullable=True),
        sa.Column("zelle_identifier", sa.String(255), nullable=True),
        sa.Column("payment_sharing_consent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("webhook_url", sa.String(1000), nullable=True),
        *_timestamps(),
    )

    # Slots table: the capacity ledger lives in total_tables / booked_tables
    op.create_table(
        "slots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("total_tables", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("booked_tables", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("booking_mode", sa.String(20), nullable=False, server_default="fcfs"),
        sa.Column("waitlist_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_waitlist_position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("total_tables > 0", name="check_slot_total_tables_positive"),
        sa.CheckConstraint("booked_tables >= 0", name="check_slot_booked_tables_non_negative"),
        sa.CheckConstraint("booked_tables <= total_tables", name="check_slot_booked_lte_total"),
        sa.CheckConstraint("booking_mode IN ('fcfs', 'lottery')", name="check_slot_booking_mode"),
        sa.UniqueConstraint("owner_id", "date", "start_time", name="uq_slot_owner_date_time"),
    )
    op.create_index("ix_slots_id", "slots", ["id"])
    op.create_index("ix_slots_owner_id", "slots", ["owner_id"])
    # Listings are always filtered by date and ordered by start time
    op.create_index("ix_slots_date_time", "slots", ["date", "start_time"])

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("slot_id", sa.Integer(), sa.ForeignKey("slots.id", ondelete="SET NULL"), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("party_size", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("dietary_restrictions", sa.String(500), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="confirmed"),
        *_timestamps(),
        sa.CheckConstraint("party_size > 0", name="check_booking_party_size_positive"),
        sa.CheckConstraint(
            "status IN ('pending_lottery', 'confirmed', 'cancelled', 'completed')",
            name="check_booking_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_slot_id", "bookings", ["slot_id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_slot_status", "bookings", ["slot_id", "status"])
    # PARTIAL UNIQUE INDEXES: one active booking per requester per slot.
    # Cancelled rows stay as history and do not count.
    op.create_index(
        "uq_booking_active_user",
        "bookings",
        ["slot_id", "user_id"],
        unique=True,
        postgresql_where=sa.text("status != 'cancelled'"),
        sqlite_where=sa.text("status != 'cancelled'"),
    )
    op.create_index(
        "uq_booking_active_guest_email",
        "bookings",
        ["slot_id", "customer_email"],
        unique=True,
        postgresql_where=sa.text("status != 'cancelled' AND user_id IS NULL"),
        sqlite_where=sa.text("status != 'cancelled' AND user_id IS NULL"),
    )

    # Waitlist entries
    op.create_table(
        "waitlist_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("slot_id", sa.Integer(), sa.ForeignKey("slots.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("party_size", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("notified_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("slot_id", "position", name="uq_waitlist_slot_position"),
        sa.UniqueConstraint("slot_id", "user_id", name="uq_waitlist_slot_user"),
        sa.CheckConstraint("position > 0", name="check_waitlist_position_positive"),
        sa.CheckConstraint("party_size > 0", name="check_waitlist_party_size_positive"),
    )
    op.create_index("ix_waitlist_entries_id", "waitlist_entries", ["id"])
    op.create_index("ix_waitlist_entries_slot_id", "waitlist_entries", ["slot_id"])
    op.create_index("ix_waitlist_entries_user_id", "waitlist_entries", ["user_id"])


def downgrade() -> None:
    op.drop_table("waitlist_entries")
    op.drop_table("bookings")
    op.drop_table("slots")
    op.drop_table("user_profiles")
    op.drop_table("user_roles")
    op.drop_table("users")
