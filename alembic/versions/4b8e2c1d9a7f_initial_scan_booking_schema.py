"""Initial schema for scan appointment booking.

Revision ID: 4b8e2c1d9a7f
Revises:
Create Date: 2026-10-18 09:12:41.208113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4b8e2c1d9a7f"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CONFIRMED_ONLY = sa.text("status = 'confirmed'")
CONFIRMED_WITH_USER = sa.text("status = 'confirmed' AND user_id IS NOT NULL")


def upgrade() -> None:
    op.create_table(
        "scan_types",
        sa.Column("scan_type_id", sa.String(length=26), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("name_key", sa.String(length=100), nullable=False, unique=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "duration_minutes >= 5 AND duration_minutes <= 300",
            name="ck_scan_types_duration_range",
        ),
    )
    op.create_index("ix_scan_types_name", "scan_types", ["name"])

    op.create_table(
        "scans",
        sa.Column("scan_id", sa.String(length=26), primary_key=True),
        sa.Column("scan_type", sa.String(length=100), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("total_slots", sa.Integer(), nullable=False),
        sa.Column("booked_slots", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text()),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("scan_type", "date", "start_time", name="uq_scans_type_date_start"),
        sa.CheckConstraint("total_slots >= 1", name="ck_scans_total_slots_positive"),
        sa.CheckConstraint("booked_slots >= 0", name="ck_scans_booked_slots_non_negative"),
        sa.CheckConstraint("duration_minutes > 0", name="ck_scans_duration_positive"),
    )
    op.create_index("ix_scans_scan_type", "scans", ["scan_type"])
    op.create_index("ix_scans_date_start", "scans", ["date", "start_time"])

    op.create_table(
        "bookings",
        sa.Column("booking_id", sa.String(length=26), primary_key=True),
        sa.Column("scan_id", sa.String(length=26), sa.ForeignKey("scans.scan_id", ondelete="SET NULL")),
        sa.Column("scan_type", sa.String(length=100), nullable=False),
        sa.Column("scan_date", sa.Date(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("slot_number", sa.Integer(), nullable=False),
        sa.Column("slot_start_time", sa.String(length=5), nullable=False),
        sa.Column("slot_end_time", sa.String(length=5), nullable=False),
        sa.Column("patient_name", sa.String(length=100), nullable=False),
        sa.Column("patient_phone", sa.String(length=32), nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("user_id", sa.String(length=64)),
        sa.Column("booker_name", sa.String(length=100)),
        sa.Column("booker_user_id", sa.String(length=64)),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="confirmed"),
        sa.Column("booked_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "uq_bookings_scan_slot_confirmed",
        "bookings",
        ["scan_id", "slot_number"],
        unique=True,
        sqlite_where=CONFIRMED_ONLY,
        postgresql_where=CONFIRMED_ONLY,
    )
    op.create_index(
        "uq_bookings_scan_user_confirmed",
        "bookings",
        ["scan_id", "user_id"],
        unique=True,
        sqlite_where=CONFIRMED_WITH_USER,
        postgresql_where=CONFIRMED_WITH_USER,
    )
    op.create_index("ix_bookings_scan_date", "bookings", ["scan_date"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_patient_phone", "bookings", ["patient_phone"])


def downgrade() -> None:
    op.drop_index("ix_bookings_patient_phone", table_name="bookings")
    op.drop_index("ix_bookings_user_id", table_name="bookings")
    op.drop_index("ix_bookings_scan_date", table_name="bookings")
    op.drop_index("uq_bookings_scan_user_confirmed", table_name="bookings")
    op.drop_index("uq_bookings_scan_slot_confirmed", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_scans_date_start", table_name="scans")
    op.drop_index("ix_scans_scan_type", table_name="scans")
    op.drop_table("scans")

    op.drop_index("ix_scan_types_name", table_name="scan_types")
    op.drop_table("scan_types")
