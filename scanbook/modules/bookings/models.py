"""Booking ledger ORM model."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scanbook.core.database import Base
from scanbook.shared.enums import BookingStatus, enum_values
from scanbook.shared.models import TimestampMixin, ulid_primary_key
from scanbook.shared.ulid import ULID_LENGTH

if TYPE_CHECKING:  # pragma: no cover
    from scanbook.modules.scans.models import Scan

CONFIRMED_ONLY = text("status = 'confirmed'")
CONFIRMED_WITH_USER = text("status = 'confirmed' AND user_id IS NOT NULL")

SLOT_INDEX_NAME = "uq_bookings_scan_slot_confirmed"
USER_INDEX_NAME = "uq_bookings_scan_user_confirmed"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"
    __table_args__ = (
        # At most one confirmed booking per slot of a scan block.
        Index(
            SLOT_INDEX_NAME,
            "scan_id",
            "slot_number",
            unique=True,
            sqlite_where=CONFIRMED_ONLY,
            postgresql_where=CONFIRMED_ONLY,
        ),
        Index(
            USER_INDEX_NAME,
            "scan_id",
            "user_id",
            unique=True,
            sqlite_where=CONFIRMED_WITH_USER,
            postgresql_where=CONFIRMED_WITH_USER,
        ),
        Index("ix_bookings_scan_date", "scan_date"),
        Index("ix_bookings_user_id", "user_id"),
        Index("ix_bookings_patient_phone", "patient_phone"),
    )

    booking_id: Mapped[str] = ulid_primary_key()
    scan_id: Mapped[str | None] = mapped_column(
        String(ULID_LENGTH),
        ForeignKey("scans.scan_id", ondelete="SET NULL"),
        nullable=True,
    )
    scan_type: Mapped[str] = mapped_column(String(100), nullable=False)
    scan_date: Mapped[date] = mapped_column(Date, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(nullable=False)
    slot_number: Mapped[int] = mapped_column(nullable=False)
    slot_start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    slot_end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    patient_name: Mapped[str] = mapped_column(String(100), nullable=False)
    patient_phone: Mapped[str] = mapped_column(String(32), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    user_id: Mapped[str | None] = mapped_column(String(64))
    booker_name: Mapped[str | None] = mapped_column(String(100))
    booker_user_id: Mapped[str | None] = mapped_column(String(64))
    status: Mapped[BookingStatus] = mapped_column(
        Enum(
            BookingStatus,
            values_callable=enum_values,
            validate_strings=True,
            native_enum=False,
            length=16,
            name="bookingstatus",
        ),
        default=BookingStatus.CONFIRMED,
        nullable=False,
    )
    booked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    scan: Mapped[Scan | None] = relationship(back_populates="bookings")

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None


# Late import so the relationship target is registered.
from scanbook.modules.scans.models import Scan  # noqa: E402
