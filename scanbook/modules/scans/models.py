"""Scan block ORM model."""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scanbook.core.database import Base
from scanbook.shared.models import TimestampMixin, ulid_primary_key

if TYPE_CHECKING:  # pragma: no cover
    from scanbook.modules.bookings.models import Booking


class Scan(Base, TimestampMixin):
    __tablename__ = "scans"
    __table_args__ = (
        UniqueConstraint("scan_type", "date", "start_time", name="uq_scans_type_date_start"),
        CheckConstraint("total_slots >= 1", name="ck_scans_total_slots_positive"),
        CheckConstraint("booked_slots >= 0", name="ck_scans_booked_slots_non_negative"),
        CheckConstraint("duration_minutes > 0", name="ck_scans_duration_positive"),
        Index("ix_scans_date_start", "date", "start_time"),
    )

    scan_id: Mapped[str] = ulid_primary_key()
    scan_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(nullable=False)
    total_slots: Mapped[int] = mapped_column(nullable=False)
    booked_slots: Mapped[int] = mapped_column(default=0, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)

    bookings: Mapped[list["Booking"]] = relationship(back_populates="scan")

    @property
    def available_slots(self) -> int:
        return max(0, self.total_slots - self.booked_slots)


# Late import so the relationship target is registered.
from scanbook.modules.bookings.models import Booking  # noqa: E402
