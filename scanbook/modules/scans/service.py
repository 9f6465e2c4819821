"""Scan block service layer."""

from __future__ import annotations

import calendar
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scanbook.core.config import settings
from scanbook.core.exceptions import ConflictError, InvalidRequestError, NotFoundError
from scanbook.core.security import Identity
from scanbook.modules.bookings.models import Booking
from scanbook.modules.scan_types.models import ScanType, name_key
from scanbook.modules.scans.models import Scan
from scanbook.modules.scans.schemas import (
    AvailableDate,
    AvailableScan,
    BookingDetail,
    ScanCreate,
    ScanUpdate,
    ScanWithBookings,
    ScanWithSlots,
    SlotPublic,
)
from scanbook.modules.scans.slots import block_end_minutes, derive_slots, fits_in_day, format_minutes, parse_hhmm
from scanbook.shared.enums import BookingStatus, Weekday

logger = logging.getLogger(__name__)

DUPLICATE_SCAN_MESSAGE = "A slot for this scan type already exists at this time"
SCHEDULE_FIELDS = ("scan_type", "date", "start_time", "duration_minutes")


def week_bounds(value: date) -> tuple[date, date]:
    """Return the Monday and Sunday of the week containing ``value``."""
    monday = value - timedelta(days=value.weekday())
    return monday, monday + timedelta(days=6)


def add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


async def count_confirmed(db: AsyncSession, scan_ids: list[str]) -> dict[str, int]:
    """Confirmed booking counts per scan, straight from the ledger."""
    if not scan_ids:
        return {}
    stmt = (
        select(Booking.scan_id, func.count(Booking.booking_id))
        .where(Booking.scan_id.in_(scan_ids), Booking.status == BookingStatus.CONFIRMED)
        .group_by(Booking.scan_id)
    )
    result = await db.execute(stmt)
    return {scan_id: count for scan_id, count in result.all()}


class ScanService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.tz = ZoneInfo(settings.default_timezone)

    def _today(self) -> date:
        return datetime.now(tz=self.tz).date()

    async def create(self, payload: ScanCreate, identity: Identity) -> Scan:
        scan_type = await self._resolve_scan_type(payload.scan_type)
        self._ensure_not_past(payload.date)
        end_time = self._resolve_end_time(payload.start_time, payload.end_time, payload.duration, payload.total_slots)
        await self._ensure_unique_block(scan_type.name, payload.date, payload.start_time)

        scan = Scan(
            scan_type=scan_type.name,
            date=payload.date,
            start_time=payload.start_time,
            end_time=end_time,
            duration_minutes=payload.duration,
            total_slots=payload.total_slots,
            booked_slots=0,
            notes=payload.notes,
            created_by=identity.id,
        )
        self.db.add(scan)
        await self._commit_unique()
        await self.db.refresh(scan)
        logger.info(
            "Scan %s created: %s on %s at %s, %d slot(s)",
            scan.scan_id,
            scan.scan_type,
            scan.date,
            scan.start_time,
            scan.total_slots,
        )
        return scan

    async def list_scans(
        self,
        on_date: date | None = None,
        week: date | None = None,
        scan_type: str | None = None,
        available_only: bool = False,
    ) -> list[Scan]:
        stmt = select(Scan)
        if on_date:
            stmt = stmt.where(Scan.date == on_date)
        if week:
            stmt = stmt.where(Scan.date >= week, Scan.date <= week + timedelta(days=6))
        if scan_type:
            stmt = stmt.where(Scan.scan_type == scan_type)
        stmt = stmt.order_by(Scan.date, Scan.start_time)
        scans = list((await self.db.execute(stmt)).scalars().all())
        await self.refresh_booked_counts(scans)
        if available_only:
            scans = [scan for scan in scans if scan.available_slots > 0]
        return scans

    async def get(self, scan_id: str) -> Scan:
        result = await self.db.execute(select(Scan).where(Scan.scan_id == scan_id))
        scan = result.scalar_one_or_none()
        if scan is None:
            raise NotFoundError("Scan slot not found")
        await self.refresh_booked_counts([scan])
        return scan

    async def get_with_slots(self, scan_id: str) -> ScanWithSlots:
        scan = await self.get(scan_id)
        booked_numbers = set(
            (
                await self.db.execute(
                    select(Booking.slot_number).where(
                        Booking.scan_id == scan.scan_id,
                        Booking.status == BookingStatus.CONFIRMED,
                    )
                )
            )
            .scalars()
            .all()
        )
        view = ScanWithSlots.model_validate(scan)
        view.slots = [
            SlotPublic(
                slot_number=slot.slot_number,
                start_time=slot.start_time,
                end_time=slot.end_time,
                is_booked=slot.slot_number in booked_numbers,
            )
            for slot in derive_slots(scan.start_time, scan.duration_minutes, scan.total_slots)
        ]
        return view

    async def update(self, scan_id: str, payload: ScanUpdate) -> Scan:
        scan = await self.get(scan_id)
        update_data = payload.model_dump(exclude_unset=True)
        if "duration" in update_data:
            update_data["duration_minutes"] = update_data.pop("duration")
        update_data = {field: value for field, value in update_data.items() if value is not None or field == "notes"}
        if not update_data:
            return scan

        if "scan_type" in update_data:
            update_data["scan_type"] = (await self._resolve_scan_type(update_data["scan_type"])).name

        changed_schedule = [
            field for field in SCHEDULE_FIELDS if field in update_data and update_data[field] != getattr(scan, field)
        ]
        if scan.booked_slots > 0:
            if changed_schedule:
                raise ConflictError(
                    f"Cannot change the schedule of a scan with {scan.booked_slots} booking(s)"
                )
            if "total_slots" in update_data:
                highest = await self._highest_booked_slot(scan.scan_id)
                if update_data["total_slots"] < highest:
                    raise ConflictError(f"Total slots cannot be lower than booked slot number {highest}")

        if "date" in changed_schedule:
            self._ensure_not_past(update_data["date"])

        start_time = update_data.get("start_time", scan.start_time)
        duration = update_data.get("duration_minutes", scan.duration_minutes)
        total_slots = update_data.get("total_slots", scan.total_slots)
        if any(field in update_data for field in ("start_time", "end_time", "duration_minutes", "total_slots")):
            # Without an explicit end time the advisory end follows the last slot.
            update_data["end_time"] = self._resolve_end_time(
                start_time, update_data.get("end_time"), duration, total_slots
            )

        if any(field in changed_schedule for field in ("scan_type", "date", "start_time")):
            await self._ensure_unique_block(
                update_data.get("scan_type", scan.scan_type),
                update_data.get("date", scan.date),
                start_time,
                exclude_scan_id=scan.scan_id,
            )

        for field, value in update_data.items():
            setattr(scan, field, value)
        await self._commit_unique()
        await self.db.refresh(scan)
        await self.refresh_booked_counts([scan])
        logger.info("Scan %s updated: %s", scan.scan_id, ", ".join(sorted(update_data)))
        return scan

    async def delete(self, scan_id: str) -> None:
        scan = await self.get(scan_id)
        if scan.booked_slots > 0:
            raise ConflictError(
                f"Cannot delete slot with {scan.booked_slots} booking(s). Cancel all bookings first.",
                status_code=status.HTTP_400_BAD_REQUEST,
            )
        await self.db.delete(scan)
        await self.db.commit()
        logger.info("Scan %s deleted", scan_id)

    async def weekly_view(
        self, any_day: date, include_details: bool = False
    ) -> tuple[date, date, dict[str, list[ScanWithBookings]]]:
        week_start, week_end = week_bounds(any_day)
        stmt = (
            select(Scan)
            .where(Scan.date >= week_start, Scan.date <= week_end)
            .order_by(Scan.date, Scan.start_time)
        )
        scans = list((await self.db.execute(stmt)).scalars().all())

        bookings_by_scan: dict[str, list[Booking]] = defaultdict(list)
        if scans:
            booking_stmt = (
                select(Booking)
                .where(
                    Booking.scan_id.in_([scan.scan_id for scan in scans]),
                    Booking.status == BookingStatus.CONFIRMED,
                )
                .order_by(Booking.slot_number)
            )
            for booking in (await self.db.execute(booking_stmt)).scalars().all():
                bookings_by_scan[booking.scan_id].append(booking)

        grouped: dict[str, list[ScanWithBookings]] = {day.value: [] for day in Weekday}
        for scan in scans:
            scan_bookings = bookings_by_scan.get(scan.scan_id, [])
            scan.booked_slots = len(scan_bookings)
            view = ScanWithBookings.model_validate(scan)
            # Counts are public; patient details only go to admins.
            if include_details:
                view.booking_details = [BookingDetail.model_validate(booking) for booking in scan_bookings]
            grouped[Weekday.from_date(scan.date).value].append(view)

        logger.debug(
            "Week %s..%s: %s",
            week_start,
            week_end,
            ", ".join(f"{day}={len(items)}" for day, items in grouped.items()),
        )
        return week_start, week_end, grouped

    async def available_dates(
        self, scan_type: str, from_date: date | None = None
    ) -> tuple[date, date, list[AvailableDate]]:
        start = from_date or self._today()
        end = add_months(start, settings.available_dates_window_months)
        stmt = (
            select(Scan)
            .where(Scan.scan_type == scan_type, Scan.date >= start, Scan.date <= end)
            .order_by(Scan.date, Scan.start_time)
        )
        scans = list((await self.db.execute(stmt)).scalars().all())
        await self.refresh_booked_counts(scans)

        by_date: dict[date, AvailableDate] = {}
        for scan in scans:
            if scan.available_slots <= 0:
                continue
            entry = by_date.get(scan.date)
            if entry is None:
                entry = AvailableDate(
                    date=scan.date,
                    day_name=Weekday.from_date(scan.date).value,
                    total_available_slots=0,
                    scans=[],
                )
                by_date[scan.date] = entry
            entry.total_available_slots += scan.available_slots
            entry.scans.append(
                AvailableScan(
                    scan_id=scan.scan_id,
                    start_time=scan.start_time,
                    end_time=scan.end_time,
                    available_slots=scan.available_slots,
                    total_slots=scan.total_slots,
                )
            )
        return start, end, [by_date[key] for key in sorted(by_date)]

    async def refresh_booked_counts(self, scans: list[Scan]) -> None:
        counts = await count_confirmed(self.db, [scan.scan_id for scan in scans])
        for scan in scans:
            scan.booked_slots = counts.get(scan.scan_id, 0)

    async def _resolve_scan_type(self, name: str) -> ScanType:
        result = await self.db.execute(select(ScanType).where(ScanType.name_key == name_key(name)))
        scan_type = result.scalar_one_or_none()
        if scan_type is None:
            raise InvalidRequestError("Invalid scan type. Please select a valid scan type from the system.")
        return scan_type

    def _ensure_not_past(self, value: date) -> None:
        if value < self._today():
            raise InvalidRequestError("Cannot schedule scans for past dates")

    def _resolve_end_time(self, start_time: str, end_time: str | None, duration: int, total_slots: int) -> str:
        if not fits_in_day(start_time, duration, total_slots):
            raise InvalidRequestError("Scan slots must finish by midnight")
        if end_time is None:
            return format_minutes(block_end_minutes(start_time, duration, total_slots))
        if parse_hhmm(start_time) >= parse_hhmm(end_time):
            raise InvalidRequestError("Start time must be before end time")
        return end_time

    async def _ensure_unique_block(
        self,
        scan_type: str,
        on_date: date,
        start_time: str,
        exclude_scan_id: str | None = None,
    ) -> None:
        stmt = select(Scan.scan_id).where(
            Scan.scan_type == scan_type,
            Scan.date == on_date,
            Scan.start_time == start_time,
        )
        if exclude_scan_id:
            stmt = stmt.where(Scan.scan_id != exclude_scan_id)
        if (await self.db.execute(stmt)).first() is not None:
            raise ConflictError(DUPLICATE_SCAN_MESSAGE)

    async def _highest_booked_slot(self, scan_id: str) -> int:
        result = await self.db.execute(
            select(func.max(Booking.slot_number)).where(
                Booking.scan_id == scan_id,
                Booking.status == BookingStatus.CONFIRMED,
            )
        )
        return result.scalar_one() or 0

    async def _commit_unique(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError(DUPLICATE_SCAN_MESSAGE) from exc
