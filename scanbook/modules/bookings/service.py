"""Booking service layer.

``submit_booking`` is the only code path that creates bookings. The lookups it
performs before inserting only give callers a friendlier error early; the
partial unique indexes on the ``bookings`` table are what actually prevent two
confirmed bookings from sharing a slot when requests race.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from scanbook.core.config import settings
from scanbook.core.exceptions import ConflictError, InvalidRequestError, NotFoundError
from scanbook.core.security import Identity
from scanbook.modules.bookings.models import Booking
from scanbook.modules.bookings.schemas import BookingConfirmation, BookingCreate
from scanbook.modules.scans.models import Scan
from scanbook.modules.scans.service import week_bounds
from scanbook.modules.scans.slots import slot_window
from scanbook.shared.enums import BookingStatus

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "This specific time slot is already booked"
USER_ALREADY_BOOKED_MESSAGE = "You already have a booking for this scan"
ANONYMOUS_BOOKER = "Anonymous User"


class BookingService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.tz = ZoneInfo(settings.default_timezone)

    def _today(self) -> date:
        return datetime.now(tz=self.tz).date()

    async def submit_booking(
        self,
        scan_id: str,
        payload: BookingCreate,
        identity: Identity | None = None,
    ) -> BookingConfirmation:
        scan = await self._get_scan(scan_id)
        if scan.date < self._today():
            raise InvalidRequestError("Cannot book appointments for past dates")

        slot_start, slot_end = self._resolve_slot(scan, payload)
        user_id = identity.id if identity else None

        if await self._slot_taken(scan.scan_id, payload.slot_number):
            raise ConflictError(SLOT_TAKEN_MESSAGE)
        if user_id and await self._user_has_booking(scan.scan_id, user_id):
            raise ConflictError(USER_ALREADY_BOOKED_MESSAGE)

        booking = Booking(
            scan_id=scan.scan_id,
            scan_type=scan.scan_type,
            scan_date=scan.date,
            duration_minutes=scan.duration_minutes,
            slot_number=payload.slot_number,
            slot_start_time=slot_start,
            slot_end_time=slot_end,
            patient_name=payload.patient_name,
            patient_phone=payload.patient_phone,
            notes=payload.notes,
            user_id=user_id,
            booker_name=payload.booker_name or (identity.display_name if identity else None) or ANONYMOUS_BOOKER,
            booker_user_id=user_id or payload.booker_user_id,
            status=BookingStatus.CONFIRMED,
        )
        self.db.add(booking)
        try:
            await self.db.flush()
            await self._sync_booked_slots(scan.scan_id)
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            message = await self._conflict_message(scan_id, payload.slot_number, user_id)
            logger.warning(
                "Booking for scan %s slot %s lost a race: %s",
                scan_id,
                payload.slot_number,
                message,
            )
            raise ConflictError(message) from exc

        logger.info(
            "Booking %s confirmed for scan %s slot %d (%s)",
            booking.booking_id,
            scan.scan_id,
            booking.slot_number,
            "anonymous" if booking.is_anonymous else f"user {user_id}",
        )
        return BookingConfirmation(
            booking_id=booking.booking_id,
            scan_id=scan.scan_id,
            scan_type=scan.scan_type,
            date=scan.date,
            slot_start_time=booking.slot_start_time,
            slot_end_time=booking.slot_end_time,
            slot_number=booking.slot_number,
            patient_name=booking.patient_name,
            patient_phone=booking.patient_phone,
            booked_at=booking.booked_at,
            notes=booking.notes,
            is_anonymous=booking.is_anonymous,
        )

    async def list_for_scan(self, scan_id: str) -> list[Booking]:
        await self._get_scan(scan_id)
        stmt = (
            select(Booking)
            .where(Booking.scan_id == scan_id, Booking.status == BookingStatus.CONFIRMED)
            .order_by(Booking.slot_number)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_user(self, identity: Identity) -> list[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.user_id == identity.id, Booking.status == BookingStatus.CONFIRMED)
            .order_by(Booking.booked_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_week(self, any_day: date) -> tuple[date, date, list[Booking]]:
        week_start, week_end = week_bounds(any_day)
        stmt = (
            select(Booking)
            .where(
                Booking.scan_date >= week_start,
                Booking.scan_date <= week_end,
                Booking.status == BookingStatus.CONFIRMED,
            )
            .order_by(Booking.scan_date, Booking.slot_start_time)
        )
        result = await self.db.execute(stmt)
        return week_start, week_end, list(result.scalars().all())

    async def get(self, booking_id: str) -> Booking:
        stmt = select(Booking).options(selectinload(Booking.scan)).where(Booking.booking_id == booking_id)
        result = await self.db.execute(stmt)
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    async def cancel(self, booking_id: str, identity: Identity) -> Booking:
        booking = await self.get(booking_id)
        if not identity.is_admin and booking.user_id != identity.id:
            # Other people's bookings are reported as missing.
            raise NotFoundError("Booking not found")
        if booking.status != BookingStatus.CONFIRMED:
            raise InvalidRequestError(f"Only confirmed bookings can be cancelled (current status: {booking.status})")
        if booking.scan_date < self._today():
            raise InvalidRequestError("Cannot cancel bookings for past dates")

        booking.status = BookingStatus.CANCELLED
        booking.cancelled_at = datetime.now(timezone.utc)
        await self.db.flush()
        if booking.scan_id:
            await self._sync_booked_slots(booking.scan_id)
        await self.db.commit()
        logger.info("Booking %s cancelled by %s", booking.booking_id, identity.id)
        return await self.get(booking.booking_id)

    async def update_status(self, booking_id: str, new_status: BookingStatus, identity: Identity) -> Booking:
        if new_status == BookingStatus.CANCELLED:
            return await self.cancel(booking_id, identity)

        booking = await self.get(booking_id)
        if new_status == booking.status:
            return booking
        if new_status != BookingStatus.COMPLETED or booking.status != BookingStatus.CONFIRMED:
            raise InvalidRequestError(f"Unsupported status change from {booking.status} to {new_status}")
        if booking.scan_date >= self._today():
            raise InvalidRequestError("Cannot complete a booking before its scan date has passed")

        booking.status = BookingStatus.COMPLETED
        await self.db.flush()
        if booking.scan_id:
            await self._sync_booked_slots(booking.scan_id)
        await self.db.commit()
        logger.info("Booking %s marked completed by %s", booking.booking_id, identity.id)
        return await self.get(booking.booking_id)

    async def _get_scan(self, scan_id: str) -> Scan:
        result = await self.db.execute(select(Scan).where(Scan.scan_id == scan_id))
        scan = result.scalar_one_or_none()
        if scan is None:
            raise NotFoundError("Scan slot not found")
        return scan

    def _resolve_slot(self, scan: Scan, payload: BookingCreate) -> tuple[str, str]:
        if not 1 <= payload.slot_number <= scan.total_slots:
            raise InvalidRequestError(f"Slot number must be between 1 and {scan.total_slots}")
        slot_start, slot_end = slot_window(scan.start_time, scan.duration_minutes, payload.slot_number)
        if payload.slot_start_time is not None and payload.slot_start_time != slot_start:
            raise InvalidRequestError(f"Slot {payload.slot_number} starts at {slot_start}")
        if payload.slot_end_time is not None and payload.slot_end_time != slot_end:
            raise InvalidRequestError(f"Slot {payload.slot_number} ends at {slot_end}")
        return slot_start, slot_end

    async def _slot_taken(self, scan_id: str, slot_number: int) -> bool:
        stmt = select(Booking.booking_id).where(
            Booking.scan_id == scan_id,
            Booking.slot_number == slot_number,
            Booking.status == BookingStatus.CONFIRMED,
        )
        return (await self.db.execute(stmt)).first() is not None

    async def _user_has_booking(self, scan_id: str, user_id: str) -> bool:
        stmt = select(Booking.booking_id).where(
            Booking.scan_id == scan_id,
            Booking.user_id == user_id,
            Booking.status == BookingStatus.CONFIRMED,
        )
        return (await self.db.execute(stmt)).first() is not None

    async def _conflict_message(self, scan_id: str, slot_number: int, user_id: str | None) -> str:
        if user_id and not await self._slot_taken(scan_id, slot_number):
            if await self._user_has_booking(scan_id, user_id):
                return USER_ALREADY_BOOKED_MESSAGE
        return SLOT_TAKEN_MESSAGE

    async def _sync_booked_slots(self, scan_id: str) -> None:
        """Recount confirmed bookings rather than incrementing a counter."""
        confirmed = (
            select(func.count(Booking.booking_id))
            .where(Booking.scan_id == scan_id, Booking.status == BookingStatus.CONFIRMED)
            .scalar_subquery()
        )
        await self.db.execute(
            update(Scan)
            .where(Scan.scan_id == scan_id)
            .values(booked_slots=confirmed, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )