from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError
from sqlalchemy import select

from factories import seed_scan
from scanbook.core.config import settings
from scanbook.core.exceptions import ConflictError, InvalidRequestError, NotFoundError
from scanbook.modules.bookings.models import Booking
from scanbook.modules.bookings.schemas import BookingCreate
from scanbook.modules.bookings.service import BookingService
from scanbook.modules.scans.models import Scan
from scanbook.modules.scans.service import ScanService
from scanbook.shared.enums import BookingStatus


def _booking(slot_number: int, name: str = "Meera Iyer", **extra) -> BookingCreate:
    return BookingCreate(patient_name=name, patient_phone="+91 98765 43210", slot_number=slot_number, **extra)


async def _stored_booked_slots(db_session, scan_id: str) -> int:
    result = await db_session.execute(select(Scan.booked_slots).where(Scan.scan_id == scan_id))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_anonymous_booking_uses_derived_slot_times(db_session, next_week):
    scan = await seed_scan(db_session, next_week)
    confirmation = await BookingService(db_session).submit_booking(scan.scan_id, _booking(3))

    assert confirmation.slot_start_time == "09:30"
    assert confirmation.slot_end_time == "09:45"
    assert confirmation.scan_type == "X-Ray"
    assert confirmation.date == next_week
    assert confirmation.is_anonymous is True

    stored = await db_session.get(Booking, confirmation.booking_id)
    assert stored.booker_name == "Anonymous User"
    assert stored.status == BookingStatus.CONFIRMED
    assert await _stored_booked_slots(db_session, scan.scan_id) == 1


@pytest.mark.asyncio
async def test_authenticated_booking_records_identity(db_session, patient_identity, next_week):
    scan = await seed_scan(db_session, next_week)
    confirmation = await BookingService(db_session).submit_booking(scan.scan_id, _booking(1), patient_identity)

    stored = await db_session.get(Booking, confirmation.booking_id)
    assert confirmation.is_anonymous is False
    assert stored.user_id == patient_identity.id
    assert stored.booker_user_id == patient_identity.id
    assert stored.booker_name == "Asha Rao"


@pytest.mark.asyncio
async def test_same_slot_cannot_be_booked_twice(db_session, next_week):
    scan = await seed_scan(db_session, next_week)
    service = BookingService(db_session)
    await service.submit_booking(scan.scan_id, _booking(2))

    with pytest.raises(ConflictError) as excinfo:
        await service.submit_booking(scan.scan_id, _booking(2, name="Ravi Kumar"))

    assert excinfo.value.detail == "This specific time slot is already booked"
    assert await _stored_booked_slots(db_session, scan.scan_id) == 1


@pytest.mark.asyncio
async def test_user_gets_one_booking_per_scan(db_session, patient_identity, other_identity, next_week):
    scan = await seed_scan(db_session, next_week)
    service = BookingService(db_session)
    await service.submit_booking(scan.scan_id, _booking(1), patient_identity)

    with pytest.raises(ConflictError) as excinfo:
        await service.submit_booking(scan.scan_id, _booking(2), patient_identity)
    assert excinfo.value.detail == "You already have a booking for this scan"

    await service.submit_booking(scan.scan_id, _booking(2, name="Ravi Kumar"), other_identity)
    await service.submit_booking(scan.scan_id, _booking(3, name="Walk-in"))
    assert await _stored_booked_slots(db_session, scan.scan_id) == 3


@pytest.mark.asyncio
async def test_slot_number_outside_block_is_rejected(db_session, next_week):
    scan = await seed_scan(db_session, next_week, total_slots=4)
    service = BookingService(db_session)

    with pytest.raises(InvalidRequestError):
        await service.submit_booking(scan.scan_id, _booking(5))
    with pytest.raises(ValidationError):
        _booking(0)


@pytest.mark.asyncio
async def test_client_slot_times_must_match_derivation(db_session, next_week):
    scan = await seed_scan(db_session, next_week)
    service = BookingService(db_session)

    with pytest.raises(InvalidRequestError):
        await service.submit_booking(scan.scan_id, _booking(2, slot_start_time="09:20", slot_end_time="09:35"))

    confirmation = await service.submit_booking(
        scan.scan_id, _booking(2, slot_start_time="9:15", slot_end_time="09:30")
    )
    assert confirmation.slot_start_time == "09:15"


@pytest.mark.asyncio
async def test_past_and_missing_scans_are_rejected(db_session):
    past = await seed_scan(db_session, date.today() - timedelta(days=2))
    service = BookingService(db_session)

    with pytest.raises(InvalidRequestError) as excinfo:
        await service.submit_booking(past.scan_id, _booking(1))
    assert excinfo.value.detail == "Cannot book appointments for past dates"

    with pytest.raises(NotFoundError):
        await service.submit_booking("01HZZZZZZZZZZZZZZZZZZZZZZZ", _booking(1))


def test_patient_fields_are_validated():
    with pytest.raises(ValidationError):
        BookingCreate(patient_name="   ", patient_phone="9876543210", slot_number=1)
    with pytest.raises(ValidationError):
        BookingCreate(patient_name="Meera", patient_phone="12345", slot_number=1)
    with pytest.raises(ValidationError):
        BookingCreate(patient_name="Meera", patient_phone="98765-abc-43210", slot_number=1)
    booking = BookingCreate(patient_name=" Meera ", patient_phone=" (080) 4123 4567 ", slot_number=1)
    assert (booking.patient_name, booking.patient_phone) == ("Meera", "(080) 4123 4567")


@pytest.mark.asyncio
async def test_booked_plus_available_always_equals_total(db_session, patient_identity, next_week):
    scan = await seed_scan(db_session, next_week, total_slots=3)
    bookings = BookingService(db_session)
    scans = ScanService(db_session)

    first = await bookings.submit_booking(scan.scan_id, _booking(1), patient_identity)
    await bookings.submit_booking(scan.scan_id, _booking(3))
    current = await scans.get(scan.scan_id)
    assert (current.booked_slots, current.available_slots) == (2, 1)

    await bookings.cancel(first.booking_id, patient_identity)
    current = await scans.get(scan.scan_id)
    assert (current.booked_slots, current.available_slots) == (1, 2)
    assert await _stored_booked_slots(db_session, scan.scan_id) == 1


@pytest.mark.asyncio
async def test_cancelled_slot_can_be_rebooked(db_session, patient_identity, other_identity, next_week):
    scan = await seed_scan(db_session, next_week)
    service = BookingService(db_session)
    first = await service.submit_booking(scan.scan_id, _booking(2), patient_identity)

    cancelled = await service.cancel(first.booking_id, patient_identity)
    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.cancelled_at is not None

    again = await service.submit_booking(scan.scan_id, _booking(2, name="Ravi Kumar"), other_identity)
    assert again.slot_number == 2
    assert [item.patient_name for item in await service.list_for_scan(scan.scan_id)] == ["Ravi Kumar"]


@pytest.mark.asyncio
async def test_only_owner_or_admin_may_cancel(db_session, patient_identity, other_identity, admin_identity, next_week):
    scan = await seed_scan(db_session, next_week)
    service = BookingService(db_session)
    mine = await service.submit_booking(scan.scan_id, _booking(1), patient_identity)
    anonymous = await service.submit_booking(scan.scan_id, _booking(2, name="Walk-in"))

    with pytest.raises(NotFoundError):
        await service.cancel(mine.booking_id, other_identity)
    with pytest.raises(NotFoundError):
        await service.cancel(anonymous.booking_id, patient_identity)

    await service.cancel(anonymous.booking_id, admin_identity)
    with pytest.raises(InvalidRequestError):
        await service.cancel(anonymous.booking_id, admin_identity)


@pytest.mark.asyncio
async def test_completion_requires_past_scan_date(db_session, admin_identity, next_week):
    upcoming = await seed_scan(db_session, next_week)
    past = await seed_scan(db_session, date.today() - timedelta(days=2), start_time="14:00")
    past_booking = Booking(
        scan_id=past.scan_id,
        scan_type=past.scan_type,
        scan_date=past.date,
        duration_minutes=past.duration_minutes,
        slot_number=1,
        slot_start_time="14:00",
        slot_end_time="14:15",
        patient_name="Kiran Das",
        patient_phone="9876543210",
        status=BookingStatus.CONFIRMED,
    )
    db_session.add(past_booking)
    await db_session.commit()

    service = BookingService(db_session)
    pending = await service.submit_booking(upcoming.scan_id, _booking(1))
    with pytest.raises(InvalidRequestError):
        await service.update_status(pending.booking_id, BookingStatus.COMPLETED, admin_identity)

    completed = await service.update_status(past_booking.booking_id, BookingStatus.COMPLETED, admin_identity)
    assert completed.status == BookingStatus.COMPLETED
    with pytest.raises(InvalidRequestError):
        await service.update_status(past_booking.booking_id, BookingStatus.CONFIRMED, admin_identity)


@pytest.mark.asyncio
async def test_booking_queries(db_session, patient_identity, next_week):
    first_scan = await seed_scan(db_session, next_week)
    later_scan = await seed_scan(db_session, next_week + timedelta(days=7))
    service = BookingService(db_session)
    await service.submit_booking(first_scan.scan_id, _booking(4), patient_identity)
    await service.submit_booking(first_scan.scan_id, _booking(2, name="Walk-in"))
    await service.submit_booking(later_scan.scan_id, _booking(1), patient_identity)

    assert [item.slot_number for item in await service.list_for_scan(first_scan.scan_id)] == [2, 4]
    assert len(await service.list_for_user(patient_identity)) == 2

    week_start, week_end, weekly = await service.list_for_week(next_week)
    assert week_start <= next_week <= week_end
    assert [item.slot_start_time for item in weekly] == ["09:15", "09:45"]

    with pytest.raises(NotFoundError):
        await service.get("01HZZZZZZZZZZZZZZZZZZZZZZZ")


def test_overlong_contact_fields_fail_validation():
    with pytest.raises(ValidationError):
        BookingCreate(patient_name="Meera", patient_phone="+91 " + "9" * 36, slot_number=1)
    with pytest.raises(ValidationError):
        BookingCreate(patient_name="Meera", patient_phone="9876543210", slot_number=1, booker_user_id="u" * 65)
    assert BookingCreate(patient_name="Meera", patient_phone="9" * 32, slot_number=1).patient_phone == "9" * 32


@pytest.mark.asyncio
async def test_yesterday_is_closed_and_today_is_open(db_session):
    today = datetime.now(tz=ZoneInfo(settings.default_timezone)).date()
    yesterday_scan = await seed_scan(db_session, today - timedelta(days=1))
    today_scan = await seed_scan(db_session, today, start_time="22:00")
    service = BookingService(db_session)

    with pytest.raises(InvalidRequestError) as excinfo:
        await service.submit_booking(yesterday_scan.scan_id, _booking(1))
    assert excinfo.value.detail == "Cannot book appointments for past dates"

    confirmation = await service.submit_booking(today_scan.scan_id, _booking(1))
    assert confirmation.date == today
    assert confirmation.slot_start_time == "22:00"


@pytest.mark.asyncio
async def test_signed_in_booker_id_comes_from_identity(db_session, patient_identity, next_week):
    scan = await seed_scan(db_session, next_week)
    service = BookingService(db_session)

    mine = await service.submit_booking(scan.scan_id, _booking(1, booker_user_id="someone-else"), patient_identity)
    walk_in = await service.submit_booking(scan.scan_id, _booking(2, name="Walk-in", booker_user_id="front-desk"))

    assert (await db_session.get(Booking, mine.booking_id)).booker_user_id == patient_identity.id
    assert (await db_session.get(Booking, walk_in.booking_id)).booker_user_id == "front-desk"
