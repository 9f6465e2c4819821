"""Booking routes.

Included ahead of the scan block router so ``/my-bookings`` and
``/bookings/...`` are matched before ``/{scan_id}``.
"""

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from scanbook.core.database import get_db
from scanbook.core.deps import get_current_identity, get_optional_identity, require_admin
from scanbook.core.security import Identity
from scanbook.modules.bookings.schemas import (
    BookingConfirmation,
    BookingCreate,
    BookingPublic,
    BookingStatusUpdate,
    WeeklyBookingsResponse,
)
from scanbook.modules.bookings.service import BookingService
from scanbook.shared.schemas import ResponseEnvelope

router = APIRouter(prefix="/api/v1/scans", tags=["bookings"])


def get_service(db: AsyncSession = Depends(get_db)) -> BookingService:
    return BookingService(db)


@router.get("/my-bookings", response_model=ResponseEnvelope[list[BookingPublic]])
async def my_bookings(
    identity: Identity = Depends(get_current_identity),
    service: BookingService = Depends(get_service),
) -> ResponseEnvelope[list[BookingPublic]]:
    bookings = await service.list_for_user(identity)
    return ResponseEnvelope(data=[BookingPublic.model_validate(item) for item in bookings])


@router.get("/bookings/week/{any_date}", response_model=WeeklyBookingsResponse)
async def weekly_bookings(
    any_date: date,
    _: Identity = Depends(require_admin),
    service: BookingService = Depends(get_service),
) -> WeeklyBookingsResponse:
    week_start, week_end, bookings = await service.list_for_week(any_date)
    return WeeklyBookingsResponse(
        week_start=week_start,
        week_end=week_end,
        data=[BookingPublic.model_validate(item) for item in bookings],
    )


@router.get("/bookings/{booking_id}", response_model=ResponseEnvelope[BookingPublic])
async def get_booking(
    booking_id: str,
    _: Identity = Depends(require_admin),
    service: BookingService = Depends(get_service),
) -> ResponseEnvelope[BookingPublic]:
    booking = await service.get(booking_id)
    return ResponseEnvelope(data=BookingPublic.model_validate(booking))


@router.post("/bookings/{booking_id}/cancel", response_model=ResponseEnvelope[BookingPublic])
async def cancel_booking(
    booking_id: str,
    identity: Identity = Depends(get_current_identity),
    service: BookingService = Depends(get_service),
) -> ResponseEnvelope[BookingPublic]:
    booking = await service.cancel(booking_id, identity)
    return ResponseEnvelope(data=BookingPublic.model_validate(booking), message="Booking cancelled successfully")


@router.patch("/bookings/{booking_id}", response_model=ResponseEnvelope[BookingPublic])
async def update_booking_status(
    booking_id: str,
    payload: BookingStatusUpdate,
    identity: Identity = Depends(require_admin),
    service: BookingService = Depends(get_service),
) -> ResponseEnvelope[BookingPublic]:
    booking = await service.update_status(booking_id, payload.status, identity)
    return ResponseEnvelope(data=BookingPublic.model_validate(booking), message="Booking updated successfully")


@router.post("/{scan_id}/book", response_model=ResponseEnvelope[BookingConfirmation])
async def book_slot(
    scan_id: str,
    payload: BookingCreate,
    identity: Identity | None = Depends(get_optional_identity),
    service: BookingService = Depends(get_service),
) -> ResponseEnvelope[BookingConfirmation]:
    confirmation = await service.submit_booking(scan_id, payload, identity)
    return ResponseEnvelope(data=confirmation, message="Appointment booked successfully")


@router.get("/{scan_id}/bookings", response_model=ResponseEnvelope[list[BookingPublic]])
async def scan_bookings(
    scan_id: str,
    _: Identity = Depends(require_admin),
    service: BookingService = Depends(get_service),
) -> ResponseEnvelope[list[BookingPublic]]:
    bookings = await service.list_for_scan(scan_id)
    return ResponseEnvelope(data=[BookingPublic.model_validate(item) for item in bookings])
