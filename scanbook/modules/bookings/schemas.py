"""Booking schemas."""

import datetime as dt
import re

from pydantic import AliasChoices, ConfigDict, Field, field_validator

from scanbook.modules.scans.schemas import validate_hhmm_field
from scanbook.shared.enums import BookingStatus
from scanbook.shared.schemas import CamelModel

PHONE_PATTERN = re.compile(r"^[\d\s\-\+\(\)]{10,}$")


class BookingCreate(CamelModel):
    patient_name: str = Field(..., max_length=100)
    patient_phone: str = Field(..., max_length=32)
    slot_number: int = Field(..., ge=1)
    slot_start_time: str | None = None
    slot_end_time: str | None = None
    notes: str | None = Field(None, max_length=500)
    booker_name: str | None = Field(None, max_length=100)
    booker_user_id: str | None = Field(None, max_length=64)

    normalize_slot_times = field_validator("slot_start_time", "slot_end_time")(validate_hhmm_field)

    @field_validator("patient_name")
    @classmethod
    def check_patient_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Patient name is required")
        return cleaned

    @field_validator("patient_phone")
    @classmethod
    def check_patient_phone(cls, value: str) -> str:
        cleaned = value.strip()
        if not PHONE_PATTERN.match(re.sub(r"\s", "", cleaned)):
            raise ValueError("Please provide a valid phone number")
        return cleaned

    @field_validator("notes", "booker_name")
    @classmethod
    def strip_optional(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class BookingConfirmation(CamelModel):
    booking_id: str
    scan_id: str
    scan_type: str
    date: dt.date
    slot_start_time: str
    slot_end_time: str
    slot_number: int
    patient_name: str
    patient_phone: str = Field(..., max_length=32)
    booked_at: dt.datetime
    notes: str | None = None
    is_anonymous: bool


class BookingPublic(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(validation_alias=AliasChoices("booking_id", "id"))
    scan_id: str | None = None
    scan_type: str
    scan_date: dt.date
    duration: int = Field(validation_alias=AliasChoices("duration_minutes", "duration"))
    slot_number: int
    slot_start_time: str
    slot_end_time: str
    patient_name: str
    patient_phone: str = Field(..., max_length=32)
    notes: str | None = None
    user_id: str | None = None
    booker_name: str | None = None
    booker_user_id: str | None = Field(None, max_length=64)
    status: BookingStatus
    is_anonymous: bool
    booked_at: dt.datetime
    cancelled_at: dt.datetime | None = None


class BookingStatusUpdate(CamelModel):
    status: BookingStatus


class WeeklyBookingsResponse(CamelModel):
    success: bool = True
    week_start: dt.date
    week_end: dt.date
    data: list[BookingPublic] = Field(default_factory=list)
