"""Scan block schemas."""

import datetime as dt

from pydantic import AliasChoices, ConfigDict, Field, field_validator, model_validator

from scanbook.core.config import settings
from scanbook.modules.scans.slots import normalize_hhmm, parse_hhmm
from scanbook.shared.schemas import CamelModel

MIN_SLOT_MINUTES = 5
MAX_SLOT_MINUTES = 300


def validate_hhmm_field(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        return normalize_hhmm(value)
    except ValueError as exc:
        raise ValueError("Invalid time format. Use HH:MM format") from exc


class ScanCreate(CamelModel):
    scan_type: str = Field(..., min_length=1, max_length=100)
    date: dt.date
    start_time: str
    end_time: str | None = None
    duration: int = Field(..., ge=MIN_SLOT_MINUTES, le=MAX_SLOT_MINUTES)
    total_slots: int = Field(..., ge=1)
    notes: str | None = Field(None, max_length=500)

    normalize_times = field_validator("start_time", "end_time")(validate_hhmm_field)

    @field_validator("total_slots")
    @classmethod
    def check_total_slots(cls, value: int) -> int:
        if value > settings.max_slots_per_scan:
            raise ValueError(f"Total slots must be between 1 and {settings.max_slots_per_scan}")
        return value

    @model_validator(mode="after")
    def check_time_order(self) -> "ScanCreate":
        if self.end_time is not None and parse_hhmm(self.start_time) >= parse_hhmm(self.end_time):
            raise ValueError("Start time must be before end time")
        return self


class ScanUpdate(CamelModel):
    scan_type: str | None = Field(None, min_length=1, max_length=100)
    date: dt.date | None = None
    start_time: str | None = None
    end_time: str | None = None
    duration: int | None = Field(None, ge=MIN_SLOT_MINUTES, le=MAX_SLOT_MINUTES)
    total_slots: int | None = Field(None, ge=1)
    notes: str | None = Field(None, max_length=500)

    normalize_times = field_validator("start_time", "end_time")(validate_hhmm_field)

    @field_validator("total_slots")
    @classmethod
    def check_total_slots(cls, value: int | None) -> int | None:
        if value is not None and value > settings.max_slots_per_scan:
            raise ValueError(f"Total slots must be between 1 and {settings.max_slots_per_scan}")
        return value


class BookingDetail(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(validation_alias=AliasChoices("booking_id", "id"))
    slot_number: int
    slot_start_time: str
    slot_end_time: str
    patient_name: str
    patient_phone: str
    booked_at: dt.datetime
    notes: str | None = None
    is_anonymous: bool
    user_id: str | None = None


class ScanPublic(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(validation_alias=AliasChoices("scan_id", "id"))
    scan_type: str
    date: dt.date
    start_time: str
    end_time: str
    duration: int = Field(validation_alias=AliasChoices("duration_minutes", "duration"))
    total_slots: int
    booked_slots: int
    available_slots: int
    notes: str | None = None
    created_by: str


class ScanWithBookings(ScanPublic):
    booking_details: list[BookingDetail] = Field(default_factory=list)


class SlotPublic(CamelModel):
    slot_number: int
    start_time: str
    end_time: str
    is_booked: bool


class ScanWithSlots(ScanPublic):
    slots: list[SlotPublic] = Field(default_factory=list)


class WeeklyScansResponse(CamelModel):
    success: bool = True
    week_start: dt.date
    week_end: dt.date
    data: dict[str, list[ScanWithBookings]]


class AvailableScan(CamelModel):
    id: str = Field(validation_alias=AliasChoices("scan_id", "id"))
    start_time: str
    end_time: str
    available_slots: int
    total_slots: int


class AvailableDate(CamelModel):
    date: dt.date
    day_name: str
    total_available_slots: int
    scans: list[AvailableScan]


class AvailableDatesResponse(CamelModel):
    success: bool = True
    scan_type: str
    from_date: dt.date
    to_date: dt.date
    data: list[AvailableDate]
