"""Scan type schemas."""

from datetime import datetime

from pydantic import AliasChoices, ConfigDict, Field, field_validator

from scanbook.shared.schemas import CamelModel

MIN_DURATION_MINUTES = 5
MAX_DURATION_MINUTES = 300


class ScanTypePublic(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(validation_alias=AliasChoices("scan_type_id", "id"))
    name: str
    duration: int = Field(validation_alias=AliasChoices("duration_minutes", "duration"))
    created_by: str
    created_at: datetime
    updated_at: datetime


class ScanTypeWrite(CamelModel):
    name: str = Field(..., max_length=100)
    duration: int = Field(..., ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Name and duration are required")
        return cleaned
