"""Slot derivation for scan blocks.

A scan block never stores its slots. They are recomputed from the block's
start time, per-slot duration and slot count whenever they are needed, so
slot ``n`` always covers ``start + (n - 1) * duration`` to ``start + n * duration``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

MINUTES_PER_DAY = 24 * 60
HHMM_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")
END_OF_DAY = "24:00"


@dataclass(frozen=True)
class Slot:
    slot_number: int
    start_time: str
    end_time: str


def parse_hhmm(value: str) -> int:
    """Return minutes after midnight for an ``HH:MM`` string (``24:00`` allowed)."""
    value = value.strip()
    if value == END_OF_DAY:
        return MINUTES_PER_DAY
    match = HHMM_PATTERN.match(value)
    if match is None:
        raise ValueError(f"Invalid time '{value}'. Use HH:MM format")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_minutes(minutes: int) -> str:
    """Render minutes after midnight as ``HH:MM``; 1440 renders as ``24:00``."""
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError(f"{minutes} minutes is outside a single day")
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def normalize_hhmm(value: str) -> str:
    """Zero-pad a valid ``H:MM`` string to ``HH:MM``."""
    return format_minutes(parse_hhmm(value))


def block_end_minutes(start_time: str, duration_minutes: int, total_slots: int) -> int:
    return parse_hhmm(start_time) + duration_minutes * total_slots


def fits_in_day(start_time: str, duration_minutes: int, total_slots: int) -> bool:
    return block_end_minutes(start_time, duration_minutes, total_slots) <= MINUTES_PER_DAY


def slot_window(start_time: str, duration_minutes: int, slot_number: int) -> tuple[str, str]:
    start = parse_hhmm(start_time) + (slot_number - 1) * duration_minutes
    return format_minutes(start), format_minutes(start + duration_minutes)


def derive_slots(start_time: str, duration_minutes: int, total_slots: int) -> list[Slot]:
    if duration_minutes <= 0:
        raise ValueError("duration must be a positive number of minutes")
    if total_slots <= 0:
        raise ValueError("total slots must be positive")
    if not fits_in_day(start_time, duration_minutes, total_slots):
        raise ValueError("slots must end by midnight")

    base = parse_hhmm(start_time)
    slots: list[Slot] = []
    for index in range(total_slots):
        start = base + index * duration_minutes
        slots.append(
            Slot(
                slot_number=index + 1,
                start_time=format_minutes(start),
                end_time=format_minutes(start + duration_minutes),
            )
        )
    return slots
