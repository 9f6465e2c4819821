"""Reusable ORM mixins and column factories."""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, MappedColumn, mapped_column

from scanbook.shared.ulid import ULID_LENGTH, generate_ulid


def ulid_primary_key() -> MappedColumn[str]:
    """String ULID primary key generated client side on insert."""
    return mapped_column(String(ULID_LENGTH), primary_key=True, default=generate_ulid)


class TimestampMixin:
    """Row creation and last-modification times, set by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
