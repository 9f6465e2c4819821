"""Scan type catalog ORM model."""

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from scanbook.core.database import Base
from scanbook.shared.models import TimestampMixin, ulid_primary_key


def name_key(name: str) -> str:
    """Case-folded form of a scan type name used for uniqueness."""
    return name.strip().lower()


class ScanType(Base, TimestampMixin):
    __tablename__ = "scan_types"
    __table_args__ = (
        CheckConstraint(
            "duration_minutes >= 5 AND duration_minutes <= 300",
            name="ck_scan_types_duration_range",
        ),
    )

    scan_type_id: Mapped[str] = ulid_primary_key()
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    name_key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    duration_minutes: Mapped[int] = mapped_column(nullable=False)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
