"""Scan type catalog service layer."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scanbook.core.exceptions import ConflictError, NotFoundError
from scanbook.core.security import Identity
from scanbook.modules.scan_types.models import ScanType, name_key
from scanbook.modules.scan_types.schemas import ScanTypeWrite
from scanbook.modules.scans.models import Scan

logger = logging.getLogger(__name__)

DUPLICATE_NAME_MESSAGE = "A scan type with this name already exists"


class ScanTypeService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_names(self) -> list[str]:
        result = await self.db.execute(select(ScanType.name).order_by(ScanType.name))
        return list(result.scalars().all())

    async def list_all(self) -> list[ScanType]:
        result = await self.db.execute(select(ScanType).order_by(ScanType.name))
        return list(result.scalars().all())

    async def create(self, payload: ScanTypeWrite, identity: Identity) -> ScanType:
        await self._ensure_unique_name(payload.name)
        scan_type = ScanType(
            name=payload.name,
            name_key=name_key(payload.name),
            duration_minutes=payload.duration,
            created_by=identity.id,
        )
        self.db.add(scan_type)
        await self._commit_unique()
        await self.db.refresh(scan_type)
        logger.info("Scan type %s (%s) created by %s", scan_type.scan_type_id, scan_type.name, identity.id)
        return scan_type

    async def update(self, scan_type_id: str, payload: ScanTypeWrite) -> ScanType:
        scan_type = await self._get(scan_type_id)
        await self._ensure_unique_name(payload.name, exclude_id=scan_type.scan_type_id)
        if payload.name != scan_type.name:
            in_use = await self._count_scans(scan_type.name)
            if in_use:
                raise ConflictError(
                    f"Cannot rename scan type. It is currently used in {in_use} scan(s)."
                )
        scan_type.name = payload.name
        scan_type.name_key = name_key(payload.name)
        scan_type.duration_minutes = payload.duration
        await self._commit_unique()
        await self.db.refresh(scan_type)
        return scan_type

    async def delete(self, scan_type_id: str) -> None:
        scan_type = await self._get(scan_type_id)
        in_use = await self._count_scans(scan_type.name)
        if in_use:
            raise ConflictError(
                f"Cannot delete scan type. It is currently used in {in_use} scan(s). "
                "Please remove or reassign those scans first."
            )
        await self.db.delete(scan_type)
        await self.db.commit()
        logger.info("Scan type %s (%s) deleted", scan_type_id, scan_type.name)

    async def _get(self, scan_type_id: str) -> ScanType:
        result = await self.db.execute(select(ScanType).where(ScanType.scan_type_id == scan_type_id))
        scan_type = result.scalar_one_or_none()
        if scan_type is None:
            raise NotFoundError("Scan type not found")
        return scan_type

    async def _ensure_unique_name(self, name: str, exclude_id: str | None = None) -> None:
        stmt = select(ScanType.scan_type_id).where(ScanType.name_key == name_key(name))
        if exclude_id:
            stmt = stmt.where(ScanType.scan_type_id != exclude_id)
        if (await self.db.execute(stmt)).first() is not None:
            raise ConflictError(DUPLICATE_NAME_MESSAGE)

    async def _count_scans(self, name: str) -> int:
        result = await self.db.execute(select(func.count(Scan.scan_id)).where(Scan.scan_type == name))
        return result.scalar_one()

    async def _commit_unique(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError(DUPLICATE_NAME_MESSAGE) from exc
