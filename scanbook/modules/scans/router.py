"""Scan block routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from scanbook.core.database import get_db
from scanbook.core.deps import get_optional_identity, require_admin
from scanbook.core.security import Identity
from scanbook.modules.scans.schemas import (
    AvailableDatesResponse,
    ScanCreate,
    ScanPublic,
    ScanUpdate,
    ScanWithSlots,
    WeeklyScansResponse,
)
from scanbook.modules.scans.service import ScanService
from scanbook.shared.schemas import ResponseEnvelope

router = APIRouter(prefix="/api/v1/scans", tags=["scans"])


def get_service(db: AsyncSession = Depends(get_db)) -> ScanService:
    return ScanService(db)


@router.post("", response_model=ResponseEnvelope[ScanPublic], status_code=status.HTTP_201_CREATED)
async def create_scan(
    payload: ScanCreate,
    identity: Identity = Depends(require_admin),
    service: ScanService = Depends(get_service),
) -> ResponseEnvelope[ScanPublic]:
    scan = await service.create(payload, identity)
    return ResponseEnvelope(data=ScanPublic.model_validate(scan), message="Scan slot created successfully")


@router.get("", response_model=ResponseEnvelope[list[ScanPublic]])
async def list_scans(
    on_date: date | None = Query(None, alias="date"),
    week: date | None = Query(None),
    scan_type: str | None = Query(None, alias="scanType"),
    available: bool = Query(False),
    _: Identity = Depends(require_admin),
    service: ScanService = Depends(get_service),
) -> ResponseEnvelope[list[ScanPublic]]:
    scans = await service.list_scans(on_date=on_date, week=week, scan_type=scan_type, available_only=available)
    return ResponseEnvelope(data=[ScanPublic.model_validate(scan) for scan in scans])


@router.get("/week/{any_date}", response_model=WeeklyScansResponse)
async def weekly_scans(
    any_date: date,
    identity: Identity | None = Depends(get_optional_identity),
    service: ScanService = Depends(get_service),
) -> WeeklyScansResponse:
    include_details = identity is not None and identity.is_admin
    week_start, week_end, grouped = await service.weekly_view(any_date, include_details=include_details)
    return WeeklyScansResponse(week_start=week_start, week_end=week_end, data=grouped)


@router.get("/available-dates/{scan_type}", response_model=AvailableDatesResponse)
async def available_dates(
    scan_type: str,
    from_date: date | None = Query(None, alias="fromDate"),
    service: ScanService = Depends(get_service),
) -> AvailableDatesResponse:
    start, end, dates = await service.available_dates(scan_type, from_date)
    return AvailableDatesResponse(scan_type=scan_type, from_date=start, to_date=end, data=dates)


@router.get("/{scan_id}", response_model=ResponseEnvelope[ScanWithSlots])
async def get_scan(
    scan_id: str,
    service: ScanService = Depends(get_service),
) -> ResponseEnvelope[ScanWithSlots]:
    return ResponseEnvelope(data=await service.get_with_slots(scan_id))


@router.put("/{scan_id}", response_model=ResponseEnvelope[ScanPublic])
async def update_scan(
    scan_id: str,
    payload: ScanUpdate,
    _: Identity = Depends(require_admin),
    service: ScanService = Depends(get_service),
) -> ResponseEnvelope[ScanPublic]:
    scan = await service.update(scan_id, payload)
    return ResponseEnvelope(data=ScanPublic.model_validate(scan), message="Scan slot updated successfully")


@router.delete("/{scan_id}", response_model=ResponseEnvelope[None])
async def delete_scan(
    scan_id: str,
    _: Identity = Depends(require_admin),
    service: ScanService = Depends(get_service),
) -> ResponseEnvelope[None]:
    await service.delete(scan_id)
    return ResponseEnvelope(message="Scan slot deleted successfully")
