"""Scan type catalog routes."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from scanbook.core.database import get_db
from scanbook.core.deps import require_admin
from scanbook.core.security import Identity
from scanbook.modules.scan_types.schemas import ScanTypePublic, ScanTypeWrite
from scanbook.modules.scan_types.service import ScanTypeService
from scanbook.shared.schemas import ResponseEnvelope

router = APIRouter(prefix="/api/v1/scans", tags=["scan-types"])


def get_service(db: AsyncSession = Depends(get_db)) -> ScanTypeService:
    return ScanTypeService(db)


@router.get("/types", response_model=ResponseEnvelope[list[str]])
async def list_scan_type_names(
    service: ScanTypeService = Depends(get_service),
) -> ResponseEnvelope[list[str]]:
    return ResponseEnvelope(data=await service.list_names())


@router.get("/scan-types", response_model=ResponseEnvelope[list[ScanTypePublic]])
async def list_scan_types(
    _: Identity = Depends(require_admin),
    service: ScanTypeService = Depends(get_service),
) -> ResponseEnvelope[list[ScanTypePublic]]:
    scan_types = await service.list_all()
    return ResponseEnvelope(data=[ScanTypePublic.model_validate(item) for item in scan_types])


@router.post(
    "/scan-types",
    response_model=ResponseEnvelope[ScanTypePublic],
    status_code=status.HTTP_201_CREATED,
)
async def create_scan_type(
    payload: ScanTypeWrite,
    identity: Identity = Depends(require_admin),
    service: ScanTypeService = Depends(get_service),
) -> ResponseEnvelope[ScanTypePublic]:
    scan_type = await service.create(payload, identity)
    return ResponseEnvelope(data=ScanTypePublic.model_validate(scan_type), message="Scan type created successfully")


@router.put("/scan-types/{scan_type_id}", response_model=ResponseEnvelope[ScanTypePublic])
async def update_scan_type(
    scan_type_id: str,
    payload: ScanTypeWrite,
    _: Identity = Depends(require_admin),
    service: ScanTypeService = Depends(get_service),
) -> ResponseEnvelope[ScanTypePublic]:
    scan_type = await service.update(scan_type_id, payload)
    return ResponseEnvelope(data=ScanTypePublic.model_validate(scan_type), message="Scan type updated successfully")


@router.delete("/scan-types/{scan_type_id}", response_model=ResponseEnvelope[None])
async def delete_scan_type(
    scan_type_id: str,
    _: Identity = Depends(require_admin),
    service: ScanTypeService = Depends(get_service),
) -> ResponseEnvelope[None]:
    await service.delete(scan_type_id)
    return ResponseEnvelope(message="Scan type deleted successfully")
