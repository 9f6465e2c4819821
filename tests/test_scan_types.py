import pytest
from pydantic import ValidationError

from factories import seed_scan, seed_scan_type
from scanbook.core.exceptions import ConflictError, NotFoundError
from scanbook.modules.scan_types.schemas import ScanTypeWrite
from scanbook.modules.scan_types.service import ScanTypeService


@pytest.mark.asyncio
async def test_create_and_list_scan_types(db_session, admin_identity):
    service = ScanTypeService(db_session)
    created = await service.create(ScanTypeWrite(name="  MRI Scan ", duration=45), admin_identity)
    await service.create(ScanTypeWrite(name="CT Scan", duration=30), admin_identity)

    assert created.name == "MRI Scan"
    assert created.created_by == admin_identity.id
    assert await service.list_names() == ["CT Scan", "MRI Scan"]


@pytest.mark.asyncio
async def test_scan_type_names_are_unique_ignoring_case(db_session, admin_identity):
    service = ScanTypeService(db_session)
    await service.create(ScanTypeWrite(name="Ultrasound", duration=20), admin_identity)

    with pytest.raises(ConflictError):
        await service.create(ScanTypeWrite(name="ULTRASOUND", duration=25), admin_identity)


def test_scan_type_duration_bounds():
    with pytest.raises(ValidationError):
        ScanTypeWrite(name="Flash", duration=4)
    with pytest.raises(ValidationError):
        ScanTypeWrite(name="Marathon", duration=301)
    with pytest.raises(ValidationError):
        ScanTypeWrite(name="   ", duration=30)


@pytest.mark.asyncio
async def test_delete_blocked_while_scans_reference_type(db_session, next_week):
    scan_type = await seed_scan_type(db_session, name="MRI Scan", duration=45)
    for start in ("08:00", "12:00", "16:00"):
        await seed_scan(db_session, next_week, scan_type="MRI Scan", start_time=start, duration=45, total_slots=2)

    service = ScanTypeService(db_session)
    with pytest.raises(ConflictError) as excinfo:
        await service.delete(scan_type.scan_type_id)

    assert excinfo.value.status_code == 409
    assert "currently used in 3 scan(s)" in excinfo.value.detail


@pytest.mark.asyncio
async def test_delete_unused_type(db_session):
    scan_type = await seed_scan_type(db_session, name="DEXA", duration=20)
    service = ScanTypeService(db_session)

    await service.delete(scan_type.scan_type_id)

    assert await service.list_names() == []
    with pytest.raises(NotFoundError):
        await service.delete(scan_type.scan_type_id)


@pytest.mark.asyncio
async def test_rename_blocked_while_in_use_but_duration_editable(db_session, next_week):
    scan_type = await seed_scan_type(db_session, name="X-Ray", duration=15)
    await seed_scan(db_session, next_week)
    service = ScanTypeService(db_session)

    with pytest.raises(ConflictError):
        await service.update(scan_type.scan_type_id, ScanTypeWrite(name="Radiograph", duration=15))

    updated = await service.update(scan_type.scan_type_id, ScanTypeWrite(name="X-Ray", duration=20))
    assert updated.duration_minutes == 20
