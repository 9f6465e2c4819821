from datetime import date, timedelta
from pathlib import Path
import sys

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scanbook.core.database import Base, build_engine  # noqa: E402
from scanbook.core.security import Identity  # noqa: E402
from scanbook.modules.bookings.models import Booking  # noqa: E402,F401
from scanbook.modules.scan_types.models import ScanType  # noqa: E402,F401
from scanbook.modules.scans.models import Scan  # noqa: E402,F401


@pytest_asyncio.fixture
async def db_session():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)
    async with SessionLocal() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def admin_identity() -> Identity:
    return Identity(id="admin-1", username="radiology-admin", name="Radiology Admin", roles=frozenset({"admin"}))


@pytest.fixture
def patient_identity() -> Identity:
    return Identity(id="user-1", username="asha", name="Asha Rao", roles=frozenset({"user"}))


@pytest.fixture
def other_identity() -> Identity:
    return Identity(id="user-2", username="vikram", name="Vikram Shah", roles=frozenset({"user"}))


@pytest.fixture
def next_week() -> date:
    return date.today() + timedelta(days=7)
