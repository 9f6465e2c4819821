import asyncio

from alembic import context

from scanbook.core.config import settings
from scanbook.core.database import Base, build_engine, resolve_async_database_url
from scanbook.core.log_config import configure_logging
from scanbook.modules.bookings.models import Booking  # noqa: F401
from scanbook.modules.scan_types.models import ScanType  # noqa: F401
from scanbook.modules.scans.models import Scan  # noqa: F401

config = context.config
configure_logging(settings.log_level)
target_metadata = Base.metadata


def run_migrations_offline():
    url = resolve_async_database_url(settings.database_url)
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online():
    connectable = build_engine(settings.database_url)
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
