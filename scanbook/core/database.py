"""Database engine and session helpers."""

from collections.abc import AsyncIterator

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.engine.url import URL
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from .config import settings

SUPPORTED_ASYNC_DIALECTS = {"postgresql+asyncpg", "mysql+asyncmy", "sqlite+aiosqlite"}
DRIVER_COERCIONS = {
    "postgres": "postgresql+asyncpg",
    "postgresql": "postgresql+asyncpg",
    "mysql": "mysql+asyncmy",
    "sqlite": "sqlite+aiosqlite",
}


def resolve_async_database_url(raw_url: str) -> str:
    """Ensure the configured DATABASE_URL uses an async-capable driver."""
    url = make_url(raw_url)
    drivername = url.drivername.lower()
    if drivername in SUPPORTED_ASYNC_DIALECTS:
        return raw_url

    base_driver = drivername.split("+", 1)[0]
    target_driver = DRIVER_COERCIONS.get(base_driver)
    if not target_driver:
        raise ValueError(
            f"Unsupported database dialect '{url.drivername}'. "
            "ScanBook currently supports PostgreSQL (asyncpg), "
            "MySQL (asyncmy), or SQLite with aiosqlite for testing."
        )

    coerced_url: URL = url.set(drivername=target_driver)
    return coerced_url.render_as_string(hide_password=False)


def _use_immediate_transactions(engine: AsyncEngine) -> None:
    """Open every SQLite transaction with BEGIN IMMEDIATE.

    Writers then queue on the busy timeout instead of failing with a
    lock-upgrade error when two requests book at the same moment.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine, applying SQLite locking rules when needed."""
    resolved = resolve_async_database_url(database_url)
    engine = create_async_engine(resolved, echo=echo, future=True)
    if make_url(resolved).get_backend_name() == "sqlite":
        _use_immediate_transactions(engine)
    return engine


class Base(DeclarativeBase):
    """Base declarative class with common metadata."""


DATABASE_URL = resolve_async_database_url(settings.database_url)

engine = build_engine(DATABASE_URL, echo=settings.debug)
AsyncSessionLocal = async_sessionmaker(
    engine,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields an async session."""
    async with AsyncSessionLocal() as session:
        yield session
