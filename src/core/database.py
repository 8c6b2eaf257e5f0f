"""
Async Database Session Management
SQLAlchemy 2.0 Async with connection pooling for PostgreSQL.

SQLite (tests, local runs) has no row locks, so units of work are
serialized per event loop; in-memory databases share one StaticPool connection.
"""
import asyncio
import weakref
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.core.config import settings


def _engine_options() -> dict[str, Any]:
    if settings.is_sqlite_memory:
        return {
            "echo": settings.db_echo,
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    if settings.is_sqlite:
        return {"echo": settings.db_echo}
    return {
        "echo": settings.db_echo,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,  # Verify connections before use
        "pool_recycle": 3600,  # Recycle connections after 1 hour
    }


engine: AsyncEngine = create_async_engine(settings.async_database_url, **_engine_options())

if settings.is_sqlite:
    # SQLite ignores foreign keys unless asked per connection
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Session factory
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


_sqlite_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock]" = (
    weakref.WeakKeyDictionary()
)


@asynccontextmanager
async def _unit_of_work_guard() -> AsyncIterator[None]:
    """Hold the per-loop SQLite lock for the whole session; no-op elsewhere."""
    if not settings.is_sqlite:
        yield
        return

    loop = asyncio.get_running_loop()
    lock = _sqlite_locks.get(loop)
    if lock is None:
        lock = _sqlite_locks[loop] = asyncio.Lock()
    async with lock:
        yield


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that yields an async database session.
    Services commit their own unit of work; anything left open is rolled back.
    """
    async with _unit_of_work_guard(), async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Create all tables."""
    from src.core.models import Base
    import src.modules  # noqa: F401  registers every model on the metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db() -> None:
    """Drop all tables."""
    from src.core.models import Base
    import src.modules  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
