"""
Async SQLite engine for the durable guide cache

The engine is process-wide: init_db() during startup, close_db() on shutdown.
"""
import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from epg_guide.models import Base

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def database_url(database_path: str) -> str:
    return f"sqlite+aiosqlite:///{database_path}"


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the cache engine"""
    if _session_factory is None:
        raise RuntimeError("Guide cache database not initialized. Call init_db() during startup.")
    return _session_factory


def _pragma_listener(journal_mode: str):
    def configure_sqlite(dbapi_conn, _):
        cursor = dbapi_conn.cursor()
        cursor.execute(f"PRAGMA journal_mode = {journal_mode}")
        cursor.execute("PRAGMA synchronous = NORMAL")
        cursor.close()

    return configure_sqlite


async def init_db(database_path: str, *, journal_mode: str = "WAL") -> None:
    """
    Create the cache engine and the guide_cache table

    Args:
        database_path: SQLite file; missing parent directories are created
        journal_mode: SQLite journal mode applied to every connection
    """
    global _engine, _session_factory

    logger.info(f"Opening guide cache database at {database_path} (journal mode {journal_mode})")
    Path(database_path).parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(
        database_url(database_path),
        pool_pre_ping=True,
        connect_args={"timeout": 30, "check_same_thread": False},
    )
    event.listen(engine.sync_engine, "connect", _pragma_listener(journal_mode))

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    _engine = engine
    _session_factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    logger.info("Guide cache database ready")


async def close_db() -> None:
    """Dispose the engine; safe to call when init_db() never ran"""
    global _engine, _session_factory
    engine, _engine, _session_factory = _engine, None, None
    if engine is not None:
        await engine.dispose()
        logger.info("Guide cache database closed")


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Session wrapped in a transaction that commits on exit and rolls back on error"""
    session_factory = get_session_factory()
    async with session_factory() as session:
        async with session.begin():
            yield session
