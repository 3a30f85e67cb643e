"""
SQLite-backed durable layer for the guide store

Stores serialized cache entries as key/value rows. Every failure surfaces as a
StorageError; the guide store decides what to do with it.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from epg_guide.database import session_scope
from epg_guide.errors import StorageError
from epg_guide.models import CacheRecord


logger = logging.getLogger(__name__)


class SqliteDurableLayer:
    """Key/value persistence on the shared async SQLite engine."""

    async def read(self, key: str) -> str | None:
        try:
            async with session_scope() as session:
                result = await session.execute(
                    select(CacheRecord.value).where(CacheRecord.key == key)
                )
                return result.scalar_one_or_none()
        except (SQLAlchemyError, RuntimeError) as exc:
            raise StorageError(f"Failed to read cache key {key}: {exc}") from exc

    async def write(self, key: str, value: str) -> None:
        stmt = sqlite_insert(CacheRecord).values(
            key=key,
            value=value,
            updated_at=datetime.now(timezone.utc),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[CacheRecord.key],
            set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
        )
        try:
            async with session_scope() as session:
                await session.execute(stmt)
        except (SQLAlchemyError, RuntimeError) as exc:
            raise StorageError(f"Failed to write cache key {key}: {exc}") from exc
        logger.debug("Persisted cache key %s (%s bytes)", key, len(value))

