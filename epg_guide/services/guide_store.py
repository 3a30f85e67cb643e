"""
Guide Store

Per-channel program cache with a fixed time-to-live. The in-memory map is
authoritative for the process; a durable layer is mirrored best-effort and
consulted when memory has nothing fresh.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from epg_guide.services.guide_types import CacheEntry, GuideProgram
from epg_guide.utils.timezone import ensure_utc, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TTL_MINUTES = 120
DEFAULT_KEY_PREFIX = "epg:xmltv:"

_ENTRY_ADAPTER = TypeAdapter(CacheEntry)


class DurableLayer(Protocol):
    """String key-value persistence used behind the in-memory cache."""

    async def read(self, key: str) -> str | None: ...

    async def write(self, key: str, value: str) -> None: ...


class NullDurableLayer:
    """Durable layer that persists nothing."""

    async def read(self, key: str) -> str | None:
        return None

    async def write(self, key: str, value: str) -> None:
        return None


class GuideStore:
    """
    Two-tier program cache keyed by guide channel id.

    Expiry is fixed at set time (now + ttl); reads never extend it.
    """

    def __init__(
        self,
        ttl_minutes: float = DEFAULT_TTL_MINUTES,
        durable: DurableLayer | None = None,
        *,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ) -> None:
        if ttl_minutes <= 0:
            raise ValueError("ttl_minutes must be > 0")
        self.ttl = timedelta(minutes=ttl_minutes)
        self.durable: DurableLayer = durable or NullDurableLayer()
        self.key_prefix = key_prefix
        self._memory: dict[str, CacheEntry] = {}
        self._hits = {"memory": 0, "durable": 0}
        self._misses = 0

    async def get(self, channel_id: str, now: datetime | None = None) -> list[GuideProgram] | None:
        """
        Return cached programs for a channel, or None if absent or expired

        Never raises: durable-layer failures are logged and treated as a miss.
        """
        now = ensure_utc(now) if now else utc_now()

        entry = self._memory.get(channel_id)
        if entry is not None and entry.expires_at > now:
            self._hits["memory"] += 1
            return entry.programs

        try:
            raw = await self.durable.read(self._key(channel_id))
            if not raw:
                self._misses += 1
                return None
            entry = _ENTRY_ADAPTER.validate_json(raw)
        except ValidationError as exc:
            logger.warning(f"Discarding unreadable cache entry for {channel_id}: {exc.error_count()} error(s)")
            self._misses += 1
            return None
        except Exception as exc:
            logger.warning(f"Durable cache read failed for {channel_id}: {exc}")
            self._misses += 1
            return None

        if entry.expires_at <= now:
            self._misses += 1
            return None

        self._memory[channel_id] = entry
        self._hits["durable"] += 1
        logger.debug(f"Rehydrated {len(entry.programs)} programs for {channel_id} from durable cache")
        return entry.programs

    async def set(self, channel_id: str, programs: Sequence[GuideProgram], now: datetime | None = None) -> None:
        """Replace the channel's entry; persistence failures are swallowed"""
        now = ensure_utc(now) if now else utc_now()
        entry = CacheEntry(programs=list(programs), expires_at=now + self.ttl)
        self._memory[channel_id] = entry

        try:
            payload = _ENTRY_ADAPTER.dump_json(entry).decode("utf-8")
            await self.durable.write(self._key(channel_id), payload)
        except Exception as exc:
            logger.warning(f"Durable cache write failed for {channel_id}; keeping memory copy only: {exc}")

    def purge_expired(self, now: datetime | None = None) -> int:
        """Drop expired in-memory entries, returning how many were removed"""
        now = ensure_utc(now) if now else utc_now()
        expired = [channel_id for channel_id, entry in self._memory.items() if entry.expires_at <= now]
        for channel_id in expired:
            del self._memory[channel_id]
        if expired:
            logger.debug(f"Purged {len(expired)} expired cache entries")
        return len(expired)

    def stats(self) -> dict[str, int]:
        return {
            "entries": len(self._memory),
            "memory_hits": self._hits["memory"],
            "durable_hits": self._hits["durable"],
            "misses": self._misses,
        }

    def _key(self, channel_id: str) -> str:
        return f"{self.key_prefix}{channel_id}"
