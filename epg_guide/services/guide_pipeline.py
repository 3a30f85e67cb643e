"""
Guide Pipeline

Coordinates loading, parsing, channel matching and caching for one guide source.
"""
from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Literal

import httpx

from epg_guide.errors import ParseError
from epg_guide.services.channel_matcher import DEFAULT_COUNTRY_ATTR, DEFAULT_MIN_SIMILARITY, match_channels
from epg_guide.services.embedded_parser_service import parse_embedded
from epg_guide.services.guide_loader import DEFAULT_TIMEOUT, load_from_file, load_from_url
from epg_guide.services.guide_store import GuideStore
from epg_guide.services.guide_types import GuideParser, MappingResult, ParsedGuide, PlaylistChannel
from epg_guide.services.xmltv_parser_service import DEFAULT_UNTITLED_TITLE, parse_xmltv
from epg_guide.utils.file_operations import sanitize_url_for_logging
from epg_guide.utils.logging_helpers import (
    log_mapping_summary,
    log_parse_summary,
    log_section_end,
    log_section_start,
)
from epg_guide.utils.timezone import ensure_utc, utc_now


logger = logging.getLogger(__name__)

GuideFormat = Literal["auto", "xmltv", "embedded"]

# Parser strategies by format name; options are bound per pipeline in parser_for
GUIDE_PARSERS: dict[str, Callable[..., ParsedGuide]] = {
    "xmltv": parse_xmltv,
    "embedded": parse_embedded,
}


@dataclass(slots=True)
class GuideSource:
    """Where guide text comes from: exactly one of url, path or content."""
    url: str | None = None
    path: str | None = None
    content: str | None = None
    format: GuideFormat = "auto"

    def __post_init__(self) -> None:
        provided = [value for value in (self.url, self.path, self.content) if value]
        if len(provided) != 1:
            raise ValueError("Exactly one of url, path or content must be provided")

    def describe(self) -> str:
        if self.url:
            return sanitize_url_for_logging(self.url)
        if self.path:
            return self.path
        return f"<inline {len(self.content or '')} chars>"


@dataclass(slots=True)
class PipelineResult:
    source: str
    guide_format: str
    started_at: datetime
    completed_at: datetime
    channels_parsed: int = 0
    programs_parsed: int = 0
    channels_cached: list[str] = field(default_factory=list)
    mapping: MappingResult | None = None

    @property
    def duration_seconds(self) -> float:
        return max(0.0, (self.completed_at - self.started_at).total_seconds())

    def to_dict(self) -> dict:
        payload = {
            "status": "success",
            "source": self.source,
            "format": self.guide_format,
            "channels_parsed": self.channels_parsed,
            "programs_parsed": self.programs_parsed,
            "channels_cached": len(self.channels_cached),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": self.duration_seconds,
        }
        if self.mapping is not None:
            payload["mapping"] = dict(self.mapping.map)
            payload["coverage"] = self.mapping.coverage
        return payload


def detect_guide_format(text: str) -> Literal["xmltv", "embedded"]:
    """
    Guess the parser for a guide document

    Raises:
        ParseError: If the text looks like neither XMLTV nor a playlist
    """
    stripped = (text or "").lstrip("\ufeff \t\r\n")
    if stripped.startswith("<"):
        return "xmltv"
    if stripped.startswith("#EXTM3U") or "#EXTINF" in stripped:
        return "embedded"
    raise ParseError("Unrecognized guide format: expected XMLTV or an M3U playlist")


class GuidePipeline:
    """Load -> parse -> match -> cache for a single guide source."""

    def __init__(
        self,
        store: GuideStore,
        *,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
        country_attr_key: str = DEFAULT_COUNTRY_ATTR,
        local_tz: tzinfo | None = None,
        untitled_title: str = DEFAULT_UNTITLED_TITLE,
        fetch_timeout: float = DEFAULT_TIMEOUT,
        parse_timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.store = store
        self.min_similarity = min_similarity
        self.country_attr_key = country_attr_key
        self.local_tz = local_tz
        self.untitled_title = untitled_title
        self.fetch_timeout = fetch_timeout
        self.parse_timeout = parse_timeout if parse_timeout and parse_timeout > 0 else None
        self.client = client

    def parser_for(self, guide_format: Literal["xmltv", "embedded"], now: datetime) -> GuideParser:
        """Bind the registered parser for a format to this pipeline's options"""
        options = {
            "xmltv": {"untitled_title": self.untitled_title},
            "embedded": {"now": now, "local_tz": self.local_tz},
        }
        return functools.partial(GUIDE_PARSERS[guide_format], **options[guide_format])

    async def run(
        self,
        source: GuideSource,
        playlist: Sequence[PlaylistChannel] | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
        now: datetime | None = None,
    ) -> PipelineResult:
        """
        Load, parse and cache one guide source

        When a playlist is given only matched guide channels are cached;
        otherwise every parsed channel with programs is cached.

        Raises:
            NetworkError, DecodeError, ParseError: Structural failures; the store is left untouched
        """
        now = ensure_utc(now) if now else utc_now()
        started_at = utc_now()
        description = source.describe()
        log_section_start(logger, f"guide refresh from {description}")

        text = await self._load(source, cancel_event)

        guide_format = source.format if source.format != "auto" else detect_guide_format(text)
        guide = await self._parse(self.parser_for(guide_format, now), text)
        log_parse_summary(logger, guide_format, guide)

        mapping = None
        if playlist is not None:
            mapping = match_channels(
                playlist,
                guide.channels,
                country_attr_key=self.country_attr_key,
                min_similarity=self.min_similarity,
            )
            log_mapping_summary(logger, len(playlist), mapping)
            targets = list(dict.fromkeys(mapping.map.values()))
        else:
            targets = list(guide.programs)

        cached = []
        for guide_id in targets:
            programs = guide.programs.get(guide_id)
            if not programs:
                logger.debug(f"No programs parsed for mapped channel {guide_id}")
                continue
            await self.store.set(guide_id, programs, now)
            cached.append(guide_id)

        log_section_end(logger, f"guide refresh from {description} ({len(cached)} channels cached)")

        return PipelineResult(
            source=description,
            guide_format=guide_format,
            started_at=started_at,
            completed_at=utc_now(),
            channels_parsed=len(guide.channels),
            programs_parsed=guide.program_count,
            channels_cached=cached,
            mapping=mapping,
        )

    async def _load(self, source: GuideSource, cancel_event: asyncio.Event | None) -> str:
        if source.url:
            return await load_from_url(
                source.url,
                cancel_event,
                client=self.client,
                timeout=self.fetch_timeout,
            )
        if source.path:
            return await load_from_file(source.path)
        return source.content or ""

    async def _parse(self, parser: GuideParser, text: str) -> ParsedGuide:
        """Run a parser in the default executor with optional timeout protection"""
        loop = asyncio.get_running_loop()
        parse_task = loop.run_in_executor(None, parser, text)
        if self.parse_timeout is None:
            return await parse_task
        try:
            return await asyncio.wait_for(parse_task, timeout=self.parse_timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Guide parsing timed out after {self.parse_timeout}s")
            raise ParseError("Guide parsing timed out - document may be too large or malformed") from e
