"""
Embedded guide parser

Extracts channels and programs from guide directives carried inside an M3U
playlist:

    #EXTINF:-1 tvg-id="la1.es" tvg-logo="..." tvg-url="...",La 1
    #EXTEPG:url="http://example.com/guide.xml" shift="60"
    #EXTPROGRAM:start="2023-12-25 14:00" end="2023-12-25 15:30" title="Noticias"
    http://stream.example.com/la1

and, as a last resort, from free-text comments of the form

    # La 1: Noticias (14:00-15:00) - Evening news
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo

from epg_guide.services.guide_types import GuideChannel, GuideProgram, ParsedGuide, PlaylistChannel
from epg_guide.utils.text import clean_text, simple_hash, slugify_channel_id
from epg_guide.utils.timezone import (
    DateFormatError,
    clock_time_today,
    duration_minutes,
    ensure_utc,
    local_timezone,
    parse_iso8601_to_utc,
    to_epoch_millis,
    utc_now,
)

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 200
DEFAULT_PROGRAM_LENGTH = timedelta(minutes=30)
PLACEHOLDER_LENGTH = timedelta(hours=1)
PLACEHOLDER_TITLE = "Guide available externally"

CHANNEL_PREFIX = "#EXTINF:"
GUIDE_REFERENCE_PREFIXES = ("#EXTEPG:", "#EPG:")
PROGRAM_PREFIX = "#EXTPROGRAM:"

_EXTINF_RE = re.compile(r'^#EXTINF:([^,]*),(.*)$')
_ATTR_RE = re.compile(r'([\w-]+)="([^"]*)"')
_COMMENT_PROGRAM_RE = re.compile(
    r'^#\s*([^:]+):\s*([^(]+?)\s*\((\d{1,2}:\d{2})-(\d{1,2}:\d{2})\)\s*(?:-\s*(.*))?$'
)


@dataclass(slots=True)
class _ChannelContext:
    channel: GuideChannel
    declared_programs: int = 0


@dataclass(slots=True)
class _ScanState:
    guide: ParsedGuide
    now: datetime
    local_tz: tzinfo
    current: _ChannelContext | None = None
    directive_channels: set[str] = field(default_factory=set)


def parse_embedded(
    text: str,
    *,
    now: datetime | None = None,
    local_tz: tzinfo | None = None,
) -> ParsedGuide:
    """
    Parse guide data embedded in a playlist document

    Args:
        text: Playlist document (line oriented)
        now: Reference instant for placeholders and comment programs (default: current time)
        local_tz: Zone for naive declared times and 'today' (default: system local zone)

    Returns:
        ParsedGuide with programs sorted by start time per channel
    """
    state = _ScanState(
        guide=ParsedGuide(),
        now=ensure_utc(now) if now else utc_now(),
        local_tz=local_tz or local_timezone(),
    )

    lines = [line.strip() for line in (text or "").splitlines()]

    for line in lines:
        if not line:
            continue
        if line.startswith(CHANNEL_PREFIX):
            _start_channel(state, line)
        elif line.startswith(GUIDE_REFERENCE_PREFIXES):
            _apply_guide_reference(state, line)
        elif line.startswith(PROGRAM_PREFIX):
            _declare_program(state, line)
        elif not line.startswith('#'):
            _finish_channel(state)

    # a channel with no stream URL line never gets a placeholder
    state.current = None

    comment_programs = _scan_comment_programs(state, lines)
    state.guide.sort_programs()

    logger.info(
        f"Embedded guide parsing complete: {len(state.guide.channels)} channels, "
        f"{state.guide.program_count} programs ({comment_programs} from comments)"
    )
    return state.guide


def extract_playlist_channels(text: str) -> list[PlaylistChannel]:
    """Turn #EXTINF lines into PlaylistChannel records for matching"""
    channels = []
    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        if not line.startswith(CHANNEL_PREFIX):
            continue
        match = _EXTINF_RE.match(line)
        if not match:
            continue
        attrs = {key.lower(): value for key, value in _ATTR_RE.findall(match.group(1))}
        channels.append(PlaylistChannel(
            name=match.group(2).strip(),
            id=attrs.get('tvg-id') or None,
            attrs=attrs,
        ))
    return channels


def _start_channel(state: _ScanState, line: str) -> None:
    state.current = None

    match = _EXTINF_RE.match(line)
    if not match:
        logger.debug(f"Skipping malformed channel declaration: {line[:80]}")
        return

    title = match.group(2).strip()
    attrs = {key.lower(): value for key, value in _ATTR_RE.findall(match.group(1))}

    channel_id = attrs.get('tvg-id') or attrs.get('tvg-name') or slugify_channel_id(title)
    if not channel_id:
        logger.debug(f"Skipping channel declaration without usable id: {line[:80]}")
        return

    channel = GuideChannel(
        id=channel_id,
        name=title or channel_id,
        logo=attrs.get('tvg-logo') or None,
        country=attrs.get('tvg-country') or None,
        guide_url=attrs.get('tvg-url') or attrs.get('epg-url') or None,
        time_shift_minutes=_parse_int(attrs.get('tvg-shift')),
    )
    state.current = _ChannelContext(channel=channel)
    state.guide.channels[channel_id] = channel


def _apply_guide_reference(state: _ScanState, line: str) -> None:
    if state.current is None:
        return

    attrs = dict(_ATTR_RE.findall(line))
    channel = state.current.channel
    shift = _parse_int(attrs.get('shift'))
    state.current.channel = GuideChannel(
        id=channel.id,
        name=channel.name,
        logo=channel.logo,
        country=channel.country,
        guide_url=attrs.get('url') or channel.guide_url,
        time_shift_minutes=shift if shift is not None else channel.time_shift_minutes,
    )
    state.guide.channels[channel.id] = state.current.channel


def _declare_program(state: _ScanState, line: str) -> None:
    if state.current is None:
        return

    attrs = dict(_ATTR_RE.findall(line))
    start_str = attrs.get('start')
    title = clean_text(attrs.get('title'), MAX_TEXT_LENGTH)
    if not start_str or not title:
        logger.debug(f"Skipping incomplete program declaration: {line[:80]}")
        return

    try:
        start_time = parse_iso8601_to_utc(start_str, state.local_tz)
        end_str = attrs.get('end')
        end_time = (
            parse_iso8601_to_utc(end_str, state.local_tz)
            if end_str else start_time + DEFAULT_PROGRAM_LENGTH
        )
    except DateFormatError as e:
        logger.warning(f"Skipping program declaration on {state.current.channel.id}: {e}")
        return

    if end_time <= start_time:
        logger.warning(f"Skipping program declaration on {state.current.channel.id}: end is not after start")
        return

    description = attrs.get('desc')
    genre = attrs.get('genre')
    state.guide.add_program(_build_program(
        state.current.channel.id,
        title,
        start_time,
        end_time,
        description=clean_text(description, MAX_TEXT_LENGTH) if description else None,
        genre=[clean_text(genre, MAX_TEXT_LENGTH)] if genre else None,
    ))
    state.current.declared_programs += 1
    state.directive_channels.add(state.current.channel.id)


def _finish_channel(state: _ScanState) -> None:
    """Close the current channel at its stream URL line"""
    context = state.current
    state.current = None
    if context is None:
        return

    channel = context.channel
    if channel.guide_url and context.declared_programs == 0:
        state.guide.add_program(_build_program(
            channel.id,
            PLACEHOLDER_TITLE,
            state.now,
            state.now + PLACEHOLDER_LENGTH,
            description=f"See external guide: {channel.guide_url}",
        ))
        state.directive_channels.add(channel.id)


def _scan_comment_programs(state: _ScanState, lines: list[str]) -> int:
    """Best-effort '# Channel: Title (HH:MM-HH:MM) - Description' programs"""
    added = 0
    for line in lines:
        if not line.startswith('#') or line.startswith(('#EXT', '#EPG:')):
            continue

        match = _COMMENT_PROGRAM_RE.match(line)
        if not match:
            continue

        channel_name, title, start_clock, end_clock, description = match.groups()
        channel_name = channel_name.strip()
        channel_id = slugify_channel_id(channel_name)
        title = clean_text(title, MAX_TEXT_LENGTH)
        if not channel_id or not title or channel_id in state.directive_channels:
            continue

        start_time = clock_time_today(start_clock, state.now, state.local_tz)
        end_time = clock_time_today(end_clock, state.now, state.local_tz)
        if start_time is None or end_time is None or start_time >= end_time:
            continue

        state.guide.channels.setdefault(channel_id, GuideChannel(id=channel_id, name=channel_name))
        state.guide.add_program(_build_program(
            channel_id,
            title,
            start_time,
            end_time,
            description=clean_text(description, MAX_TEXT_LENGTH) if description else None,
        ))
        added += 1

    return added


def _build_program(
    channel_id: str,
    title: str,
    start_time: datetime,
    end_time: datetime,
    *,
    description: str | None = None,
    genre: list[str] | None = None,
) -> GuideProgram:
    return GuideProgram(
        id=build_program_id(to_epoch_millis(start_time), title),
        channel_id=channel_id,
        title=title,
        start_time=start_time,
        end_time=end_time,
        duration=duration_minutes(start_time, end_time),
        description=description,
        genre=genre,
    )


def build_program_id(start_millis: int, title: str) -> str:
    return f"embedded_{start_millis}_{simple_hash(title)}"


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None
