"""
Guide Query Service

Time-windowed lookups over cached program lists.
"""
import logging
from datetime import datetime

from epg_guide.schemas import EPGRequest, EPGResponse, ProgramResponse
from epg_guide.services.guide_store import GuideStore
from epg_guide.services.guide_types import GuideProgram
from epg_guide.utils.timezone import convert_to_timezone, ensure_utc, parse_iso8601_to_utc, utc_now

logger = logging.getLogger(__name__)


async def get_programs_in_window(
    store: GuideStore,
    channel_id: str,
    start: datetime,
    end: datetime,
    now: datetime | None = None,
) -> list[GuideProgram] | None:
    """
    Cached programs overlapping [start, end)

    Args:
        store: Guide store to read from
        channel_id: Guide channel id
        start: Window start
        end: Window end
        now: Clock used for cache expiry

    Returns:
        Programs in start-time order, or None when nothing is cached for the channel
    """
    programs = await store.get(channel_id, now)
    if programs is None:
        return None

    start, end = ensure_utc(start), ensure_utc(end)
    return [
        program for program in programs
        if program.start_time < end and program.end_time > start
    ]


async def get_current_program(
    store: GuideStore,
    channel_id: str,
    now: datetime | None = None,
) -> GuideProgram | None:
    """Program airing at ``now`` on the channel, if cached"""
    now = ensure_utc(now) if now else utc_now()
    programs = await store.get(channel_id, now)
    if not programs:
        return None

    for program in programs:
        if program.start_time > now:
            break
        if program.end_time > now:
            return program

    logger.debug(f"No program airing on {channel_id} at {now.isoformat()}")
    return None


async def get_epg_data(store: GuideStore, request: EPGRequest, now: datetime | None = None) -> EPGResponse:
    """
    Get cached EPG data for multiple channels

    Args:
        store: Guide store
        request: EPG request with channels, from_date, to_date, and timezone
        now: Clock used for cache expiry

    Returns:
        EPG data grouped by guide channel id with timestamps in requested timezone
    """
    now = ensure_utc(now) if now else utc_now()
    start_time = parse_iso8601_to_utc(request.from_date)
    end_time = parse_iso8601_to_utc(request.to_date)

    logger.info(f"Received EPG request: {len(request.channels)} channels, timezone={request.timezone}")
    logger.info(f"Date range: {start_time.isoformat()} to {end_time.isoformat()}")

    epg_data: dict[str, list[ProgramResponse]] = {}
    channels_found = 0
    total_programs = 0

    for channel in request.channels:
        if channel.channel_id in epg_data:
            continue

        programs = await get_programs_in_window(store, channel.channel_id, start_time, end_time, now)
        if programs is None:
            epg_data[channel.channel_id] = []
            continue

        channels_found += 1
        epg_data[channel.channel_id] = [
            ProgramResponse.from_program(program, request.timezone) for program in programs
        ]
        total_programs += len(programs)

    logger.info(f"EPG response: {channels_found} channels found, {total_programs} programs, timezone={request.timezone}")

    return EPGResponse(
        timestamp=convert_to_timezone(now, request.timezone),
        timezone=request.timezone,
        channels_requested=len(request.channels),
        channels_found=channels_found,
        total_programs=total_programs,
        epg=epg_data,
    )
