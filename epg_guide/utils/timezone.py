"""
Date and Time utilities

This module handles all date/time conversions and parsing for guide data.
Centralizes all timestamp parsing so every parser produces UTC instants.
"""
from datetime import datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging
import re

logger = logging.getLogger(__name__)

_XMLTV_TIME_RE = re.compile(
    r'^(\d{4})(\d{2})(\d{2})(\d{2})(\d{2})(\d{2})\s*(?:([+-])(\d{2})(\d{2}))?'
)
_CLOCK_RE = re.compile(r'^(\d{1,2}):(\d{2})$')


class DateFormatError(ValueError):
    """Raised when date format is invalid"""
    pass


def utc_now() -> datetime:
    """Current instant as a timezone-aware UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_epoch_millis(value: datetime) -> int:
    """Milliseconds since the Unix epoch"""
    return int(ensure_utc(value).timestamp() * 1000)


def local_timezone(name: str | None = None) -> tzinfo:
    """
    Resolve an IANA timezone name, falling back to the system local zone

    Args:
        name: IANA timezone (e.g. 'Europe/Madrid'), 'UTC' or None

    Returns:
        tzinfo instance

    Raises:
        DateFormatError: If the name is not a known timezone
    """
    if not name:
        return datetime.now().astimezone().tzinfo or timezone.utc
    if name == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise DateFormatError(f"Unknown timezone: '{name}'") from e


def parse_xmltv_time(time_str: str) -> datetime:
    """
    Convert XMLTV time format to a UTC datetime

    The 14 digits are read as UTC; a '+HHMM' offset means local time is ahead
    of UTC, so the offset is subtracted.

    Args:
        time_str: XMLTV time like '20080715003000 -0600'

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateFormatError: If the string is not a valid XMLTV timestamp
    """
    match = _XMLTV_TIME_RE.match(time_str.strip()) if time_str else None
    if not match:
        raise DateFormatError(f"Invalid XMLTV timestamp: '{time_str}'")

    year, month, day, hour, minute, second, sign, tz_hours, tz_mins = match.groups()

    try:
        dt = datetime(
            int(year), int(month), int(day),
            int(hour), int(minute), int(second),
            tzinfo=timezone.utc,
        )
    except ValueError as e:
        raise DateFormatError(f"Invalid XMLTV timestamp: '{time_str}'") from e

    if sign:
        offset_minutes = int(tz_hours) * 60 + int(tz_mins)
        if sign == '-':
            offset_minutes = -offset_minutes
        dt -= timedelta(minutes=offset_minutes)

    return dt


def parse_iso8601_to_utc(date_str: str, default_tz: tzinfo = timezone.utc) -> datetime:
    """
    Parse ISO8601 date string and convert to UTC datetime

    Args:
        date_str: ISO8601 datetime string (e.g., '2025-10-09T00:00:00Z', '2025-10-09 14:00')
        default_tz: Zone applied to strings without an offset

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateFormatError: If the date string format is invalid
    """
    try:
        normalized = date_str.strip()
        if normalized.endswith('Z'):
            normalized = normalized[:-1] + '+00:00'
        dt = datetime.fromisoformat(normalized)
    except (ValueError, AttributeError) as e:
        raise DateFormatError(f"Invalid ISO8601 datetime format: '{date_str}'") from e

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=default_tz)
    return dt.astimezone(timezone.utc)


def clock_time_today(clock: str, now: datetime, local_tz: tzinfo) -> datetime | None:
    """
    Resolve an 'HH:MM' wall-clock time on the local calendar day of ``now``

    Returns:
        UTC datetime, or None if the clock string is not a valid time of day
    """
    match = _CLOCK_RE.match(clock.strip())
    if not match:
        return None

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None

    local_now = ensure_utc(now).astimezone(local_tz)
    local_dt = datetime(
        local_now.year, local_now.month, local_now.day, hours, minutes, tzinfo=local_tz
    )
    return local_dt.astimezone(timezone.utc)


def duration_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between two instants, rounded half up, never below 1"""
    seconds = (end - start).total_seconds()
    return max(1, int(seconds / 60 + 0.5))


def convert_to_timezone(value: datetime, target_tz: str) -> str:
    """
    Convert an instant to an ISO8601 string in the target timezone

    Args:
        value: Timezone-aware datetime
        target_tz: Target timezone (IANA format or 'UTC')

    Returns:
        ISO8601 timestamp in target timezone
    """
    dt = ensure_utc(value)

    if target_tz == "UTC":
        return dt.isoformat()

    return dt.astimezone(ZoneInfo(target_tz)).isoformat()
