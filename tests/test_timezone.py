"""
Tests for timestamp parsing and time helpers.
"""
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from epg_guide.utils.timezone import (
    DateFormatError,
    clock_time_today,
    convert_to_timezone,
    duration_minutes,
    local_timezone,
    parse_iso8601_to_utc,
    parse_xmltv_time,
    to_epoch_millis,
)


class TestXMLTVTime:
    """XMLTV 'YYYYMMDDHHMMSS [+-HHMM]' timestamps."""

    def test_without_offset_is_read_as_utc(self):
        assert parse_xmltv_time("20231225140000") == datetime(2023, 12, 25, 14, 0, tzinfo=timezone.utc)

    def test_positive_offset_is_subtracted(self):
        assert parse_xmltv_time("20231225140000 +0100") == datetime(2023, 12, 25, 13, 0, tzinfo=timezone.utc)

    def test_negative_offset_is_added(self):
        assert parse_xmltv_time("20080715003000 -0600") == datetime(2008, 7, 15, 6, 30, tzinfo=timezone.utc)

    def test_offset_without_whitespace(self):
        assert parse_xmltv_time("20231225140000+0530") == datetime(2023, 12, 25, 8, 30, tzinfo=timezone.utc)

    def test_offset_crosses_day_boundary(self):
        assert parse_xmltv_time("20240101003000 +0200") == datetime(2023, 12, 31, 22, 30, tzinfo=timezone.utc)

    def test_result_is_timezone_aware(self):
        assert parse_xmltv_time("20231225140000 +0100").tzinfo is not None

    @pytest.mark.parametrize("value", ["", "2023-12-25 14:00", "202312251400", "abcdefghijklmn"])
    def test_malformed_timestamps_raise(self, value):
        with pytest.raises(DateFormatError):
            parse_xmltv_time(value)

    def test_impossible_date_raises(self):
        with pytest.raises(DateFormatError):
            parse_xmltv_time("20231325140000")

    def test_date_format_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_xmltv_time("nope")


class TestISO8601:

    def test_zulu_suffix(self):
        assert parse_iso8601_to_utc("2025-10-09T00:00:00Z") == datetime(2025, 10, 9, tzinfo=timezone.utc)

    def test_offset_is_normalized(self):
        assert parse_iso8601_to_utc("2023-12-25T14:00:00+01:00") == datetime(2023, 12, 25, 13, tzinfo=timezone.utc)

    def test_naive_uses_default_zone(self):
        madrid = ZoneInfo("Europe/Madrid")
        assert parse_iso8601_to_utc("2023-12-25 14:00", madrid) == datetime(2023, 12, 25, 13, tzinfo=timezone.utc)

    def test_naive_defaults_to_utc(self):
        assert parse_iso8601_to_utc("2023-12-25 14:00") == datetime(2023, 12, 25, 14, tzinfo=timezone.utc)

    def test_invalid(self):
        with pytest.raises(DateFormatError):
            parse_iso8601_to_utc("yesterday")


class TestClockTimeToday:

    def test_resolves_on_local_day(self):
        now = datetime(2023, 12, 25, 23, 30, tzinfo=timezone.utc)
        madrid = ZoneInfo("Europe/Madrid")
        # 23:30 UTC is already Dec 26 in Madrid
        result = clock_time_today("10:00", now, madrid)
        assert result == datetime(2023, 12, 26, 9, 0, tzinfo=timezone.utc)

    def test_utc_zone(self):
        now = datetime(2023, 12, 25, 12, 0, tzinfo=timezone.utc)
        assert clock_time_today("7:05", now, timezone.utc) == datetime(2023, 12, 25, 7, 5, tzinfo=timezone.utc)

    @pytest.mark.parametrize("clock", ["24:00", "10:60", "10", "ab:cd"])
    def test_invalid_clock(self, clock):
        now = datetime(2023, 12, 25, 12, 0, tzinfo=timezone.utc)
        assert clock_time_today(clock, now, timezone.utc) is None


class TestHelpers:

    def test_duration_rounds_to_minutes(self):
        start = datetime(2023, 12, 25, 13, 0, tzinfo=timezone.utc)
        assert duration_minutes(start, start + timedelta(minutes=30)) == 30
        assert duration_minutes(start, start + timedelta(seconds=89)) == 1
        assert duration_minutes(start, start + timedelta(seconds=90)) == 2

    def test_duration_never_below_one(self):
        start = datetime(2023, 12, 25, 13, 0, tzinfo=timezone.utc)
        assert duration_minutes(start, start + timedelta(seconds=10)) == 1

    def test_epoch_millis(self):
        assert to_epoch_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000

    def test_convert_to_timezone(self):
        value = datetime(2023, 12, 25, 13, 0, tzinfo=timezone.utc)
        assert convert_to_timezone(value, "UTC") == "2023-12-25T13:00:00+00:00"
        assert convert_to_timezone(value, "Europe/Madrid") == "2023-12-25T14:00:00+01:00"

    def test_local_timezone_lookup(self):
        assert local_timezone("UTC") is timezone.utc
        assert local_timezone("Europe/Madrid") == ZoneInfo("Europe/Madrid")
        assert local_timezone(None) is not None

    def test_unknown_timezone(self):
        with pytest.raises(DateFormatError):
            local_timezone("Mars/Olympus_Mons")
