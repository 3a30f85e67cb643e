"""
Shared fixtures for guide service tests.
"""
from datetime import datetime, timedelta, timezone

import pytest

from epg_guide.services.guide_types import GuideProgram


SAMPLE_XMLTV = '''<?xml version="1.0" encoding="UTF-8"?>
<tv generator-info-name="test">
  <channel id="la1.es">
    <display-name>La 1</display-name>
    <icon src="http://logos.example.com/la1.png"/>
    <country>ES</country>
  </channel>
  <channel id="bbc-one.uk">
    <display-name>BBC One</display-name>
  </channel>
  <programme channel="la1.es" start="20231225150000 +0100" stop="20231225160000 +0100">
    <title>Telediario</title>
    <desc>Evening   news
      bulletin</desc>
    <category>News</category>
  </programme>
  <programme channel="la1.es" start="20231225140000 +0100">
    <title>Noticias</title>
  </programme>
  <programme channel="bbc-one.uk" start="20231225180000" stop="20231225190000">
    <title>Doctor Who</title>
    <episode-num system="xmltv_ns">13.0.</episode-num>
    <credits>
      <director>Jane Doe</director>
      <actor>John Smith</actor>
      <actor>Ann Other</actor>
    </credits>
    <rating system="BBFC"><value>PG</value></rating>
  </programme>
</tv>
'''


@pytest.fixture
def sample_xmltv() -> str:
    return SAMPLE_XMLTV


@pytest.fixture
def t0() -> datetime:
    return datetime(2023, 12, 25, 12, 0, tzinfo=timezone.utc)


def _make_program(
    channel_id: str = "la1.es",
    title: str = "Noticias",
    start: datetime | None = None,
    minutes: int = 30,
) -> GuideProgram:
    start = start or datetime(2023, 12, 25, 13, 0, tzinfo=timezone.utc)
    end = start + timedelta(minutes=minutes)
    return GuideProgram(
        id=f"test_{channel_id}_{int(start.timestamp())}",
        channel_id=channel_id,
        title=title,
        start_time=start,
        end_time=end,
        duration=minutes,
        genre=["News"],
    )


@pytest.fixture
def program_factory():
    return _make_program
