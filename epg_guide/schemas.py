from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from zoneinfo import ZoneInfo

from epg_guide.services.guide_types import GuideProgram, PlaylistChannel
from epg_guide.utils.timezone import convert_to_timezone, parse_iso8601_to_utc, DateFormatError


def _validate_timezone_name(v: str) -> str:
    if v == "UTC":
        return v
    try:
        ZoneInfo(v)
        return v
    except (KeyError, ValueError):
        raise ValueError(f"Invalid timezone: {v}. Must be a valid IANA timezone (e.g., 'Europe/London', 'America/New_York') or 'UTC'")


class PlaylistChannelIn(BaseModel):
    """Playlist channel supplied by the caller"""
    name: str = Field(..., description="Display name")
    id: str | None = Field(None, description="Playlist-native channel id")
    attrs: dict[str, str] = Field(default_factory=dict, description="Playlist attributes (tvg-id, tvg-country, ...)")

    def to_playlist_channel(self) -> PlaylistChannel:
        return PlaylistChannel(name=self.name, id=self.id, attrs=dict(self.attrs))


class GuideLoadRequest(BaseModel):
    """Load a guide source and bind it to a playlist"""
    source_url: str | None = Field(None, description="HTTP(S) URL of an XMLTV document or playlist")
    source_path: str | None = Field(None, description="Local path of a guide file (.xml, .xml.gz, .m3u)")
    content: str | None = Field(None, description="Inline guide text")
    format: Literal["auto", "xmltv", "embedded"] = Field("auto", description="Parser to use")
    playlist_channels: list[PlaylistChannelIn] | None = Field(None, description="Playlist channels to match")
    playlist_m3u: str | None = Field(None, description="M3U playlist whose #EXTINF entries are matched")

    @field_validator("source_url")
    @classmethod
    def validate_source_url(cls, v: str | None) -> str | None:
        if v is not None and not v.lower().startswith(("http://", "https://")):
            raise ValueError(f"Guide source URL must be HTTP/HTTPS: {v}")
        return v

    @model_validator(mode="after")
    def validate_single_source(self):
        provided = [value for value in (self.source_url, self.source_path, self.content) if value]
        if len(provided) != 1:
            raise ValueError("Exactly one of source_url, source_path or content must be provided")
        if self.playlist_channels is not None and self.playlist_m3u is not None:
            raise ValueError("Provide playlist_channels or playlist_m3u, not both")
        return self


class GuideLoadResponse(BaseModel):
    """Result of a guide load"""
    status: str
    source: str
    format: str
    channels_parsed: int
    programs_parsed: int
    channels_cached: int
    started_at: str
    completed_at: str
    duration_seconds: float
    mapping: dict[str, str] | None = None
    coverage: int | None = None


class ChannelEPGRequest(BaseModel):
    """Single channel EPG request"""
    channel_id: str = Field(..., description="Guide channel id")


class EPGRequest(BaseModel):
    """EPG data request"""
    channels: list[ChannelEPGRequest] = Field(..., min_length=1, description="List of channels")
    timezone: str = Field(default="UTC", description="Timezone for response timestamps (e.g., 'UTC', 'Europe/London', 'America/New_York')")
    from_date: str = Field(..., description="ISO8601 datetime for start of EPG range (e.g., '2025-10-09T00:00:00Z')")
    to_date: str = Field(..., description="ISO8601 datetime for end of EPG range (e.g., '2025-10-10T00:00:00Z')")

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate timezone string"""
        return _validate_timezone_name(v)

    @field_validator('from_date', 'to_date')
    @classmethod
    def validate_date_format(cls, v: str) -> str:
        """Validate ISO8601 datetime format using centralized parser"""
        try:
            parse_iso8601_to_utc(v)
            return v
        except DateFormatError:
            raise ValueError(f"Invalid datetime format: {v}. Must be valid ISO8601 format (e.g., '2025-10-09T00:00:00Z' or '2025-10-09T00:00:00+00:00')")

    @model_validator(mode='after')
    def validate_date_range(self):
        """Validate that from_date is before to_date using centralized parser"""
        from_dt = parse_iso8601_to_utc(self.from_date)
        to_dt = parse_iso8601_to_utc(self.to_date)

        if from_dt >= to_dt:
            raise ValueError(f"from_date ({self.from_date}) must be before to_date ({self.to_date})")

        return self


class EpisodeResponse(BaseModel):
    season: int
    episode: int


class ProgramResponse(BaseModel):
    """Single program data"""
    id: str
    channel_id: str
    title: str
    start_time: str
    stop_time: str
    duration: int
    description: str | None = None
    genre: list[str] | None = None
    rating: str | None = None
    episode: EpisodeResponse | None = None
    credits: dict[str, list[str]] | None = None

    @classmethod
    def from_program(cls, program: GuideProgram, timezone_str: str = "UTC") -> "ProgramResponse":
        return cls(
            id=program.id,
            channel_id=program.channel_id,
            title=program.title,
            start_time=convert_to_timezone(program.start_time, timezone_str),
            stop_time=convert_to_timezone(program.end_time, timezone_str),
            duration=program.duration,
            description=program.description,
            genre=program.genre,
            rating=program.rating,
            episode=(
                EpisodeResponse(season=program.episode.season, episode=program.episode.episode)
                if program.episode else None
            ),
            credits=program.credits,
        )


class EPGResponse(BaseModel):
    """EPG data response"""
    timestamp: str
    timezone: str = Field(..., description="Timezone used for all timestamps in response")
    channels_requested: int
    channels_found: int
    total_programs: int
    epg: dict[str, list[ProgramResponse]] = Field(..., description="EPG data grouped by guide channel id")


class ErrorDetail(BaseModel):
    """Standard error detail"""
    code: str = Field(..., description="Error code (e.g., 'NETWORK_ERROR', 'PARSE_ERROR')")
    message: str = Field(..., description="Human-readable error message")
