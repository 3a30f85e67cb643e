"""
Shared dataclasses used across the guide pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Protocol


@dataclass(frozen=True, slots=True)
class GuideChannel:
    """Channel as declared by a guide source."""
    id: str
    name: str
    logo: str | None = None
    country: str | None = None
    guide_url: str | None = None
    time_shift_minutes: int | None = None


@dataclass(frozen=True, slots=True)
class EpisodeNumber:
    """1-based season/episode pair."""
    season: int
    episode: int


@dataclass(frozen=True, slots=True)
class GuideProgram:
    """Single program airing on a guide channel."""
    id: str
    channel_id: str
    title: str
    start_time: datetime
    end_time: datetime
    duration: int
    description: str | None = None
    genre: list[str] | None = None
    rating: str | None = None
    episode: EpisodeNumber | None = None
    credits: dict[str, list[str]] | None = None


@dataclass(slots=True)
class ParsedGuide:
    """Result of a single parse: channel catalog plus per-channel programs."""
    channels: dict[str, GuideChannel] = field(default_factory=dict)
    programs: dict[str, list[GuideProgram]] = field(default_factory=dict)

    @property
    def program_count(self) -> int:
        return sum(len(items) for items in self.programs.values())

    def add_program(self, program: GuideProgram) -> None:
        self.programs.setdefault(program.channel_id, []).append(program)

    def sort_programs(self) -> None:
        for items in self.programs.values():
            items.sort(key=lambda program: program.start_time)


class GuideParser(Protocol):
    """Produces a ParsedGuide from raw guide text."""

    def __call__(self, text: str) -> ParsedGuide: ...


@dataclass(frozen=True, slots=True)
class PlaylistChannel:
    """Channel entry owned by the playlist subsystem."""
    name: str
    id: str | None = None
    attrs: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ChannelMatch:
    """How a playlist key was bound to a guide channel."""
    guide_id: str
    score: float
    method: Literal["id", "name"]


@dataclass(slots=True)
class MappingResult:
    """Playlist key -> guide channel id, with coverage percentage."""
    map: dict[str, str] = field(default_factory=dict)
    coverage: int = 0
    matches: dict[str, ChannelMatch] = field(default_factory=dict)


@dataclass(slots=True)
class CacheEntry:
    """Programs cached for one guide channel."""
    programs: list[GuideProgram]
    expires_at: datetime


__all__ = [
    "GuideChannel",
    "EpisodeNumber",
    "GuideProgram",
    "ParsedGuide",
    "GuideParser",
    "PlaylistChannel",
    "ChannelMatch",
    "MappingResult",
    "CacheEntry",
]
