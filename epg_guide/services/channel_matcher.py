"""
Channel matching

Binds playlist channels to guide channels: an explicit tvg-id present in the
guide catalog wins outright, otherwise the closest display name (Levenshtein
similarity over normalized names, with a small same-country bonus) is taken if
it clears the threshold.
"""
import logging
from collections.abc import Mapping, Sequence

from rapidfuzz.distance import Levenshtein

from epg_guide.services.guide_types import ChannelMatch, GuideChannel, MappingResult, PlaylistChannel
from epg_guide.utils.text import normalize_name

logger = logging.getLogger(__name__)

GUIDE_ID_ATTR = "tvg-id"
DEFAULT_COUNTRY_ATTR = "tvg-country"
DEFAULT_MIN_SIMILARITY = 0.6
COUNTRY_BONUS = 0.1


def name_similarity(a: str, b: str) -> float:
    """
    1 - edit_distance / longest_length over normalized names

    similarity('La 1', 'La1') == 0.75 ('la 1' vs 'la1': one edit over four chars)
    """
    return _normalized_similarity(normalize_name(a), normalize_name(b))


def _normalized_similarity(left: str, right: str) -> float:
    longest = max(len(left), len(right), 1)
    return 1 - Levenshtein.distance(left, right) / longest


def playlist_key(channel: PlaylistChannel) -> str:
    """tvg-id attribute, else playlist id, else name (trimmed)"""
    for candidate in (channel.attrs.get(GUIDE_ID_ATTR), channel.id, channel.name):
        if candidate and candidate.strip():
            return candidate.strip()
    return ""


def match_channels(
    playlist: Sequence[PlaylistChannel],
    guide_channels: Mapping[str, GuideChannel],
    *,
    country_attr_key: str = DEFAULT_COUNTRY_ATTR,
    min_similarity: float = DEFAULT_MIN_SIMILARITY,
) -> MappingResult:
    """
    Map playlist channels to guide channel ids

    Args:
        playlist: Playlist channels, processed in order
        guide_channels: Guide catalog (id -> channel); iteration order breaks ties
        country_attr_key: Playlist attribute holding the country hint
        min_similarity: Minimum score for a name match (0..1)

    Returns:
        MappingResult with one entry per matched playlist key and rounded coverage
    """
    if not 0 <= min_similarity <= 1:
        raise ValueError(f"min_similarity must be within [0, 1], got {min_similarity}")

    result = MappingResult()
    candidates = [
        (channel.id, normalize_name(channel.name), (channel.country or "").strip().upper() or None)
        for channel in guide_channels.values()
    ]
    matched = 0

    for channel in playlist:
        key = playlist_key(channel)
        if not key:
            logger.debug("Skipping playlist channel without id or name")
            continue

        guide_id = (channel.attrs.get(GUIDE_ID_ATTR) or "").strip()
        if guide_id and guide_id in guide_channels:
            result.map[key] = guide_id
            result.matches[key] = ChannelMatch(guide_id=guide_id, score=1.0, method="id")
            matched += 1
            continue

        best = _best_name_candidate(channel, candidates, country_attr_key)
        if best is not None and best[1] >= min_similarity:
            best_id, best_score = best
            result.map[key] = best_id
            result.matches[key] = ChannelMatch(guide_id=best_id, score=min(best_score, 1.0), method="name")
            matched += 1
        else:
            logger.debug(f"No guide channel close enough to '{channel.name}'")

    result.coverage = int(matched * 100 / len(playlist) + 0.5) if playlist else 0

    logger.info(f"Channel matching: {matched}/{len(playlist)} playlist channels mapped ({result.coverage}% coverage)")
    return result


def _best_name_candidate(
    channel: PlaylistChannel,
    candidates: list[tuple[str, str, str | None]],
    country_attr_key: str,
) -> tuple[str, float] | None:
    """Highest raw score; the first candidate wins ties"""
    name = normalize_name(channel.name or "")
    country = (channel.attrs.get(country_attr_key) or "").strip().upper() or None

    best: tuple[str, float] | None = None
    for candidate_id, candidate_name, candidate_country in candidates:
        score = _normalized_similarity(name, candidate_name)
        if country and candidate_country == country:
            score += COUNTRY_BONUS
        if best is None or score > best[1]:
            best = (candidate_id, score)

    return best
