import logging
import re
from datetime import timedelta
from typing import Optional

from lxml import etree # type: ignore

from epg_guide.errors import ParseError
from epg_guide.services.guide_types import EpisodeNumber, GuideChannel, GuideProgram, ParsedGuide
from epg_guide.utils.text import clean_text, simple_hash
from epg_guide.utils.timezone import DateFormatError, duration_minutes, parse_xmltv_time, to_epoch_millis

logger = logging.getLogger(__name__)

DEFAULT_UNTITLED_TITLE = "Untitled program"
DEFAULT_PROGRAM_LENGTH = timedelta(minutes=30)
MAX_TEXT_LENGTH = 500
CREDIT_ROLES = ("director", "actor", "writer")

_XML_DECLARATION_RE = re.compile(r'^\s*<\?xml[^>]*\?>')
_EPISODE_RE = re.compile(r'(\d+)\s*\.\s*(\d+)')


def parse_xmltv(text: str, *, untitled_title: str = DEFAULT_UNTITLED_TITLE) -> ParsedGuide:
    """
    Parse an XMLTV document into channels and per-channel programs

    Args:
        text: Complete XMLTV document
        untitled_title: Title used for programmes without a <title>

    Returns:
        ParsedGuide with programs sorted by start time per channel

    Raises:
        ParseError: If the document is not well-formed or has no <tv> root
    """
    root = _load_root(text)

    logger.debug("  Extracting channels...")
    guide = ParsedGuide(channels=_parse_channels(root))
    logger.debug(f"    Found {len(guide.channels)} valid channels")

    logger.debug("  Extracting programs...")
    skipped = 0
    for programme in root.iterfind('programme'):
        program = _parse_single_program(programme, untitled_title)
        if program is None:
            skipped += 1
            continue
        guide.add_program(program)

    guide.sort_programs()

    if skipped:
        logger.warning(f"Skipped {skipped} malformed programme element(s)")
    logger.info(f"XMLTV parsing complete: {len(guide.channels)} channels, {guide.program_count} programs")

    return guide


def _load_root(text: str) -> etree._Element:
    """Parse the document and check for the <tv> root element"""
    if not text or not text.strip():
        raise ParseError("Empty XMLTV document")

    # lxml rejects str input that still carries an encoding declaration
    body = _XML_DECLARATION_RE.sub('', text, count=1)
    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)

    try:
        root = etree.fromstring(body, parser)
    except etree.XMLSyntaxError as e:
        logger.error(f"  XML parsing error: {e}")
        raise ParseError(f"XMLTV document is not well-formed: {e}") from e

    if root is None or root.tag != 'tv':
        tag = None if root is None else root.tag
        logger.error(f"  Unexpected XMLTV root element: {tag}")
        raise ParseError(f"Expected <tv> root element, found <{tag}>")

    logger.debug(f"  XML document loaded (root tag: {root.tag})")
    return root


def _parse_channels(root: etree._Element) -> dict[str, GuideChannel]:
    """Extract channels from XMLTV root element"""
    channels: dict[str, GuideChannel] = {}

    for channel in root.iterfind('channel'):
        xmltv_id = channel.get('id')
        if not xmltv_id:
            logger.debug("Skipping channel with missing ID attribute")
            continue

        # Get display name (first one or fallback to ID)
        display_name = _get_text(channel, 'display-name', default=xmltv_id)

        icon_url = None
        icon_elem = channel.find('icon')
        if icon_elem is not None:
            icon_url = icon_elem.get('src') or None

        channels[xmltv_id] = GuideChannel(
            id=xmltv_id,
            name=display_name or xmltv_id,
            logo=icon_url,
            country=_get_text(channel, 'country'),
        )

    return channels


def _parse_single_program(programme: etree._Element, untitled_title: str) -> Optional[GuideProgram]:
    """Parse single programme element, returning None when it must be skipped"""
    channel_id = programme.get('channel')
    start_str = programme.get('start')
    stop_str = programme.get('stop')

    if not channel_id or not start_str:
        logger.debug("Skipping programme without channel or start attribute")
        return None

    try:
        start_time = parse_xmltv_time(start_str)
        end_time = parse_xmltv_time(stop_str) if stop_str else start_time + DEFAULT_PROGRAM_LENGTH
    except DateFormatError as e:
        logger.warning(f"Skipping programme on {channel_id}: {e}")
        return None

    if end_time <= start_time:
        logger.warning(f"Skipping programme on {channel_id}: stop {stop_str} is not after start {start_str}")
        return None

    title = clean_text(_get_text(programme, 'title'), MAX_TEXT_LENGTH) or untitled_title
    description = _get_text(programme, 'desc')
    category = _get_text(programme, 'category')

    return GuideProgram(
        id=build_program_id(channel_id, to_epoch_millis(start_time), title),
        channel_id=channel_id,
        title=title,
        start_time=start_time,
        end_time=end_time,
        duration=duration_minutes(start_time, end_time),
        description=clean_text(description, MAX_TEXT_LENGTH) if description else None,
        genre=[clean_text(category, MAX_TEXT_LENGTH)] if category else None,
        rating=_get_text(programme, 'rating/value'),
        episode=_parse_episode(programme),
        credits=_parse_credits(programme),
    )


def build_program_id(channel_id: str, start_millis: int, title: str) -> str:
    """Stable id for identical channel + start + title"""
    return f"xmltv_{channel_id}_{start_millis}_{simple_hash(title)}"


def _parse_episode(programme: etree._Element) -> Optional[EpisodeNumber]:
    """Read 0-based 'season.episode' numbering and store it 1-based"""
    elements = programme.findall('episode-num')
    if not elements:
        return None

    elements.sort(key=lambda elem: elem.get('system') != 'xmltv_ns')
    match = _EPISODE_RE.search(elements[0].text or '')
    if not match:
        return None

    return EpisodeNumber(season=int(match.group(1)) + 1, episode=int(match.group(2)) + 1)


def _parse_credits(programme: etree._Element) -> Optional[dict[str, list[str]]]:
    credits_elem = programme.find('credits')
    if credits_elem is None:
        return None

    credits: dict[str, list[str]] = {}
    for role in CREDIT_ROLES:
        names = [clean_text(elem.text, MAX_TEXT_LENGTH) for elem in credits_elem.iterfind(role)]
        names = [name for name in names if name]
        if names:
            credits[role] = names

    return credits or None


def _get_text(element: etree._Element, tag: str, default: Optional[str] = None) -> Optional[str]:
    """Safely extract text from XML element"""
    child = element.find(tag)
    if child is None or not child.text or not child.text.strip():
        return default
    return child.text.strip()
