"""
Services package for the guide core

Loading, parsing, matching and caching of program-guide data.
"""
from epg_guide.services.guide_types import (
    GuideChannel,
    GuideProgram,
    MappingResult,
    ParsedGuide,
    PlaylistChannel,
)
from epg_guide.services.guide_loader import GuideBlob, load_from_blob, load_from_file, load_from_url
from epg_guide.services.xmltv_parser_service import parse_xmltv
from epg_guide.services.embedded_parser_service import extract_playlist_channels, parse_embedded
from epg_guide.services.channel_matcher import match_channels
from epg_guide.services.guide_store import GuideStore, NullDurableLayer
from epg_guide.services.guide_pipeline import GUIDE_PARSERS, GuidePipeline, GuideSource, detect_guide_format

__all__ = [
    'GuideChannel',
    'GuideProgram',
    'MappingResult',
    'ParsedGuide',
    'PlaylistChannel',
    'GuideBlob',
    'load_from_blob',
    'load_from_file',
    'load_from_url',
    'parse_xmltv',
    'parse_embedded',
    'extract_playlist_channels',
    'match_channels',
    'GuideStore',
    'NullDurableLayer',
    'GuidePipeline',
    'GuideSource',
    'detect_guide_format',
    'GUIDE_PARSERS',
]
