"""
Structured logging helpers for consistent log formatting.
"""
import logging

from epg_guide.services.guide_types import MappingResult, ParsedGuide


def log_section_start(logger: logging.Logger, section_name: str) -> None:
    logger.info(f"Starting: {section_name}")


def log_section_end(logger: logging.Logger, section_name: str) -> None:
    logger.info(f"Completed: {section_name}")


def log_parse_summary(logger: logging.Logger, guide_format: str, guide: ParsedGuide) -> None:
    """
    Log parse result summary.

    Args:
        logger: Logger instance
        guide_format: Parser that produced the guide ('xmltv' or 'embedded')
        guide: Parse result
    """
    logger.info(
        f"Parsed {guide_format} guide: {len(guide.channels)} channels, "
        f"{guide.program_count} programs across {len(guide.programs)} channels"
    )


def log_mapping_summary(logger: logging.Logger, playlist_size: int, mapping: MappingResult) -> None:
    by_id = sum(1 for match in mapping.matches.values() if match.method == "id")
    logger.info(
        f"Mapping summary - Playlist: {playlist_size}, Mapped: {len(mapping.map)} "
        f"(by id: {by_id}, by name: {len(mapping.map) - by_id}), Coverage: {mapping.coverage}%"
    )
