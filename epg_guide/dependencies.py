"""
Service wiring for the HTTP layer

Builds the process-wide guide store, refresh coordinator and pipeline from
settings. Core modules never import this; they take their collaborators as
arguments.
"""
import logging

from epg_guide.config import settings
from epg_guide.services.durable_layer import SqliteDurableLayer
from epg_guide.services.guide_pipeline import GuidePipeline
from epg_guide.services.guide_store import GuideStore, NullDurableLayer
from epg_guide.services.refresh_coordinator import RefreshCoordinator
from epg_guide.utils.timezone import local_timezone


logger = logging.getLogger(__name__)

_store: GuideStore | None = None
_coordinator: RefreshCoordinator | None = None


def get_guide_store() -> GuideStore:
    """Get or create the process-wide guide store."""
    global _store
    if _store is None:
        durable = SqliteDurableLayer() if settings.cache_backend == "sqlite" else NullDurableLayer()
        _store = GuideStore(ttl_minutes=settings.guide_cache_ttl_minutes, durable=durable)
        logger.debug(f"Created guide store with {type(durable).__name__}")
    return _store


def get_refresh_coordinator() -> RefreshCoordinator:
    """Get or create the process-wide refresh coordinator."""
    global _coordinator
    if _coordinator is None:
        _coordinator = RefreshCoordinator()
    return _coordinator


def build_pipeline(store: GuideStore) -> GuidePipeline:
    """Create a pipeline configured from settings."""
    return GuidePipeline(
        store,
        min_similarity=settings.match_min_similarity,
        country_attr_key=settings.match_country_attr_key,
        local_tz=local_timezone(settings.guide_local_timezone),
        untitled_title=settings.untitled_program_title,
        fetch_timeout=settings.guide_fetch_timeout_sec,
        parse_timeout=settings.guide_parse_timeout_sec,
    )


def reset_services() -> None:
    """
    Drop the cached singletons (mainly for testing).

    WARNING: Only use this in test environments!
    """
    global _store, _coordinator
    _store = None
    _coordinator = None
