from typing import Annotated
import logging

from fastapi import APIRouter, Depends, HTTPException

from epg_guide.dependencies import build_pipeline, get_guide_store, get_refresh_coordinator
from epg_guide.errors import DecodeError, NetworkError, ParseError
from epg_guide.schemas import (
    EPGRequest,
    EPGResponse,
    ErrorDetail,
    GuideLoadRequest,
    GuideLoadResponse,
    ProgramResponse,
)
from epg_guide.services.embedded_parser_service import extract_playlist_channels
from epg_guide.services.guide_pipeline import GuidePipeline, GuideSource
from epg_guide.services.guide_query_service import get_current_program, get_epg_data
from epg_guide.services.guide_store import GuideStore
from epg_guide.services.refresh_coordinator import RefreshCoordinator, RefreshSkipped


logger = logging.getLogger(__name__)

main_router = APIRouter()


def get_pipeline(store: Annotated[GuideStore, Depends(get_guide_store)]) -> GuidePipeline:
    return build_pipeline(store)


def _error(status_code: int, code: str, exc: Exception) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail=ErrorDetail(code=code, message=str(exc)).model_dump(),
    )


@main_router.get("/health")
async def health_check(
    store: Annotated[GuideStore, Depends(get_guide_store)],
    coordinator: Annotated[RefreshCoordinator, Depends(get_refresh_coordinator)],
) -> dict:
    """Health check endpoint"""
    return {
        "status": "ok",
        "refresh_in_progress": coordinator.is_refreshing(),
        "cache": store.stats(),
    }


@main_router.post("/guide/load", response_model=GuideLoadResponse)
async def load_guide(
    request: GuideLoadRequest,
    pipeline: Annotated[GuidePipeline, Depends(get_pipeline)],
    coordinator: Annotated[RefreshCoordinator, Depends(get_refresh_coordinator)],
) -> GuideLoadResponse:
    """
    Load a guide source, match it against the playlist and cache the programs
    """
    source = GuideSource(
        url=request.source_url,
        path=request.source_path,
        content=request.content,
        format=request.format,
    )

    playlist = None
    if request.playlist_channels is not None:
        playlist = [channel.to_playlist_channel() for channel in request.playlist_channels]
    elif request.playlist_m3u is not None:
        playlist = extract_playlist_channels(request.playlist_m3u)

    logger.info(f"Guide load triggered via API: {source.describe()}")
    try:
        result = await coordinator.execute(lambda: pipeline.run(source, playlist))
    except RefreshSkipped as exc:
        raise _error(409, "REFRESH_IN_PROGRESS", exc)
    except NetworkError as exc:
        raise _error(502, "NETWORK_ERROR", exc)
    except DecodeError as exc:
        raise _error(422, "DECODE_ERROR", exc)
    except ParseError as exc:
        raise _error(422, "PARSE_ERROR", exc)
    except FileNotFoundError as exc:
        raise _error(404, "SOURCE_NOT_FOUND", exc)
    except OSError as exc:
        raise _error(422, "SOURCE_UNREADABLE", exc)

    return GuideLoadResponse(**result.to_dict())


@main_router.post("/epg", response_model=EPGResponse)
async def get_epg(
    request: EPGRequest,
    store: Annotated[GuideStore, Depends(get_guide_store)],
) -> EPGResponse:
    """
    Get cached EPG data for multiple channels within a time window
    """
    return await get_epg_data(store, request)


@main_router.get("/guide/{channel_id}/now", response_model=ProgramResponse)
async def current_program(
    channel_id: str,
    store: Annotated[GuideStore, Depends(get_guide_store)],
    timezone: str = "UTC",
) -> ProgramResponse:
    """Program currently airing on a guide channel"""
    program = await get_current_program(store, channel_id)
    if program is None:
        raise HTTPException(status_code=404, detail=f"No current program cached for {channel_id}")
    try:
        return ProgramResponse.from_program(program, timezone)
    except (KeyError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=f"Invalid timezone: {timezone}") from exc
