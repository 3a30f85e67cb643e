from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from epg_guide.config import settings, setup_logging
from epg_guide.database import close_db, init_db
from epg_guide.dependencies import get_guide_store, reset_services
from epg_guide.errors import GuideError
from epg_guide.routers import main_router
from epg_guide.schemas import ErrorDetail


setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the durable cache on startup, release it on shutdown"""
    logger.info("Starting Guide Service...")
    settings.log_summary()

    try:
        if settings.cache_backend == "sqlite":
            await init_db(settings.cache_database_path, journal_mode=settings.sqlite_journal_mode)
        else:
            logger.info("Durable cache disabled; serving from memory only")
    except Exception as e:
        logger.error(f"Failed to start Guide Service: {e}", exc_info=True)
        raise

    logger.info("Guide Service started")
    yield

    logger.info("Shutting down Guide Service...")
    purged = get_guide_store().purge_expired()
    logger.info(f"Cache at shutdown: {get_guide_store().stats()} ({purged} expired entries dropped)")
    reset_services()
    await close_db()
    logger.info("Guide Service stopped")


app = FastAPI(
    title="Guide Service",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(main_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log rejected requests and return a compact error list"""
    logger.error(f"Validation error for {request.method} {request.url.path}: {len(exc.errors())} problem(s)")

    errors = []
    for error in exc.errors():
        errors.append({
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "input": str(error.get("input", ""))[:100],
        })
        logger.debug(f"  {error.get('loc')}: {error.get('msg')}")

    return JSONResponse(status_code=422, content={"detail": errors})


@app.exception_handler(GuideError)
async def guide_error_handler(request: Request, exc: GuideError):
    """Guide failures not mapped by a route"""
    logger.error(f"Unhandled {type(exc).__name__} for {request.method} {request.url.path}: {exc}")
    detail = ErrorDetail(code=type(exc).__name__.upper(), message=str(exc))
    return JSONResponse(status_code=500, content={"detail": detail.model_dump()})
