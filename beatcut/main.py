import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from beatcut.api import media, websocket
from beatcut.config import get_settings
from beatcut.exceptions import BeatcutError
from beatcut.services.storage_service import LocalStorageService, get_storage_service

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


async def _cleanup_loop(storage: LocalStorageService, interval_seconds: int) -> None:
    """Sweep expired uploads and outputs until cancelled."""
    while True:
        try:
            await asyncio.to_thread(storage.cleanup_expired)
        except OSError as e:
            logger.error(f"[CLEANUP] Sweep failed: {e}")
        await asyncio.sleep(interval_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    storage = get_storage_service()
    storage.ensure_directories()
    cleanup_task = asyncio.create_task(_cleanup_loop(storage, settings.cleanup_interval_seconds))
    yield
    # Shutdown
    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BeatcutError)
async def beatcut_exception_handler(request: Request, exc: BeatcutError) -> JSONResponse:
    logger.warning(f"{exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Global exception handler to ensure errors return proper JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Routers
app.include_router(media.router, tags=["media"])
app.include_router(websocket.router, tags=["websocket"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "version": settings.app_version, "git_hash": settings.git_hash}


@app.get("/api/version")
async def get_version() -> dict[str, str]:
    """Return the backend version info."""
    return {"version": settings.app_version, "git_hash": settings.git_hash}
