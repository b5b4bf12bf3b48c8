"""Application entry point for the Motivate API."""
from __future__ import annotations

import logging
import os
from typing import Iterable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import get_settings
from .database import init_db
from .routers import (
    admin_router,
    auth_router,
    background_router,
    preferences_router,
    realtime_router,
    videos_router,
)
from .routers.background import BACKGROUND_ROUTE
from .services.realtime import get_feed_broadcaster

logger = logging.getLogger(__name__)

settings = get_settings()
APP_NAME = settings.app_name
API_VERSION = settings.api_version

app = FastAPI(title=APP_NAME, version=API_VERSION)

cors_origins = os.getenv("CORS_ORIGINS")
if cors_origins:
    origins: Iterable[str] = [origin.strip() for origin in cors_origins.split(",") if origin.strip()]
else:
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(videos_router)
app.include_router(admin_router)
app.include_router(preferences_router)
app.include_router(realtime_router)
app.include_router(background_router)

app.mount(
    BACKGROUND_ROUTE,
    StaticFiles(directory=str(settings.background_video_dir), check_dir=False),
    name="background",
)


@app.on_event("startup")
async def _startup() -> None:
    """Create the local preference table before serving."""

    try:
        init_db()
    except Exception:  # pragma: no cover - best effort logging
        logger.exception("Database initialisation failed")
        raise
    logger.info("Motivate API ready (backend=%s)", settings.backend)


@app.on_event("shutdown")
async def _shutdown() -> None:
    if get_feed_broadcaster.cache_info().currsize:
        get_feed_broadcaster().stop()


@app.get("/api", tags=["system"])
def api_info() -> dict[str, str]:
    return {"service": APP_NAME, "version": API_VERSION}


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok", "backend": settings.backend}
