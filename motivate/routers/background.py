"""Landing-page background video selection."""
from __future__ import annotations

from fastapi import APIRouter, Query

from ..config import get_settings
from ..schemas.background import BackgroundResponse
from ..services.background_video import BackgroundVideoSelector, discover_background_sources

router = APIRouter(prefix="/background", tags=["background"])

BACKGROUND_ROUTE = "/bg"


@router.get("", response_model=BackgroundResponse)
def background_endpoint(reduced_motion: bool = Query(default=False)) -> BackgroundResponse:
    """Pick one looping background for this page load, or the poster."""

    settings = get_settings()
    sources = discover_background_sources(settings.background_video_dir, url_prefix=BACKGROUND_ROUTE)
    selector = BackgroundVideoSelector(sources, poster=settings.background_poster, reduced_motion=reduced_motion)
    mode = selector.mount()
    return BackgroundResponse(
        mode=mode.value,
        source=selector.source,
        poster=selector.poster,
        display=selector.display,
        pool_size=len(sources),
    )


__all__ = ["BACKGROUND_ROUTE", "router"]
