"""Aggregate router exports."""
from .admin import router as admin_router
from .background import router as background_router
from .auth import router as auth_router
from .preferences import router as preferences_router
from .realtime import router as realtime_router
from .videos import router as videos_router

__all__ = [
    "admin_router",
    "background_router",
    "auth_router",
    "preferences_router",
    "realtime_router",
    "videos_router",
]
