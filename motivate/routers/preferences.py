"""Read and update the persisted playback preferences."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..schemas import PreferencesResponse, PreferencesUpdate
from ..services import PreferenceStore, get_preference_store

router = APIRouter(prefix="/preferences", tags=["preferences"])


def _snapshot(store: PreferenceStore) -> PreferencesResponse:
    return PreferencesResponse(muted=store.muted, auto_advance=store.auto_advance)


@router.get("", response_model=PreferencesResponse)
async def read_preferences(store: PreferenceStore = Depends(get_preference_store)) -> PreferencesResponse:
    return _snapshot(store)


@router.put("", response_model=PreferencesResponse)
async def update_preferences(
    payload: PreferencesUpdate,
    store: PreferenceStore = Depends(get_preference_store),
) -> PreferencesResponse:
    if payload.muted is not None:
        store.muted = payload.muted
    if payload.auto_advance is not None:
        store.auto_advance = payload.auto_advance
    return _snapshot(store)


__all__ = ["router"]
