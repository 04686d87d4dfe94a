"""API router for import preferences."""
from __future__ import annotations

from fastapi import APIRouter

from sequential.models import ImportPreferences, ImportPreferencesUpdate
from sequential.preferences import preferences_manager

preferences_router = APIRouter(prefix="/api/preferences", tags=["preferences"])


@preferences_router.get("", response_model=ImportPreferences)
def get_preferences():
    """Return the stored hidden-file and subdirectory toggles."""
    return preferences_manager.get()


@preferences_router.put("", response_model=ImportPreferences)
def update_preferences(changes: ImportPreferencesUpdate):
    """Update one or both import toggles."""
    return preferences_manager.update(changes)
