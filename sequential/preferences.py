"""Import preferences persistence (hidden-file and subdirectory toggles)."""
from __future__ import annotations

import json
import logging
from pathlib import Path

from sequential import config
from sequential.models import ImportPreferences, ImportPreferencesUpdate

logger = logging.getLogger("sequential")


class PreferencesManager:
    """Loads and saves the user's import toggles."""

    def __init__(self, storage_path: Path):
        self.storage_path = storage_path
        self._preferences = ImportPreferences(
            importHidden=config.IMPORT_HIDDEN,
            importSubdirectories=config.IMPORT_SUBDIRECTORIES,
        )
        self._load()

    def _load(self):
        """Load preferences from JSON storage."""
        if not self.storage_path.exists():
            return

        try:
            content = self.storage_path.read_text()
            if not content.strip():
                return
            data = json.loads(content)
            if isinstance(data, dict):
                self._preferences = ImportPreferences(**{**self._preferences.model_dump(), **data})
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load preferences file: {e}")

    def _save(self):
        """Save preferences to JSON storage."""
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        self.storage_path.write_text(json.dumps(self._preferences.model_dump(), indent=2))

    def get(self) -> ImportPreferences:
        return self._preferences.model_copy()

    def update(self, changes: ImportPreferencesUpdate) -> ImportPreferences:
        values = changes.model_dump(exclude_none=True)
        if values:
            self._preferences = self._preferences.model_copy(update=values)
            self._save()
            logger.info(f"Updated import preferences: {values}")
        return self.get()


# Global instance backed by SEQUENTIAL_PREFERENCES_PATH
preferences_manager = PreferencesManager(config.PREFERENCES_PATH)
