import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from sequential.models import ImportPreferencesUpdate
from sequential.preferences import PreferencesManager
from sequential.routers import preferences as preferences_router


class PreferencesManagerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name) / "prefs" / "preferences.json"

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def test_defaults_without_file(self) -> None:
        prefs = PreferencesManager(self.path).get()
        self.assertFalse(prefs.importHidden)
        self.assertTrue(prefs.importSubdirectories)

    def test_update_persists_only_given_fields(self) -> None:
        manager = PreferencesManager(self.path)
        manager.update(ImportPreferencesUpdate(importHidden=True))

        reloaded = PreferencesManager(self.path).get()
        self.assertTrue(reloaded.importHidden)
        self.assertTrue(reloaded.importSubdirectories)
        self.assertEqual(json.loads(self.path.read_text())["importHidden"], True)

    def test_empty_update_does_not_write(self) -> None:
        PreferencesManager(self.path).update(ImportPreferencesUpdate())
        self.assertFalse(self.path.exists())

    def test_corrupt_file_falls_back_to_defaults(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json")
        with self.assertLogs("sequential", level="ERROR"):
            prefs = PreferencesManager(self.path).get()
        self.assertFalse(prefs.importHidden)

    def test_router_reads_and_updates(self) -> None:
        manager = PreferencesManager(self.path)
        with patch.object(preferences_router, "preferences_manager", manager):
            updated = preferences_router.update_preferences(ImportPreferencesUpdate(importSubdirectories=False))
            self.assertFalse(updated.importSubdirectories)
            self.assertFalse(preferences_router.get_preferences().importSubdirectories)


if __name__ == "__main__":
    unittest.main()
