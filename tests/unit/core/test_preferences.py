import asyncio
import tempfile
import unittest
from pathlib import Path

from disposable_camera.modules.base.preferences import (
    InMemoryKeyValueStore,
    ModulePreferences,
    PreferenceChange,
)


class ModulePreferencesTests(unittest.TestCase):

    def test_sync_write_and_remove(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            config_path = Path(tmp_dir) / "session.txt"
            config_path.write_text("hasLaunchedBefore = true\n", encoding="utf-8")

            observed: list[PreferenceChange] = []

            prefs = ModulePreferences(config_path, on_change=observed.append)
            self.assertTrue(prefs.get_bool("hasLaunchedBefore"))

            prefs.write_sync({"remainingShots": 24})
            snapshot = prefs.snapshot()
            self.assertEqual(snapshot["remainingShots"], "24")

            prefs.write_sync({}, remove_keys=["hasLaunchedBefore"])
            snapshot = prefs.snapshot()
            self.assertNotIn("hasLaunchedBefore", snapshot)
            self.assertTrue(any("remainingShots" in change.updated for change in observed))
            self.assertTrue(any("hasLaunchedBefore" in change.removed for change in observed))

    def test_key_value_accessors_persist(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            config_path = Path(tmp_dir) / "session.txt"

            prefs = ModulePreferences(config_path)
            prefs.set_int("remainingShots", 7)
            prefs.set_string("sessionName", "Beach Day")
            prefs.set_string("sessionAlbumIdentifier", "album-1")
            prefs.remove_key("sessionAlbumIdentifier")

            reloaded = ModulePreferences(config_path)
            self.assertEqual(reloaded.get_int("remainingShots"), 7)
            self.assertEqual(reloaded.get_string("sessionName"), "Beach Day")
            self.assertIsNone(reloaded.get_string("sessionAlbumIdentifier"))

    def test_unparseable_int_reads_as_none(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            config_path = Path(tmp_dir) / "session.txt"
            config_path.write_text("remainingShots = lots\n", encoding="utf-8")

            prefs = ModulePreferences(config_path)
            self.assertIsNone(prefs.get_int("remainingShots"))
            self.assertIsNone(prefs.get_int("missing"))

    def test_async_write(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            config_path = Path(tmp_dir) / "camera.txt"
            config_path.write_text("", encoding="utf-8")

            prefs = ModulePreferences(config_path)

            async def _run() -> None:
                await prefs.write_async({"filter.preset": "vivid"})
                await prefs.write_async({}, remove_keys=["filter.preset"])
                await prefs.write_async({"capture.flash_enabled": True})

            asyncio.run(_run())
            self.assertIsNone(prefs.get("filter.preset"))
            self.assertEqual(prefs.get("capture.flash_enabled"), "true")
            self.assertIn("capture.flash_enabled = true", config_path.read_text(encoding="utf-8"))

    def test_initial_data_skips_disk(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            config_path = Path(tmp_dir) / "session.txt"
            config_path.write_text("remainingShots = 3\n", encoding="utf-8")

            prefs = ModulePreferences(config_path, initial_data={"remainingShots": "10"})
            self.assertEqual(prefs.get_int("remainingShots"), 10)
            self.assertEqual(prefs.reload()["remainingShots"], "3")


class InMemoryKeyValueStoreTests(unittest.TestCase):

    def test_round_trip(self) -> None:
        store = InMemoryKeyValueStore()
        store.set_int("remainingShots", 12)
        store.set_string("sessionName", "Roll")

        self.assertEqual(store.get_int("remainingShots"), 12)
        self.assertEqual(store.get_string("sessionName"), "Roll")
        self.assertEqual(store.snapshot(), {"remainingShots": 12, "sessionName": "Roll"})

    def test_missing_and_removed_keys(self) -> None:
        store = InMemoryKeyValueStore({"sessionAlbumIdentifier": "album-9", "remainingShots": "x"})
        store.remove_key("sessionAlbumIdentifier")
        store.remove_key("never-set")

        self.assertIsNone(store.get_string("sessionAlbumIdentifier"))
        self.assertIsNone(store.get_int("remainingShots"))
        self.assertIsNone(store.get_int("missing"))


if __name__ == "__main__":
    unittest.main()
