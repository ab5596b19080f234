import json
import os
import shutil
import tempfile
import unittest
from unittest import mock

from statsor.errors import StoreUnavailableError
from statsor.storage import JsonFileStore, MemoryStore, SCHEMA_VERSION


SAMPLE_TEAMS = [
    {"id": "t1", "name": "Eagles", "players": 11, "matches": 5, "wins": 3, "losses": 1, "draws": 1},
    {"id": "t2", "name": "Hawks ñ", "players": 0, "matches": 0, "wins": 0, "losses": 0, "draws": 0},
]


class StoreContractMixin:
    """Behaviour shared by every store implementation"""

    def make_store(self):
        raise NotImplementedError

    def test_absent_collection_is_none(self):
        store = self.make_store()
        self.assertIsNone(store.load("teams"))
        self.assertEqual(store.load_list("teams"), [])

    def test_round_trip(self):
        store = self.make_store()
        store.save("teams", SAMPLE_TEAMS)
        self.assertEqual(store.load("teams"), SAMPLE_TEAMS)

    def test_round_trip_empty_collection(self):
        store = self.make_store()
        store.save("teams", [])
        self.assertEqual(store.load("teams"), [])

    def test_round_trip_nested_values(self):
        store = self.make_store()
        items = [{"usage": {"teamsCreated": 2}, "tags": ["a", None, 1.5, True]}]
        store.save("subscriptions", items)
        self.assertEqual(store.load("subscriptions"), items)

    def test_save_overwrites(self):
        store = self.make_store()
        store.save("teams", SAMPLE_TEAMS)
        store.save("teams", SAMPLE_TEAMS[:1])
        self.assertEqual(store.load("teams"), SAMPLE_TEAMS[:1])

    def test_save_many_writes_all_collections(self):
        store = self.make_store()
        store.save_many({"teams": SAMPLE_TEAMS, "matches": [{"id": "m1"}]})
        self.assertEqual(store.load("teams"), SAMPLE_TEAMS)
        self.assertEqual(store.load("matches"), [{"id": "m1"}])

    def test_save_many_rejects_unserializable_without_writing(self):
        store = self.make_store()
        store.save("teams", SAMPLE_TEAMS)
        with self.assertRaises(StoreUnavailableError):
            store.save_many({"teams": [], "matches": [{"when": object()}]})
        self.assertEqual(store.load("teams"), SAMPLE_TEAMS)
        self.assertIsNone(store.load("matches"))

    def test_invalid_key_rejected(self):
        store = self.make_store()
        with self.assertRaises(ValueError):
            store.load("../etc/passwd")

    def test_delete(self):
        store = self.make_store()
        store.save("teams", SAMPLE_TEAMS)
        self.assertTrue(store.delete("teams"))
        self.assertIsNone(store.load("teams"))
        self.assertFalse(store.delete("teams"))


class TestMemoryStore(StoreContractMixin, unittest.TestCase):
    def make_store(self):
        return MemoryStore()

    def test_corrupted_value_degrades_to_empty(self):
        store = MemoryStore({"teams": "{not json"})
        with self.assertLogs("statsor.storage", level="WARNING"):
            self.assertEqual(store.load("teams"), [])

    def test_legacy_bare_list_is_accepted(self):
        store = MemoryStore({"teams": json.dumps(SAMPLE_TEAMS)})
        self.assertEqual(store.load("teams"), SAMPLE_TEAMS)

    def test_stored_value_carries_version(self):
        store = MemoryStore()
        store.save("teams", [])
        self.assertEqual(json.loads(store.raw("teams")), {"version": SCHEMA_VERSION, "items": []})


class TestJsonFileStore(StoreContractMixin, unittest.TestCase):
    def setUp(self):
        """Set up test environment with temporary directory"""
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        """Clean up test environment"""
        shutil.rmtree(self.temp_dir)

    def make_store(self):
        return JsonFileStore(data_dir=self.temp_dir)

    def test_creates_data_directory(self):
        nested = os.path.join(self.temp_dir, "a", "b")
        JsonFileStore(data_dir=nested)
        self.assertTrue(os.path.isdir(nested))

    def test_file_layout(self):
        store = self.make_store()
        store.save("teams", SAMPLE_TEAMS)
        with open(store.path_for("teams"), "r", encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(data["version"], SCHEMA_VERSION)
        self.assertEqual(data["items"], SAMPLE_TEAMS)
        self.assertFalse(os.path.exists(str(store.path_for("teams")) + ".tmp"))

    def test_corrupted_file_degrades_to_empty(self):
        store = self.make_store()
        with open(store.path_for("teams"), "w", encoding="utf-8") as f:
            f.write('{"version": 1, "items": [')
        with self.assertLogs("statsor.storage", level="WARNING"):
            self.assertEqual(store.load("teams"), [])

    def test_unexpected_shape_degrades_to_empty(self):
        store = self.make_store()
        with open(store.path_for("teams"), "w", encoding="utf-8") as f:
            json.dump({"teams": "nope"}, f)
        with self.assertLogs("statsor.storage", level="WARNING"):
            self.assertEqual(store.load("teams"), [])

    def test_legacy_bare_list_file(self):
        store = self.make_store()
        with open(store.path_for("teams"), "w", encoding="utf-8") as f:
            json.dump(SAMPLE_TEAMS, f)
        self.assertEqual(store.load("teams"), SAMPLE_TEAMS)

    def test_unreadable_collection_degrades_to_empty(self):
        store = self.make_store()
        # A directory where the file should be cannot be read as a file
        os.mkdir(store.path_for("teams"))
        with self.assertLogs("statsor.storage", level="ERROR"):
            self.assertEqual(store.load("teams"), [])

    def test_write_failure_leaves_existing_files(self):
        store = self.make_store()
        store.save("teams", SAMPLE_TEAMS)
        # Block the temp file for "matches" so its write fails
        os.mkdir(str(store.path_for("matches")) + ".tmp")
        with self.assertLogs("statsor.storage", level="ERROR"):
            with self.assertRaises(StoreUnavailableError):
                store.save_many({"teams": [], "matches": [{"id": "m1"}]})
        self.assertEqual(store.load("teams"), SAMPLE_TEAMS)
        self.assertFalse(os.path.exists(str(store.path_for("teams")) + ".tmp"))

    def failing_second_replace(self):
        real_replace = os.replace
        calls = []

        def replace(src, dst):
            calls.append(dst)
            if len(calls) == 2:
                raise OSError("disk full")
            real_replace(src, dst)
        return mock.patch("statsor.storage.os.replace", side_effect=replace)

    def test_failed_replace_restores_earlier_collections(self):
        store = self.make_store()
        store.save_many({"teams": [{"id": "t1"}], "matches": [{"id": "m1"}]})
        with self.failing_second_replace():
            with self.assertLogs("statsor.storage", level="ERROR"):
                with self.assertRaises(StoreUnavailableError):
                    store.save_many({"teams": [{"id": "t2"}], "matches": [{"id": "m2"}]})
        self.assertEqual(store.load("teams"), [{"id": "t1"}])
        self.assertEqual(store.load("matches"), [{"id": "m1"}])
        self.assertEqual(sorted(os.listdir(self.temp_dir)), ["matches.json", "teams.json"])

    def test_failed_replace_removes_new_collections(self):
        store = self.make_store()
        with self.failing_second_replace():
            with self.assertLogs("statsor.storage", level="ERROR"):
                with self.assertRaises(StoreUnavailableError):
                    store.save_many({"teams": [{"id": "t1"}], "matches": [{"id": "m1"}]})
        self.assertIsNone(store.load("teams"))
        self.assertIsNone(store.load("matches"))
        self.assertEqual(os.listdir(self.temp_dir), [])


if __name__ == '__main__':
    unittest.main()
