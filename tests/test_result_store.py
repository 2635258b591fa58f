"""
Unit tests for ResultStore and its backends.
"""
import json
import logging
import shutil
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from quizcraft.errors import StorageError
from quizcraft.models import ScoreResult
from quizcraft.result_store import STORAGE_KEY, JsonFileBackend, MemoryBackend, ResultStore


class SteppingClock:
    """Clock returning a later time on every call."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(minutes=5)
        return value


class FailingBackend:
    """Backend whose every operation fails."""

    def get(self, key):
        raise StorageError("quota exceeded")

    def set(self, key, value):
        raise StorageError("quota exceeded")


class TestResultStore(unittest.TestCase):
    """Test cases for saving and querying results."""

    def setUp(self):
        logging.disable(logging.CRITICAL)
        self.clock = SteppingClock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
        self.backend = MemoryBackend()
        self.store = ResultStore(self.backend, clock=self.clock)

    def tearDown(self):
        logging.disable(logging.NOTSET)

    def test_save_appends(self):
        """Test that each save appends to the stored array."""
        self.store.save_result("Part 1.json", 2, 3, 67, {1: "A"})
        self.store.save_result("Part 1.json", 3, 3, 100, {1: "B"})

        stored = json.loads(self.backend.get(STORAGE_KEY))
        self.assertEqual(len(stored), 2)
        self.assertEqual(stored[0]["sessionFilename"], "Part 1.json")
        self.assertEqual(stored[0]["answers"], {"1": "A"})
        self.assertEqual(stored[1]["percentage"], 100)

    def test_latest_result_is_latest_date(self):
        """Test that the latest result is chosen by date, not position."""
        self.store.save_result("Part 1.json", 1, 3, 33, {})
        self.store.save_result("Part 1.json", 3, 3, 100, {})
        self.store.save_result("Part 2.json", 0, 2, 0, {})

        latest = self.store.get_latest_result("Part 1.json")

        self.assertEqual(latest.score, 3)
        self.assertEqual(latest.date, "2024-05-01T12:05:00+00:00")

    def test_latest_result_out_of_insertion_order(self):
        """Test dates that were stored out of order."""
        entries = [
            {"sessionFilename": "s", "score": 2, "total": 2, "percentage": 100, "date": "2024-05-02T00:00:00Z", "answers": {}},
            {"sessionFilename": "s", "score": 1, "total": 2, "percentage": 50, "date": "2024-05-01T00:00:00Z", "answers": {}},
        ]
        self.backend.set(STORAGE_KEY, json.dumps(entries))

        self.assertEqual(self.store.get_latest_result("s").score, 2)

    def test_latest_result_missing(self):
        """Test that unknown sets have no latest result."""
        self.assertIsNone(self.store.get_latest_result("unknown.json"))

    def test_save_score(self):
        """Test saving from a ScoreResult."""
        saved = self.store.save_score("Part 1.json", ScoreResult(2, 4, 50), {1: "A", 2: "B"})

        self.assertEqual((saved.score, saved.total, saved.percentage), (2, 4, 50))
        self.assertEqual(len(self.store.get_all_results()), 1)

    def test_corrupt_storage_reads_empty(self):
        """Test that corrupt stored data is treated as empty and not overwritten."""
        self.backend.set(STORAGE_KEY, "{not json")

        self.assertEqual(self.store.get_all_results(), [])
        self.assertIsNone(self.store.save_result("s", 1, 1, 100, {}))
        self.assertEqual(self.backend.get(STORAGE_KEY), "{not json")

    def test_corrupt_entries_skipped(self):
        """Test that individual unreadable entries are skipped."""
        self.backend.set(STORAGE_KEY, json.dumps([{"score": 1}, "junk", {"sessionFilename": "ok"}]))

        results = self.store.get_all_results()

        self.assertEqual([r.session_filename for r in results], ["ok"])

    def test_backend_failure_is_swallowed(self):
        """Test that storage failures never propagate."""
        store = ResultStore(FailingBackend())

        self.assertIsNone(store.save_result("s", 1, 1, 100, {}))
        self.assertEqual(store.get_all_results(), [])
        self.assertIsNone(store.get_latest_result("s"))


class TestJsonFileBackend(unittest.TestCase):
    """Test cases for the file-backed key-value store."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.path = self.temp_dir / "nested" / "results.json"

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_missing_file_reads_none(self):
        """Test that a missing file has no values."""
        self.assertIsNone(JsonFileBackend(self.path).get(STORAGE_KEY))

    def test_round_trip_and_other_keys_kept(self):
        """Test that writes create the file and keep unrelated keys."""
        backend = JsonFileBackend(self.path)
        backend.set("other", "value")
        backend.set(STORAGE_KEY, "[]")

        self.assertEqual(backend.get("other"), "value")
        self.assertEqual(backend.get(STORAGE_KEY), "[]")

    def test_corrupt_file_raises_storage_error(self):
        """Test that unreadable files raise StorageError."""
        self.path.parent.mkdir(parents=True)
        self.path.write_text("not json", encoding='utf-8')

        with self.assertRaises(StorageError):
            JsonFileBackend(self.path).get(STORAGE_KEY)

    def test_store_persists_across_instances(self):
        """Test that results survive a new store instance on the same file."""
        ResultStore(JsonFileBackend(self.path)).save_result("Part 1.json", 1, 2, 50, {1: "A"})

        results = ResultStore(JsonFileBackend(self.path)).get_all_results()

        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].answers, {"1": "A"})


if __name__ == '__main__':
    unittest.main()
