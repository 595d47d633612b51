"""Tests for netmeter.store -- in-memory and JSON-lines result stores."""

import json
import os
import shutil
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from unittest import mock

from netmeter.errors import ResultNotFound, StorageError
from netmeter.models import SpeedTestResult
from netmeter.store import JsonlResultStore, MemoryResultStore

BASE_TIME = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


def _result(rid, user="alice", minutes=0, **overrides):
    fields = dict(
        id=rid,
        user_id=user,
        download_speed=94.2,
        upload_speed=18.75,
        ping=12.0,
        jitter=2.5,
        isp="Acme Fiber",
        ip_address="198.51.100.4",
        country="TR",
        region="Ankara",
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )
    fields.update(overrides)
    return SpeedTestResult(**fields)


class _StoreContract:
    """Behaviour every store must share; mixed into concrete test cases."""

    def make_store(self):
        raise NotImplementedError

    def test_round_trip(self):
        store = self.make_store()
        original = _result("1")
        store.save_result(original)
        self.assertEqual(store.get_result_by_id("1"), original)

    def test_unknown_id(self):
        store = self.make_store()
        with self.assertRaises(ResultNotFound) as ctx:
            store.get_result_by_id("missing")
        self.assertEqual(ctx.exception.result_id, "missing")

    def test_by_user_oldest_first(self):
        store = self.make_store()
        store.save_result(_result("3", minutes=20))
        store.save_result(_result("1", minutes=0))
        store.save_result(_result("x", user="bob", minutes=5))
        store.save_result(_result("2", minutes=10))

        found = store.get_results_by_user_id("alice")
        self.assertEqual([r.id for r in found], ["1", "2", "3"])

    def test_by_user_empty(self):
        self.assertEqual(self.make_store().get_results_by_user_id("nobody"), [])

    def test_delete(self):
        store = self.make_store()
        store.save_result(_result("1"))
        store.save_result(_result("2"))
        store.delete_result("1")

        with self.assertRaises(ResultNotFound):
            store.get_result_by_id("1")
        self.assertEqual(store.get_result_by_id("2").id, "2")

    def test_delete_missing_is_noop(self):
        store = self.make_store()
        store.save_result(_result("1"))
        store.delete_result("nope")
        self.assertEqual(len(store.get_results_by_user_id("alice")), 1)


class TestMemoryResultStore(_StoreContract, unittest.TestCase):
    def make_store(self):
        return MemoryResultStore()


class TestJsonlResultStore(_StoreContract, unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.path = os.path.join(self.tmpdir, "nested", "results.jsonl")

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def make_store(self):
        return JsonlResultStore(self.path)

    def test_survives_new_instance(self):
        original = _result("1", isp="Türk Telekom")
        JsonlResultStore(self.path).save_result(original)

        reopened = JsonlResultStore(self.path).get_result_by_id("1")
        self.assertEqual(reopened, original)
        self.assertEqual(reopened.created_at, BASE_TIME)

    def test_one_line_per_save(self):
        store = self.make_store()
        store.save_result(_result("1"))
        store.save_result(_result("2"))
        with open(self.path, encoding="utf-8") as fh:
            lines = [json.loads(line) for line in fh]
        self.assertEqual([d["id"] for d in lines], ["1", "2"])
        self.assertEqual(lines[0]["created_at"], BASE_TIME.isoformat())

    def test_corrupt_line_skipped(self):
        store = self.make_store()
        store.save_result(_result("1"))
        with open(self.path, "a", encoding="utf-8") as fh:
            fh.write("{not json\n\n")
        store.save_result(_result("2"))

        with self.assertLogs("netmeter.store", level="WARNING"):
            found = store.get_results_by_user_id("alice")
        self.assertEqual([r.id for r in found], ["1", "2"])

    def test_last_record_wins(self):
        store = self.make_store()
        store.save_result(_result("1", download_speed=10.0))
        store.save_result(_result("1", download_speed=20.0))
        self.assertEqual(store.get_result_by_id("1").download_speed, 20.0)

    def test_delete_rewrites_without_temp_file(self):
        store = self.make_store()
        store.save_result(_result("1"))
        store.save_result(_result("2"))
        store.delete_result("1")

        with open(self.path, encoding="utf-8") as fh:
            ids = [json.loads(line)["id"] for line in fh]
        self.assertEqual(ids, ["2"])
        self.assertEqual(os.listdir(os.path.dirname(self.path)), ["results.jsonl"])

    def test_missing_file_is_empty(self):
        self.assertEqual(self.make_store().get_results_by_user_id("alice"), [])

    def test_write_failure_raises_storage_error(self):
        store = self.make_store()
        with mock.patch("builtins.open", side_effect=PermissionError("read-only")):
            with self.assertRaises(StorageError):
                store.save_result(_result("1"))

    def test_default_path(self):
        store = JsonlResultStore()
        self.assertTrue(store.path.endswith(os.path.join(".netmeter", "results.jsonl")))


if __name__ == "__main__":
    unittest.main()
