"""Tests for netmeter.models."""

import unittest
from datetime import datetime, timezone

from netmeter.models import SpeedTestResult, new_result_id


class TestNewResultId(unittest.TestCase):
    def test_strictly_increasing(self):
        ids = [int(new_result_id()) for _ in range(1000)]
        self.assertEqual(ids, sorted(set(ids)))

    def test_is_numeric_string(self):
        rid = new_result_id()
        self.assertIsInstance(rid, str)
        self.assertTrue(rid.isdigit())


class TestSpeedTestResult(unittest.TestCase):
    def setUp(self):
        self.result = SpeedTestResult(
            id="1700000000000000000",
            user_id="alice",
            download_speed=94.2,
            upload_speed=18.75,
            ping=12.0,
            jitter=2.5,
            isp="Acme",
            ip_address="192.0.2.1",
            country="NL",
            region="Noord-Holland",
            created_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        )

    def test_to_dict(self):
        d = self.result.to_dict()
        self.assertEqual(d["created_at"], "2024-01-02T03:04:05+00:00")
        self.assertEqual(d["download_speed"], 94.2)
        self.assertEqual(d["ip_address"], "192.0.2.1")

    def test_round_trip(self):
        self.assertEqual(SpeedTestResult.from_dict(self.result.to_dict()), self.result)

    def test_from_dict_defaults(self):
        r = SpeedTestResult.from_dict({"id": 5})
        self.assertEqual(r.id, "5")
        self.assertEqual(r.user_id, "anonymous")
        self.assertEqual(r.isp, "")
        self.assertEqual(r.download_speed, 0.0)

    def test_from_dict_requires_id(self):
        with self.assertRaises(KeyError):
            SpeedTestResult.from_dict({"user_id": "alice"})

    def test_anonymous(self):
        self.assertFalse(self.result.is_anonymous)
        self.assertTrue(SpeedTestResult.from_dict({"id": "1"}).is_anonymous)

    def test_frozen(self):
        with self.assertRaises(AttributeError):
            self.result.ping = 1.0


if __name__ == "__main__":
    unittest.main()
