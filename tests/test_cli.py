"""Tests for the speedtest.py command line entry point."""

import contextlib
import io
import json
import os
import tempfile
import unittest
from datetime import datetime, timezone
from unittest import mock

import speedtest
from netmeter.config import DEFAULTS, load_config
from netmeter.errors import ResultNotFound
from netmeter.models import SpeedTestResult
from netmeter.service import MeasurementReport, SpeedTestRun
from netmeter.store import JsonlResultStore, MemoryResultStore


def _result(**overrides):
    fields = dict(
        id="42",
        user_id="alice",
        download_speed=94.2,
        upload_speed=18.75,
        ping=12.0,
        jitter=2.5,
        created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return SpeedTestResult(**fields)


class _CliCase(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmpdir.cleanup)
        self.tmp = self._tmpdir.name

        config_file = os.path.join(self.tmp, "config.json")
        patchers = [
            mock.patch("netmeter.config._config_path", return_value=config_file),
            mock.patch("speedtest.configure_logging"),
        ]
        for p in patchers:
            p.start()
            self.addCleanup(p.stop)

    def run_main(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            speedtest.main(list(argv))
        return out.getvalue()


class TestHelpers(unittest.TestCase):
    def test_network_metadata_defaults_empty(self):
        args = speedtest.build_parser(dict(DEFAULTS)).parse_args(["--isp", "Acme"])
        self.assertEqual(
            speedtest._network_metadata(args),
            {"ip": "", "isp": "Acme", "country": "", "region": ""},
        )

    def test_build_store(self):
        self.assertIsInstance(speedtest._build_store("memory"), MemoryResultStore)
        store = speedtest._build_store("file", "/tmp/x.jsonl")
        self.assertIsInstance(store, JsonlResultStore)
        self.assertEqual(store.path, "/tmp/x.jsonl")

    def test_parse_config_value(self):
        self.assertIs(speedtest._parse_config_value("true"), True)
        self.assertEqual(speedtest._parse_config_value("4"), 4)
        self.assertEqual(speedtest._parse_config_value("alice"), "alice")


class TestParser(unittest.TestCase):
    def test_defaults(self):
        args = speedtest.build_parser(dict(DEFAULTS)).parse_args([])
        self.assertFalse(args.multi)
        self.assertFalse(args.memory)
        self.assertEqual(args.user, "anonymous")
        self.assertEqual(args.log_level, "WARNING")
        self.assertIsNone(args.csv)

    def test_config_drives_defaults(self):
        config = dict(DEFAULTS, user_id="bob", multi_connection=True, store="memory")
        args = speedtest.build_parser(config).parse_args([])
        self.assertEqual(args.user, "bob")
        self.assertTrue(args.multi)
        self.assertTrue(args.memory)

    def test_single_overrides_config(self):
        config = dict(DEFAULTS, multi_connection=True)
        args = speedtest.build_parser(config).parse_args(["--single"])
        self.assertFalse(args.multi)

    def test_log_level_case_insensitive(self):
        args = speedtest.build_parser(dict(DEFAULTS)).parse_args(["--log-level", "debug"])
        self.assertEqual(args.log_level, "DEBUG")


class TestMain(_CliCase):
    def test_history_empty(self):
        out = self.run_main("--memory", "--history")
        self.assertIn("No stored results", out)

    def test_history_json(self):
        path = os.path.join(self.tmp, "results.jsonl")
        JsonlResultStore(path).save_result(_result())
        out = self.run_main("--history-file", path, "--user", "alice", "--history", "--json")
        data = json.loads(out)
        self.assertEqual([r["id"] for r in data], ["42"])

    def test_show_unknown_exits_1(self):
        with self.assertRaises(SystemExit) as ctx:
            self.run_main("--memory", "--show", "nope")
        self.assertEqual(ctx.exception.code, 1)

    def test_delete(self):
        path = os.path.join(self.tmp, "results.jsonl")
        store = JsonlResultStore(path)
        store.save_result(_result())
        self.run_main("--history-file", path, "--user", "alice", "--delete", "42")
        with self.assertRaises(ResultNotFound):
            store.get_result_by_id("42")

    def test_delete_requires_owner(self):
        path = os.path.join(self.tmp, "results.jsonl")
        store = JsonlResultStore(path)
        store.save_result(_result())
        for argv in (("--user", "bob"), ()):
            with self.subTest(argv=argv):
                with self.assertRaises(SystemExit) as ctx:
                    self.run_main("--history-file", path, *argv, "--delete", "42")
                self.assertEqual(ctx.exception.code, 1)
        self.assertEqual(store.get_result_by_id("42").user_id, "alice")

    def test_invalid_config_exits_1(self):
        speedtest.set_config_value("store", "redis")
        with self.assertRaises(SystemExit) as ctx:
            self.run_main("--memory", "--history")
        self.assertEqual(ctx.exception.code, 1)

    def test_set_config(self):
        self.run_main("--set-config", "multi_connection", "true")
        self.assertIs(load_config()["multi_connection"], True)

    def test_set_config_rejects_bad_value(self):
        with self.assertRaises(SystemExit):
            self.run_main("--set-config", "store", "redis")
        self.assertEqual(load_config()["store"], "file")

    def test_set_config_rejects_unknown_key(self):
        with self.assertRaises(SystemExit):
            self.run_main("--set-config", "colour", "blue")

    def test_show_config(self):
        out = self.run_main("--config")
        self.assertIn("config.json", out)
        self.assertEqual(json.loads(out[out.index("{"):]), DEFAULTS)


class TestRun(_CliCase):
    def setUp(self):
        super().setUp()
        self.report = MeasurementReport(
            ping_ms=12.0, jitter_ms=2.5, download_mbps=94.2, upload_mbps=18.75,
            sources={"latency": "tcp", "download": "single", "upload": "simulated"},
        )
        service = mock.Mock()
        service.run = mock.AsyncMock(return_value=SpeedTestRun(_result(), self.report))
        patcher = mock.patch("speedtest.SpeedTestService", return_value=service)
        self.service_cls = patcher.start()
        self.addCleanup(patcher.stop)
        self.service = service

    def test_json_output(self):
        out = self.run_main("--memory", "--json", "--isp", "Acme", "--user", "alice")
        data = json.loads(out)
        self.assertEqual(data["id"], "42")
        self.assertEqual(data["simulated"], ["upload"])
        self.service.run.assert_awaited_once_with(
            "alice", {"ip": "", "isp": "Acme", "country": "", "region": ""}, False,
        )

    def test_multi_flag(self):
        self.run_main("--memory", "--json", "--multi")
        self.assertIs(self.service.run.await_args.args[2], True)

    def test_simple_output_mentions_simulated(self):
        out = self.run_main("--memory", "--simple")
        self.assertIn("Download: 94.20 Mbps", out)
        self.assertIn("Simulated: upload", out)

    def test_output_and_csv_files(self):
        json_path = os.path.join(self.tmp, "out.json")
        csv_path = os.path.join(self.tmp, "log.csv")
        self.run_main("--memory", "--json", "-o", json_path, "--csv", csv_path)

        with open(json_path, encoding="utf-8") as fh:
            self.assertEqual(json.load(fh)["id"], "42")
        with open(csv_path, encoding="utf-8") as fh:
            self.assertEqual(len(fh.read().splitlines()), 2)

    def test_memory_store_selected(self):
        self.run_main("--memory", "--json")
        store = self.service_cls.call_args.args[0]
        self.assertIsInstance(store, MemoryResultStore)


if __name__ == "__main__":
    unittest.main()
