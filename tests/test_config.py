"""Tests for netmeter.config -- configuration persistence and validation."""

import os
import tempfile
import unittest
from unittest import mock

from netmeter.config import (
    DEFAULTS,
    config_path,
    get_config_value,
    load_config,
    save_config,
    set_config_value,
    validate_config,
)
from netmeter.errors import ConfigError


class TestConfigDefaults(unittest.TestCase):
    def test_defaults_have_required_keys(self):
        for key in ("user_id", "multi_connection", "store", "history_file",
                     "log_level", "log_file", "csv_file"):
            self.assertIn(key, DEFAULTS)

    def test_defaults_are_valid(self):
        validate_config(dict(DEFAULTS))

    def test_default_path(self):
        self.assertTrue(config_path().endswith(os.path.join(".netmeter", "config.json")))


class TestLoadSaveConfig(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmpdir.name, "sub", "config.json")
        patcher = mock.patch("netmeter.config._config_path", return_value=self.path)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self._tmpdir.cleanup)

    def test_load_defaults_when_missing(self):
        cfg = load_config()
        self.assertEqual(cfg, DEFAULTS)
        self.assertIsNot(cfg, DEFAULTS)

    def test_save_and_load(self):
        returned = save_config({"user_id": "alice", "multi_connection": True})
        self.assertEqual(returned, self.path)

        cfg = load_config()
        self.assertEqual(cfg["user_id"], "alice")
        self.assertTrue(cfg["multi_connection"])
        # Defaults still present
        self.assertEqual(cfg["store"], "file")

    def test_corrupt_file_returns_defaults(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w") as f:
            f.write("NOT JSON")
        with self.assertLogs("netmeter.config", level="WARNING"):
            cfg = load_config()
        self.assertEqual(cfg["store"], "file")

    def test_non_object_ignored(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w") as f:
            f.write("[1, 2, 3]")
        self.assertEqual(load_config(), DEFAULTS)

    def test_get_set_value(self):
        set_config_value("user_id", "bob")
        self.assertEqual(get_config_value("user_id"), "bob")

        set_config_value("store", "memory")
        self.assertEqual(get_config_value("store"), "memory")
        self.assertEqual(get_config_value("user_id"), "bob")

    def test_get_unknown_key(self):
        self.assertIsNone(get_config_value("nope"))


class TestValidateConfig(unittest.TestCase):
    def test_unknown_store(self):
        with self.assertRaises(ConfigError):
            validate_config(dict(DEFAULTS, store="redis"))

    def test_unknown_log_level(self):
        with self.assertRaises(ConfigError):
            validate_config(dict(DEFAULTS, log_level="LOUD"))

    def test_log_level_case_insensitive(self):
        validate_config(dict(DEFAULTS, log_level="debug"))


if __name__ == "__main__":
    unittest.main()
