"""
User configuration file support.

Reads/writes ``~/.netmeter/config.json``.

Supported keys::

    user_id = ""               # owner recorded on results ("" -> anonymous)
    multi_connection = false   # default connection mode
    store = "file"             # "file" or "memory"
    history_file = ""          # results file ("" -> ~/.netmeter/results.jsonl)
    log_level = "WARNING"
    log_file = ""              # rotating log file, "" disables
    csv_file = ""              # auto-append CSV path
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from .errors import ConfigError

logger = logging.getLogger(__name__)

_CONFIG_DIR = os.path.join(Path.home(), ".netmeter")
_CONFIG_FILE = "config.json"

STORES = ("file", "memory")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _config_path() -> str:
    return os.path.join(_CONFIG_DIR, _CONFIG_FILE)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULTS: Dict[str, Any] = {
    "user_id": "",
    "multi_connection": False,
    "store": "file",
    "history_file": "",
    "log_level": "WARNING",
    "log_file": "",
    "csv_file": "",
}


# ---------------------------------------------------------------------------
# Read / Write
# ---------------------------------------------------------------------------

def load_config() -> Dict[str, Any]:
    """Load config from disk, returning defaults for missing keys."""
    path = _config_path()
    config = dict(DEFAULTS)

    if not os.path.isfile(path):
        return config

    try:
        with open(path, encoding="utf-8") as fh:
            user = json.load(fh)
        if isinstance(user, dict):
            config.update(user)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)

    return config


def save_config(config: Dict[str, Any]) -> str:
    """Write *config* to disk.  Returns the file path."""
    path = _config_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as fh:
        json.dump(config, fh, indent=2, ensure_ascii=False)

    return path


def get_config_value(key: str) -> Any:
    """Get a single config value."""
    return load_config().get(key, DEFAULTS.get(key))


def set_config_value(key: str, value: Any) -> str:
    """Set a single config value and persist.  Returns file path."""
    config = load_config()
    config[key] = value
    return save_config(config)


def config_path() -> str:
    """Return the config file path (for display purposes)."""
    return _config_path()


def validate_config(config: Dict[str, Any]) -> None:
    """Raise ``ConfigError`` for values the CLI cannot act on."""
    if config.get("store") not in STORES:
        raise ConfigError(f"store must be one of {', '.join(STORES)}")
    level = str(config.get("log_level", "")).upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
