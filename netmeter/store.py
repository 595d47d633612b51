"""
Result persistence.

The engine only needs a narrow save / get / delete interface keyed by result
id with a secondary lookup by user.  Two implementations:

* ``MemoryResultStore`` -- a dict, nothing survives the process.
* ``JsonlResultStore`` -- JSON-lines in ``~/.netmeter/results.jsonl``.  Each
  line is a self-contained record, so saving is a plain append; deleting
  rewrites the file through a temp file and ``os.replace``.
"""
from __future__ import annotations

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import ResultNotFound, StorageError
from .models import SpeedTestResult

logger = logging.getLogger(__name__)

_DEFAULT_DIR = os.path.join(Path.home(), ".netmeter")
_DEFAULT_FILE = "results.jsonl"


def default_store_path() -> str:
    return os.path.join(_DEFAULT_DIR, _DEFAULT_FILE)


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------

class ResultStore(ABC):
    """Durable map of results keyed by id, with a by-user index."""

    @abstractmethod
    def save_result(self, result: SpeedTestResult) -> None: ...

    @abstractmethod
    def get_results_by_user_id(self, user_id: str) -> List[SpeedTestResult]: ...

    @abstractmethod
    def get_result_by_id(self, result_id: str) -> SpeedTestResult: ...

    @abstractmethod
    def delete_result(self, result_id: str) -> None: ...


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------

class MemoryResultStore(ResultStore):
    def __init__(self) -> None:
        self._results: Dict[str, SpeedTestResult] = {}
        self._lock = threading.Lock()

    def save_result(self, result: SpeedTestResult) -> None:
        with self._lock:
            self._results[result.id] = result

    def get_results_by_user_id(self, user_id: str) -> List[SpeedTestResult]:
        with self._lock:
            found = [r for r in self._results.values() if r.user_id == user_id]
        return sorted(found, key=lambda r: r.created_at)

    def get_result_by_id(self, result_id: str) -> SpeedTestResult:
        with self._lock:
            result = self._results.get(result_id)
        if result is None:
            raise ResultNotFound(result_id)
        return result

    def delete_result(self, result_id: str) -> None:
        with self._lock:
            self._results.pop(result_id, None)


# ---------------------------------------------------------------------------
# JSON-lines file
# ---------------------------------------------------------------------------

class JsonlResultStore(ResultStore):
    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or default_store_path()
        self._lock = threading.Lock()

    # -- Write --------------------------------------------------------------

    def save_result(self, result: SpeedTestResult) -> None:
        line = json.dumps(result.to_dict(), ensure_ascii=False)
        with self._lock:
            try:
                os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
            except OSError as exc:
                raise StorageError(f"Failed to save result to {self.path}: {exc}") from exc
        logger.debug("Saved result %s to %s", result.id, self.path)

    def delete_result(self, result_id: str) -> None:
        with self._lock:
            records = self._load()
            if result_id not in records:
                return
            del records[result_id]
            self._rewrite(records.values())

    # -- Read ---------------------------------------------------------------

    def get_results_by_user_id(self, user_id: str) -> List[SpeedTestResult]:
        with self._lock:
            found = [r for r in self._load().values() if r.user_id == user_id]
        return sorted(found, key=lambda r: r.created_at)

    def get_result_by_id(self, result_id: str) -> SpeedTestResult:
        with self._lock:
            result = self._load().get(result_id)
        if result is None:
            raise ResultNotFound(result_id)
        return result

    # -- Internals ----------------------------------------------------------

    def _load(self) -> Dict[str, SpeedTestResult]:
        """Parse every line; the last record wins when an id repeats."""
        records: Dict[str, SpeedTestResult] = {}
        if not os.path.isfile(self.path):
            return records

        try:
            with open(self.path, encoding="utf-8") as fh:
                for line in fh:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        result = SpeedTestResult.from_dict(json.loads(line))
                    except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                        logger.warning("Skipping corrupt line in %s", self.path)
                        continue
                    records[result.id] = result
        except OSError as exc:
            raise StorageError(f"Failed to read {self.path}: {exc}") from exc

        return records

    def _rewrite(self, results: Iterable[SpeedTestResult]) -> None:
        tmp = os.path.join(
            os.path.dirname(self.path) or ".", f".tmp_{os.path.basename(self.path)}"
        )
        try:
            with open(tmp, "w", encoding="utf-8") as fh:
                for result in results:
                    fh.write(json.dumps(result.to_dict(), ensure_ascii=False) + "\n")
            os.replace(tmp, self.path)
        except OSError as exc:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise StorageError(f"Failed to rewrite {self.path}: {exc}") from exc
