"""Persisted result entity."""
from __future__ import annotations

import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict

from .constants import ANONYMOUS_USER

_id_lock = threading.Lock()
_last_id = 0


def new_result_id() -> str:
    """Nanosecond-timestamp id, strictly increasing within the process."""
    global _last_id
    with _id_lock:
        candidate = time.time_ns()
        _last_id = candidate if candidate > _last_id else _last_id + 1
        return str(_last_id)


@dataclass(frozen=True)
class SpeedTestResult:
    """One measurement run: four metrics plus caller-supplied network context."""

    id: str
    user_id: str
    download_speed: float
    upload_speed: float
    ping: float
    jitter: float
    isp: str = ""
    ip_address: str = ""
    country: str = ""
    region: str = ""
    created_at: datetime = datetime.fromtimestamp(0, tz=timezone.utc)

    @property
    def is_anonymous(self) -> bool:
        return self.user_id == ANONYMOUS_USER

    # -- Serialisation ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SpeedTestResult:
        created = data.get("created_at")
        if isinstance(created, str):
            created_at = datetime.fromisoformat(created)
        elif isinstance(created, datetime):
            created_at = created
        else:
            created_at = datetime.fromtimestamp(0, tz=timezone.utc)

        return cls(
            id=str(data["id"]),
            user_id=data.get("user_id", ANONYMOUS_USER),
            download_speed=float(data.get("download_speed", 0.0)),
            upload_speed=float(data.get("upload_speed", 0.0)),
            ping=float(data.get("ping", 0.0)),
            jitter=float(data.get("jitter", 0.0)),
            isp=data.get("isp", ""),
            ip_address=data.get("ip_address", ""),
            country=data.get("country", ""),
            region=data.get("region", ""),
            created_at=created_at,
        )
