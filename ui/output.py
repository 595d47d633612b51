"""
Output formatting -- JSON export, plain text, CSV and history rows.
"""
from __future__ import annotations

import json
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from netmeter.models import SpeedTestResult
from netmeter.service import MeasurementReport


def create_result_json(
    result: SpeedTestResult,
    report: Optional[MeasurementReport] = None,
) -> Dict[str, Any]:
    """Stored fields of *result*, plus per-metric sources when a report is given."""
    data: Dict[str, Any] = result.to_dict()
    if report is not None:
        data["sources"] = dict(report.sources)
        data["simulated"] = sorted(report.simulated)
        data["details"] = dict(report.details)
    return data


def save_json(result: Dict[str, Any], filepath: str) -> None:
    """Write *result* to *filepath* atomically (write-tmp then rename)."""
    dir_path = os.path.dirname(filepath) or "."
    tmp = os.path.join(dir_path, f".tmp_{os.path.basename(filepath)}")

    try:
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(result, fh, indent=2, ensure_ascii=False)
        os.replace(tmp, filepath)
    except OSError as exc:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise OSError(f"Failed to save JSON to {filepath}: {exc}") from exc


# ---------------------------------------------------------------------------
# Plain-text / CSV helpers
# ---------------------------------------------------------------------------

def format_text_result(result: SpeedTestResult) -> str:
    sep = "=" * 50
    mid = "-" * 50
    return (
        f"{sep}\n"
        f"Speed Test Result {result.id}\n"
        f"{sep}\n"
        f"ISP: {result.isp}\n"
        f"IP: {result.ip_address}\n"
        f"Location: {_location(result)}\n"
        f"{mid}\n"
        f"Ping: {result.ping:.1f} ms (jitter: {result.jitter:.2f} ms)\n"
        f"Download: {result.download_speed:.2f} Mbps\n"
        f"Upload: {result.upload_speed:.2f} Mbps\n"
        f"{sep}"
    )


def _csv_escape(value: str) -> str:
    if any(c in value for c in (",", '"', "\n")):
        return '"' + value.replace('"', '""') + '"'
    return value


def format_csv_header() -> str:
    return "timestamp,id,user_id,isp,ip,country,region,ping_ms,jitter_ms,download_mbps,upload_mbps"


def format_csv_row(result: SpeedTestResult) -> str:
    fields = [
        result.created_at.isoformat(),
        result.id,
        _csv_escape(result.user_id),
        _csv_escape(result.isp),
        _csv_escape(result.ip_address),
        _csv_escape(result.country),
        _csv_escape(result.region),
        f"{result.ping:.1f}",
        f"{result.jitter:.2f}",
        f"{result.download_speed:.2f}",
        f"{result.upload_speed:.2f}",
    ]
    return ",".join(fields)


def append_csv(path: str, result: SpeedTestResult) -> None:
    """Append a single CSV row, writing the header if the file is new."""
    write_header = not os.path.isfile(path) or os.path.getsize(path) == 0
    with open(path, "a", encoding="utf-8") as fh:
        if write_header:
            fh.write(format_csv_header() + "\n")
        fh.write(format_csv_row(result) + "\n")


# ---------------------------------------------------------------------------
# History helpers
# ---------------------------------------------------------------------------

def format_history_table(results: List[SpeedTestResult]) -> List[dict]:
    """Flatten stored results into rows for tabular display."""
    rows = []
    for r in results:
        rows.append({
            "id": r.id,
            "timestamp": _local_time(r.created_at),
            "location": _location(r),
            "ping": r.ping,
            "jitter": r.jitter,
            "download": r.download_speed,
            "upload": r.upload_speed,
        })
    return rows


def sparkline(values: List[float]) -> str:
    """Single-line Unicode sparkline chart."""
    if not values:
        return ""
    bars = "▁▂▃▄▅▆▇█"
    lo, hi = min(values), max(values)
    span = hi - lo if hi > lo else 1.0
    return "".join(
        bars[min(int((v - lo) / span * (len(bars) - 1)), len(bars) - 1)]
        for v in values
    )


def _local_time(ts: datetime) -> str:
    return ts.astimezone().strftime("%Y-%m-%d %H:%M")


def _location(result: SpeedTestResult) -> str:
    parts = [p for p in (result.region, result.country) if p]
    return ", ".join(parts) if parts else "?"
