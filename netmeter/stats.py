"""
Network measurement statistics.

Pure functions and lightweight dataclasses -- no I/O, no side effects.
Everything here is deterministic and easy to unit-test.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LatencyStats:
    """Aggregated latency statistics computed from one sample set."""

    samples: List[float] = field(default_factory=list)
    count: int = 0
    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    jitter: float = 0.0

    def calculate(self) -> None:
        if not self.samples:
            return
        self.count = len(self.samples)
        self.min = min(self.samples)
        self.max = max(self.samples)
        self.mean = calculate_mean(self.samples)
        self.jitter = calculate_jitter(self.samples)

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "min": round(self.min, 3),
            "max": round(self.max, 3),
            "mean": round(self.mean, 3),
            "jitter": round(self.jitter, 3),
        }


@dataclass
class ConnectionStats:
    """Per-worker statistics reported back by download / upload workers."""

    id: int = 0
    server: str = ""
    url: str = ""
    bytes_transferred: int = 0
    duration_ms: float = 0.0
    speed_mbps: float = 0.0
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def calculate(self) -> None:
        self.speed_mbps = throughput_mbps(self.bytes_transferred, self.duration_ms / 1000)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "server": self.server,
            "url": self.url,
            "bytes": self.bytes_transferred,
            "duration_ms": round(self.duration_ms, 2),
            "speed_mbps": round(self.speed_mbps, 2),
            "error": self.error,
        }


# ---------------------------------------------------------------------------
# Pure helper functions
# ---------------------------------------------------------------------------

def calculate_mean(samples: Sequence[float]) -> float:
    if not samples:
        return 0.0
    return sum(samples) / len(samples)


def calculate_jitter(samples: Sequence[float]) -> float:
    """
    Sample variance of *samples*: ``sum((x - mean)^2) / (n - 1)``.

    Reported next to millisecond latency even though the unit is ms^2;
    stored results depend on this exact value.
    """
    n = len(samples)
    if n < 2:
        return 0.0
    mean = calculate_mean(samples)
    return sum((x - mean) ** 2 for x in samples) / (n - 1)


def throughput_mbps(total_bytes: float, seconds: float) -> float:
    """
    Megabits per second for *total_bytes* moved in *seconds*.

    Zero only when nothing moved.  A positive byte count needs a positive
    duration; anything else is a timing bug and raises ``ValueError``.
    """
    if total_bytes <= 0:
        return 0.0
    if seconds <= 0:
        raise ValueError(f"{total_bytes} bytes moved in non-positive time {seconds!r}s")
    return total_bytes * 8 / 1_000_000 / seconds


def upper_median(values: Sequence[float]) -> float:
    """Element at sorted index ``n // 2`` (upper middle for even counts)."""
    if not values:
        raise ValueError("upper_median() requires at least one value")
    ordered = sorted(values)
    return ordered[len(ordered) // 2]


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_speed(speed_mbps: float) -> str:
    """Human-readable speed string."""
    if speed_mbps >= 1000:
        return f"{speed_mbps / 1000:.2f} Gbps"
    return f"{speed_mbps:.2f} Mbps"


def format_latency(latency_ms: float) -> str:
    """Human-readable latency string."""
    if latency_ms >= 1000:
        return f"{latency_ms / 1000:.2f} s"
    return f"{latency_ms:.1f} ms"
