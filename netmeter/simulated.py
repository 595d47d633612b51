"""
Simulated measurements.

Bounded-random placeholders substituted by the orchestrator when every
real strategy for a metric failed.  Kept apart from the estimators so that
callers can always tell which values were measured and which were made up.
"""
from __future__ import annotations

import random
from typing import Optional, Tuple

from .constants import (
    SIMULATED_DOWNLOAD_RANGE,
    SIMULATED_JITTER_RANGE,
    SIMULATED_PING_RANGE,
    SIMULATED_UPLOAD_RANGE,
)

SIMULATED = "simulated"


def _draw(bounds: Tuple[float, float], rng: Optional[random.Random]) -> float:
    low, high = bounds
    r = (rng or random).random()
    return low + r * (high - low)


def simulated_latency(rng: Optional[random.Random] = None) -> Tuple[float, float]:
    """Return ``(ping_ms, jitter_ms)`` drawn from the placeholder ranges."""
    return _draw(SIMULATED_PING_RANGE, rng), _draw(SIMULATED_JITTER_RANGE, rng)


def simulated_download(rng: Optional[random.Random] = None) -> float:
    return _draw(SIMULATED_DOWNLOAD_RANGE, rng)


def simulated_upload(rng: Optional[random.Random] = None) -> float:
    return _draw(SIMULATED_UPLOAD_RANGE, rng)
