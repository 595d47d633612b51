"""
Plumbing shared by the download and upload estimators.

Holds the throughput result type, the aiohttp session factory, and the two
aggregation rules: summing worker reports after the join point, and the
corrected median over small alternative transfers.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

import aiohttp

from .constants import COMMON_HEADERS, NUM_CONNECTIONS, SMALL_TRANSFER_CORRECTION
from .errors import AllAlternativesFailed, AllConnectionsFailed, TransportError
from .stats import ConnectionStats, throughput_mbps, upper_median

# Everything a single aiohttp call can raise for network reasons.
TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class ThroughputResult:
    """Outcome of one throughput strategy."""

    method: str = ""
    speed_mbps: float = 0.0
    bytes_total: int = 0
    duration_ms: float = 0.0
    connections: List[ConnectionStats] = field(default_factory=list)
    rates: List[float] = field(default_factory=list)

    def calculate(self) -> None:
        """Derive speed from total bytes and wall-clock duration."""
        self.speed_mbps = throughput_mbps(self.bytes_total, self.duration_ms / 1000)

    def to_dict(self) -> dict:
        result: dict = {
            "method": self.method,
            "speed_mbps": round(self.speed_mbps, 2),
            "bytes_total": self.bytes_total,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.connections:
            result["connections"] = [c.to_dict() for c in self.connections]
        if self.rates:
            result["rates"] = [round(r, 2) for r in self.rates]
        return result


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------

def new_session(limit: int = NUM_CONNECTIONS) -> aiohttp.ClientSession:
    """Session with no global timeout; every request passes its own."""
    connector = aiohttp.TCPConnector(limit=limit, force_close=True)
    return aiohttp.ClientSession(
        headers=COMMON_HEADERS,
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=None),
    )


def describe_error(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def check_status(resp: aiohttp.ClientResponse, url: str) -> None:
    if not 200 <= resp.status < 300:
        raise TransportError(url, f"HTTP {resp.status}")


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def combine_connections(
    connections: Sequence[ConnectionStats],
    elapsed_seconds: float,
    method: str = "multi",
) -> ThroughputResult:
    """
    Aggregate worker reports collected after the join point.

    Bytes from every worker count, including partial bytes from workers
    that failed mid-transfer.  Raises ``AllConnectionsFailed`` only when
    every worker failed.
    """
    errors = [c.error for c in connections if c.failed]
    if connections and len(errors) == len(connections):
        raise AllConnectionsFailed(errors)

    result = ThroughputResult(
        method=method,
        bytes_total=sum(c.bytes_transferred for c in connections),
        duration_ms=elapsed_seconds * 1000,
        connections=list(connections),
    )
    result.speed_mbps = throughput_mbps(result.bytes_total, elapsed_seconds)
    return result


def combine_alternatives(
    rates: Sequence[float],
    errors: Iterable[str],
    method: str = "alternative",
) -> ThroughputResult:
    """Upper median of per-source rates, scaled for small-transfer bias."""
    if not rates:
        raise AllAlternativesFailed(list(errors))
    return ThroughputResult(
        method=method,
        speed_mbps=upper_median(rates) * SMALL_TRANSFER_CORRECTION,
        rates=list(rates),
    )
