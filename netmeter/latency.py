"""
Round-trip latency estimator.

Two probe methods share one sampling loop::

    tcp   time to complete a TCP handshake with host:80
    http  time to receive the response to an HTTP HEAD request

Every host in the probe set gets ``attempts`` tries with a short per-try
timeout.  Successful tries are paced by a small delay so the probes do not
queue behind each other.  All samples are pooled into one sample set; the
mean is the ping and the sample variance is the jitter.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Sequence

import aiohttp

from .constants import (
    COMMON_HEADERS,
    HTTP_PING_HOSTS,
    MIN_PING_SAMPLES,
    PING_ATTEMPTS,
    PING_DELAY,
    PING_HOSTS,
    PING_PORT,
    PING_TIMEOUT,
)
from .errors import InsufficientSamples, TransportError
from .stats import LatencyStats
from .transfer import TRANSPORT_ERRORS, describe_error

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class LatencyResult:
    """Pooled latency samples from one probe method."""

    method: str = ""
    samples: List[float] = field(default_factory=list)
    ping_ms: float = 0.0
    jitter_ms: float = 0.0
    errors: List[str] = field(default_factory=list)

    def calculate(self) -> None:
        stats = LatencyStats(samples=self.samples)
        stats.calculate()
        self.ping_ms = stats.mean
        self.jitter_ms = stats.jitter

    def to_dict(self) -> dict:
        return {
            "method": self.method,
            "samples": [round(s, 3) for s in self.samples],
            "ping_ms": round(self.ping_ms, 3),
            "jitter_ms": round(self.jitter_ms, 3),
        }


# ---------------------------------------------------------------------------
# Tester
# ---------------------------------------------------------------------------

class LatencyTester:
    """Estimate ping and jitter against a fixed set of public hosts."""

    def __init__(
        self,
        hosts: Sequence[str] = PING_HOSTS,
        http_hosts: Sequence[str] = HTTP_PING_HOSTS,
        port: int = PING_PORT,
        http_scheme: str = "https",
        attempts: int = PING_ATTEMPTS,
        timeout: float = PING_TIMEOUT,
        delay: float = PING_DELAY,
        min_samples: int = MIN_PING_SAMPLES,
    ) -> None:
        self.hosts = tuple(hosts)
        self.http_hosts = tuple(http_hosts)
        self.port = port
        self.http_scheme = http_scheme
        self.attempts = attempts
        self.timeout = timeout
        self.delay = delay
        self.min_samples = min_samples

    # -- Strategies ---------------------------------------------------------

    async def measure_tcp(self) -> LatencyResult:
        """Primary method: TCP connection establishment time."""
        return await self._collect("tcp", self.hosts, self._tcp_probe)

    async def measure_http(self) -> LatencyResult:
        """Secondary method: metadata-only HTTP request time."""
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(headers=COMMON_HEADERS, timeout=timeout) as session:

            async def _probe(host: str) -> float:
                return await self._head_probe(session, f"{self.http_scheme}://{host}")

            return await self._collect("http", self.http_hosts, _probe)

    # -- Sampling loop ------------------------------------------------------

    async def _collect(
        self,
        method: str,
        hosts: Sequence[str],
        probe: Callable[[str], Awaitable[float]],
    ) -> LatencyResult:
        result = LatencyResult(method=method)

        for host in hosts:
            for _ in range(self.attempts):
                try:
                    result.samples.append(await probe(host))
                except TransportError as exc:
                    result.errors.append(str(exc))
                    continue
                await asyncio.sleep(self.delay)

        if len(result.samples) < self.min_samples:
            logger.debug("%s probes failed: %s", method, result.errors)
            raise InsufficientSamples(self.min_samples, len(result.samples))

        result.calculate()
        logger.info(
            "Latency via %s: %.1f ms (jitter %.2f) from %d samples",
            method, result.ping_ms, result.jitter_ms, len(result.samples),
        )
        return result

    # -- Probes -------------------------------------------------------------

    async def _tcp_probe(self, host: str) -> float:
        target = f"tcp://{host}:{self.port}"
        start = time.perf_counter()
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, self.port),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, OSError) as exc:
            raise TransportError(target, describe_error(exc)) from exc
        elapsed_ms = (time.perf_counter() - start) * 1000

        writer.close()
        # sample already taken
        with contextlib.suppress(OSError):
            await writer.wait_closed()
        return elapsed_ms

    @staticmethod
    async def _head_probe(session: aiohttp.ClientSession, url: str) -> float:
        start = time.perf_counter()
        try:
            async with session.head(url, allow_redirects=True):
                elapsed_ms = (time.perf_counter() - start) * 1000
        except TRANSPORT_ERRORS as exc:
            raise TransportError(url, describe_error(exc)) from exc
        return elapsed_ms
