"""
Download speed estimator.

Three strategies, each attempted once by the orchestrator:

* ``measure_single`` -- one large GET against the CDN.
* ``measure_multi`` -- parallel GETs fanned out over the test servers.
* ``measure_alternative`` -- small static assets, corrected median rate.

Bytes are counted as they are read from the body, never taken from
``Content-Length``; the server decides how much it actually sends.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Sequence

import aiohttp

from .constants import (
    ALTERNATIVE_DOWNLOAD_TIMEOUT,
    ALTERNATIVE_DOWNLOAD_URLS,
    CDN_BASE_URL,
    CHUNK_SIZE,
    MULTI_DOWNLOAD_SIZE,
    MULTI_DOWNLOAD_TIMEOUT,
    NUM_CONNECTIONS,
    SINGLE_DOWNLOAD_SIZE,
    SINGLE_DOWNLOAD_TIMEOUT,
)
from .errors import TransportError
from .servers import TEST_SERVERS, TestServer, pick_server
from .stats import ConnectionStats, throughput_mbps
from .transfer import (
    TRANSPORT_ERRORS,
    ThroughputResult,
    check_status,
    combine_alternatives,
    combine_connections,
    describe_error,
    new_session,
)

logger = logging.getLogger(__name__)


class DownloadResult(ThroughputResult):
    """Download test result."""


# ---------------------------------------------------------------------------
# Tester
# ---------------------------------------------------------------------------

class DownloadTester:
    """Measure achievable download throughput over HTTP GET."""

    def __init__(
        self,
        single_url: str = f"{CDN_BASE_URL}/__down?bytes={SINGLE_DOWNLOAD_SIZE}",
        single_timeout: float = SINGLE_DOWNLOAD_TIMEOUT,
        servers: Sequence[TestServer] = TEST_SERVERS,
        connections: int = NUM_CONNECTIONS,
        multi_size: int = MULTI_DOWNLOAD_SIZE,
        multi_timeout: float = MULTI_DOWNLOAD_TIMEOUT,
        alternative_urls: Sequence[str] = ALTERNATIVE_DOWNLOAD_URLS,
        alternative_timeout: float = ALTERNATIVE_DOWNLOAD_TIMEOUT,
    ) -> None:
        self.single_url = single_url
        self.single_timeout = single_timeout
        self.servers = tuple(servers)
        self.connections = connections
        self.multi_size = multi_size
        self.multi_timeout = multi_timeout
        self.alternative_urls = tuple(alternative_urls)
        self.alternative_timeout = alternative_timeout

    # -- Single connection --------------------------------------------------

    async def measure_single(self) -> DownloadResult:
        stats = ConnectionStats(id=0, url=self.single_url)

        async with new_session(limit=1) as session:
            start = time.perf_counter()
            await self._stream_get(session, self.single_url, self.single_timeout, stats)
            elapsed = time.perf_counter() - start

        result = DownloadResult(
            method="single",
            bytes_total=stats.bytes_transferred,
            duration_ms=elapsed * 1000,
        )
        result.calculate()
        logger.info(
            "Single-connection download: %d bytes in %.2fs (%.2f Mbps)",
            result.bytes_total, elapsed, result.speed_mbps,
        )
        return result

    # -- Multi connection ---------------------------------------------------

    async def measure_multi(self) -> DownloadResult:
        """
        Run ``connections`` workers concurrently, one server each.

        Every worker reports its own ``ConnectionStats`` to the join point;
        nothing is shared while transfers are in flight.
        """
        async with new_session(limit=self.connections) as session:
            start = time.perf_counter()
            reports: List[ConnectionStats] = await asyncio.gather(
                *[self._worker(session, i) for i in range(self.connections)]
            )
            elapsed = time.perf_counter() - start

        combined = combine_connections(reports, elapsed, method="multi")
        logger.info(
            "Multi-connection download: %d/%d workers ok, %d bytes (%.2f Mbps)",
            sum(1 for r in reports if not r.failed), len(reports),
            combined.bytes_total, combined.speed_mbps,
        )
        return DownloadResult(**vars(combined))

    async def _worker(self, session: aiohttp.ClientSession, cid: int) -> ConnectionStats:
        server = pick_server(cid, self.servers)
        stats = ConnectionStats(id=cid, server=server.name, url=server.download_url(self.multi_size))

        t0 = time.perf_counter()
        try:
            await self._stream_get(session, stats.url, self.multi_timeout, stats)
        except TransportError as exc:
            stats.error = str(exc)
            logger.debug("Download worker %d failed: %s", cid, exc)

        stats.duration_ms = (time.perf_counter() - t0) * 1000
        stats.calculate()
        return stats

    # -- Alternative sources ------------------------------------------------

    async def measure_alternative(self) -> DownloadResult:
        rates: List[float] = []
        errors: List[str] = []

        async with new_session(limit=1) as session:
            for url in self.alternative_urls:
                stats = ConnectionStats(url=url)
                start = time.perf_counter()
                try:
                    await self._stream_get(session, url, self.alternative_timeout, stats)
                except TransportError as exc:
                    errors.append(str(exc))
                    continue
                elapsed = time.perf_counter() - start

                if stats.bytes_transferred > 0 and elapsed > 0:
                    rates.append(throughput_mbps(stats.bytes_transferred, elapsed))
                else:
                    errors.append(f"{url}: empty response")

        return DownloadResult(**vars(combine_alternatives(rates, errors)))

    # -- Internals ----------------------------------------------------------

    @staticmethod
    async def _stream_get(
        session: aiohttp.ClientSession,
        url: str,
        timeout: float,
        stats: ConnectionStats,
    ) -> None:
        """GET *url*, adding every chunk read to *stats* as it arrives."""
        try:
            async with session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
                check_status(resp, url)
                async for chunk in resp.content.iter_chunked(CHUNK_SIZE):
                    stats.bytes_transferred += len(chunk)
        except TRANSPORT_ERRORS as exc:
            raise TransportError(url, describe_error(exc)) from exc
