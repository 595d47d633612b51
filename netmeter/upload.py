"""
Upload speed estimator.

Mirror image of the download module: single POST, parallel POSTs over the
test servers, and small POSTs to echo endpoints as the alternative.  The
payload is generated to an exact length up front, so rates are computed
from the configured size rather than from counted bytes.
"""
from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import List, Sequence

import aiohttp

from .constants import (
    ALTERNATIVE_UPLOAD_SIZE,
    ALTERNATIVE_UPLOAD_TIMEOUT,
    ALTERNATIVE_UPLOAD_URLS,
    CDN_UPLOAD_URL,
    MULTI_UPLOAD_SIZE,
    MULTI_UPLOAD_TIMEOUT,
    NUM_CONNECTIONS,
    SINGLE_UPLOAD_SIZE,
    SINGLE_UPLOAD_TIMEOUT,
    UPLOAD_HEADERS,
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


class UploadResult(ThroughputResult):
    """Upload test result."""


# ---------------------------------------------------------------------------
# Tester
# ---------------------------------------------------------------------------

class UploadTester:
    """Measure achievable upload throughput over HTTP POST."""

    def __init__(
        self,
        single_url: str = CDN_UPLOAD_URL,
        single_size: int = SINGLE_UPLOAD_SIZE,
        single_timeout: float = SINGLE_UPLOAD_TIMEOUT,
        servers: Sequence[TestServer] = TEST_SERVERS,
        connections: int = NUM_CONNECTIONS,
        multi_size: int = MULTI_UPLOAD_SIZE,
        multi_timeout: float = MULTI_UPLOAD_TIMEOUT,
        alternative_urls: Sequence[str] = ALTERNATIVE_UPLOAD_URLS,
        alternative_size: int = ALTERNATIVE_UPLOAD_SIZE,
        alternative_timeout: float = ALTERNATIVE_UPLOAD_TIMEOUT,
    ) -> None:
        self.single_url = single_url
        self.single_size = single_size
        self.single_timeout = single_timeout
        self.servers = tuple(servers)
        self.connections = connections
        self.multi_size = multi_size
        self.multi_timeout = multi_timeout
        self.alternative_urls = tuple(alternative_urls)
        self.alternative_size = alternative_size
        self.alternative_timeout = alternative_timeout

    # -- Single connection --------------------------------------------------

    async def measure_single(self) -> UploadResult:
        payload = os.urandom(self.single_size)

        async with new_session(limit=1) as session:
            start = time.perf_counter()
            received = await self._post(session, self.single_url, payload, self.single_timeout)
            elapsed = received - start

        result = UploadResult(
            method="single",
            bytes_total=self.single_size,
            duration_ms=elapsed * 1000,
        )
        result.calculate()
        logger.info(
            "Single-connection upload: %d bytes in %.2fs (%.2f Mbps)",
            result.bytes_total, elapsed, result.speed_mbps,
        )
        return result

    # -- Multi connection ---------------------------------------------------

    async def measure_multi(self) -> UploadResult:
        async with new_session(limit=self.connections) as session:
            start = time.perf_counter()
            reports: List[ConnectionStats] = await asyncio.gather(
                *[self._worker(session, i) for i in range(self.connections)]
            )
            elapsed = time.perf_counter() - start

        combined = combine_connections(reports, elapsed, method="multi")
        logger.info(
            "Multi-connection upload: %d/%d workers ok, %d bytes (%.2f Mbps)",
            sum(1 for r in reports if not r.failed), len(reports),
            combined.bytes_total, combined.speed_mbps,
        )
        return UploadResult(**vars(combined))

    async def _worker(self, session: aiohttp.ClientSession, cid: int) -> ConnectionStats:
        server = pick_server(cid, self.servers)
        stats = ConnectionStats(id=cid, server=server.name, url=server.upload_url)
        payload = os.urandom(self.multi_size)

        t0 = time.perf_counter()
        try:
            await self._post(session, stats.url, payload, self.multi_timeout)
            stats.bytes_transferred = len(payload)
        except TransportError as exc:
            stats.error = str(exc)
            logger.debug("Upload worker %d failed: %s", cid, exc)

        stats.duration_ms = (time.perf_counter() - t0) * 1000
        stats.calculate()
        return stats

    # -- Alternative endpoints ----------------------------------------------

    async def measure_alternative(self) -> UploadResult:
        rates: List[float] = []
        errors: List[str] = []

        async with new_session(limit=1) as session:
            for url in self.alternative_urls:
                payload = os.urandom(self.alternative_size)
                start = time.perf_counter()
                try:
                    received = await self._post(session, url, payload, self.alternative_timeout)
                except TransportError as exc:
                    errors.append(str(exc))
                    continue
                elapsed = received - start

                if elapsed > 0:
                    rates.append(throughput_mbps(len(payload), elapsed))

        return UploadResult(**vars(combine_alternatives(rates, errors)))

    # -- Internals ----------------------------------------------------------

    @staticmethod
    async def _post(
        session: aiohttp.ClientSession,
        url: str,
        payload: bytes,
        timeout: float,
    ) -> float:
        """
        POST *payload* and drain the response body.

        Returns the ``perf_counter`` reading taken when the response headers
        arrived, so callers can time the upload without the body drain.
        """
        try:
            async with session.post(
                url,
                data=payload,
                headers=UPLOAD_HEADERS,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as resp:
                received = time.perf_counter()
                check_status(resp, url)
                await resp.read()
        except TRANSPORT_ERRORS as exc:
            raise TransportError(url, describe_error(exc)) from exc
        return received
