"""
Measurement orchestrator and result assembler.

A run measures latency, then download, then upload -- strictly one after
the other so that no phase competes with another for the link.  Each metric
has an ordered list of strategies; the first one that succeeds wins::

    latency    tcp            -> http         -> simulated
    download   single|multi   -> alternative  -> simulated
    upload     single|multi   -> alternative  -> simulated

Every strategy is attempted at most once.  A strategy is skipped when it
raises any ``MeasurementError``; the simulated tier cannot fail, so a run
always ends with all four metrics populated.  Only a failure to persist the
assembled result reaches the caller.  The service keeps no per-run state.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Set, Tuple, Type

from .constants import ANONYMOUS_USER
from .download import DownloadResult, DownloadTester
from .errors import (
    AllAlternativesFailed,
    AllConnectionsFailed,
    InsufficientSamples,
    MeasurementError,
    MeasurementUnavailable,
    ResultNotFound,
    TransportError,
)
from .latency import LatencyResult, LatencyTester
from .models import SpeedTestResult, new_result_id
from .simulated import SIMULATED, simulated_download, simulated_latency, simulated_upload
from .store import MemoryResultStore, ResultStore
from .upload import UploadResult, UploadTester

logger = logging.getLogger(__name__)

LATENCY = "latency"
DOWNLOAD = "download"
UPLOAD = "upload"


# ---------------------------------------------------------------------------
# Strategy plan
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Strategy:
    """One tier: a coroutine factory and the errors that mean "try the next"."""

    name: str
    run: Callable[[], Awaitable[Any]]
    exhausted: Tuple[Type[MeasurementError], ...] = ()


async def run_tiers(metric: str, strategies: List[Strategy]) -> Tuple[str, Any]:
    """
    Return ``(strategy name, value)`` from the first strategy that succeeds.

    Any ``MeasurementError`` moves on to the next tier.  The ``exhausted``
    kinds only decide how the failure is logged.
    """
    for strategy in strategies:
        try:
            value = await strategy.run()
        except MeasurementError as exc:
            if isinstance(exc, strategy.exhausted):
                logger.warning("%s: %s strategy failed (%s)", metric, strategy.name, exc)
            else:
                logger.warning(
                    "%s: %s strategy failed unexpectedly (%s: %s)",
                    metric, strategy.name, type(exc).__name__, exc,
                )
            continue
        if strategy.name == SIMULATED:
            logger.warning("%s: every real strategy failed, using a simulated value", metric)
        return strategy.name, value
    raise MeasurementUnavailable(metric)


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

@dataclass
class MeasurementReport:
    """The four metrics of one run and the strategy that produced each."""

    ping_ms: float = 0.0
    jitter_ms: float = 0.0
    download_mbps: float = 0.0
    upload_mbps: float = 0.0
    sources: Dict[str, str] = field(default_factory=dict)
    details: Dict[str, dict] = field(default_factory=dict)

    @property
    def simulated(self) -> Set[str]:
        return {metric for metric, source in self.sources.items() if source == SIMULATED}

    def to_dict(self) -> dict:
        return {
            "ping_ms": round(self.ping_ms, 3),
            "jitter_ms": round(self.jitter_ms, 3),
            "download_mbps": round(self.download_mbps, 2),
            "upload_mbps": round(self.upload_mbps, 2),
            "sources": dict(self.sources),
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class SpeedTestRun:
    """A saved result together with the report of the run that produced it."""

    result: SpeedTestResult
    report: MeasurementReport


# ---------------------------------------------------------------------------
# Result assembly
# ---------------------------------------------------------------------------

def assemble_result(
    report: MeasurementReport,
    user_id: Optional[str],
    network_metadata: Optional[Mapping[str, str]] = None,
    now: Optional[datetime] = None,
) -> SpeedTestResult:
    """Combine measured metrics and caller metadata into a new result."""
    meta = network_metadata or {}
    return SpeedTestResult(
        id=new_result_id(),
        user_id=user_id or ANONYMOUS_USER,
        download_speed=report.download_mbps,
        upload_speed=report.upload_mbps,
        ping=report.ping_ms,
        jitter=report.jitter_ms,
        isp=meta.get("isp", "") or "",
        ip_address=meta.get("ip", "") or "",
        country=meta.get("country", "") or "",
        region=meta.get("region", "") or "",
        created_at=now or datetime.now(timezone.utc),
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class SpeedTestService:
    """Runs measurements and hands the assembled result to a store."""

    def __init__(
        self,
        store: ResultStore,
        latency_tester: Optional[LatencyTester] = None,
        download_tester: Optional[DownloadTester] = None,
        upload_tester: Optional[UploadTester] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.latency_tester = latency_tester or LatencyTester()
        self.download_tester = download_tester or DownloadTester()
        self.upload_tester = upload_tester or UploadTester()
        self.rng = rng

    # -- Plan ---------------------------------------------------------------

    def plan(self, multi_connection: bool = False) -> Dict[str, List[Strategy]]:
        dl, ul = self.download_tester, self.upload_tester

        if multi_connection:
            dl_primary = Strategy("multi", dl.measure_multi, (AllConnectionsFailed,))
            ul_primary = Strategy("multi", ul.measure_multi, (AllConnectionsFailed,))
        else:
            dl_primary = Strategy("single", dl.measure_single, (TransportError,))
            ul_primary = Strategy("single", ul.measure_single, (TransportError,))

        return {
            LATENCY: [
                Strategy("tcp", self.latency_tester.measure_tcp, (InsufficientSamples,)),
                Strategy("http", self.latency_tester.measure_http, (InsufficientSamples,)),
                Strategy(SIMULATED, self._simulated_latency),
            ],
            DOWNLOAD: [
                dl_primary,
                Strategy("alternative", dl.measure_alternative, (AllAlternativesFailed,)),
                Strategy(SIMULATED, self._simulated_download),
            ],
            UPLOAD: [
                ul_primary,
                Strategy("alternative", ul.measure_alternative, (AllAlternativesFailed,)),
                Strategy(SIMULATED, self._simulated_upload),
            ],
        }

    # -- Measurement --------------------------------------------------------

    async def measure(self, multi_connection: bool = False) -> MeasurementReport:
        plan = self.plan(multi_connection)
        report = MeasurementReport()

        source, latency = await run_tiers(LATENCY, plan[LATENCY])
        report.ping_ms, report.jitter_ms = latency.ping_ms, latency.jitter_ms
        report.sources[LATENCY] = source
        report.details[LATENCY] = latency.to_dict()

        source, download = await run_tiers(DOWNLOAD, plan[DOWNLOAD])
        report.download_mbps = download.speed_mbps
        report.sources[DOWNLOAD] = source
        report.details[DOWNLOAD] = download.to_dict()

        source, upload = await run_tiers(UPLOAD, plan[UPLOAD])
        report.upload_mbps = upload.speed_mbps
        report.sources[UPLOAD] = source
        report.details[UPLOAD] = upload.to_dict()

        return report

    async def run(
        self,
        user_id: Optional[str],
        network_metadata: Optional[Mapping[str, str]] = None,
        multi_connection: bool = False,
    ) -> SpeedTestRun:
        """Measure, assemble and save one result.  Storage errors propagate."""
        report = await self.measure(multi_connection)
        result = assemble_result(report, user_id, network_metadata)
        self.store.save_result(result)
        logger.info(
            "Saved result %s: down %.2f Mbps, up %.2f Mbps, ping %.1f ms",
            result.id, result.download_speed, result.upload_speed, result.ping,
        )
        return SpeedTestRun(result, report)

    async def run_speed_test(
        self,
        user_id: Optional[str],
        network_metadata: Optional[Mapping[str, str]] = None,
        multi_connection: bool = False,
    ) -> SpeedTestResult:
        run = await self.run(user_id, network_metadata, multi_connection)
        return run.result

    # -- History ------------------------------------------------------------

    def get_user_history(self, user_id: str) -> List[SpeedTestResult]:
        return self.store.get_results_by_user_id(user_id)

    def get_result(self, result_id: str) -> SpeedTestResult:
        return self.store.get_result_by_id(result_id)

    def delete_result(self, result_id: str, user_id: Optional[str] = None) -> None:
        """Delete a result; with *user_id*, only if that user owns it."""
        if user_id is not None:
            owner = self.store.get_result_by_id(result_id).user_id
            if owner != user_id:
                raise ResultNotFound(result_id)
        self.store.delete_result(result_id)

    # -- Simulated tier -----------------------------------------------------

    async def _simulated_latency(self) -> LatencyResult:
        ping, jitter = simulated_latency(self.rng)
        return LatencyResult(method=SIMULATED, ping_ms=ping, jitter_ms=jitter)

    async def _simulated_download(self) -> DownloadResult:
        return DownloadResult(method=SIMULATED, speed_mbps=simulated_download(self.rng))

    async def _simulated_upload(self) -> UploadResult:
        return UploadResult(method=SIMULATED, speed_mbps=simulated_upload(self.rng))


async def run_speed_test(
    user_id: Optional[str],
    network_metadata: Optional[Mapping[str, str]] = None,
    multi_connection: bool = False,
    store: Optional[ResultStore] = None,
) -> SpeedTestResult:
    """One-shot entry point with default testers."""
    service = SpeedTestService(store if store is not None else MemoryResultStore())
    return await service.run_speed_test(user_id, network_metadata, multi_connection)
