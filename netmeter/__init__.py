"""netmeter -- network performance estimation with tiered fallbacks."""

from .download import DownloadResult, DownloadTester
from .errors import (
    AllAlternativesFailed,
    AllConnectionsFailed,
    ConfigError,
    InsufficientSamples,
    MeasurementError,
    MeasurementUnavailable,
    NetmeterError,
    ResultNotFound,
    StorageError,
    TransportError,
)
from .latency import LatencyResult, LatencyTester
from .models import SpeedTestResult, new_result_id
from .servers import TEST_SERVERS, TestServer, pick_server
from .service import MeasurementReport, SpeedTestRun, SpeedTestService, assemble_result, run_speed_test
from .stats import (
    ConnectionStats,
    LatencyStats,
    calculate_jitter,
    calculate_mean,
    format_latency,
    format_speed,
    throughput_mbps,
    upper_median,
)
from .store import JsonlResultStore, MemoryResultStore, ResultStore
from .upload import UploadResult, UploadTester

__all__ = [
    "AllAlternativesFailed",
    "AllConnectionsFailed",
    "ConfigError",
    "ConnectionStats",
    "DownloadResult",
    "DownloadTester",
    "InsufficientSamples",
    "JsonlResultStore",
    "LatencyResult",
    "LatencyStats",
    "LatencyTester",
    "MeasurementError",
    "MeasurementReport",
    "MeasurementUnavailable",
    "MemoryResultStore",
    "NetmeterError",
    "ResultNotFound",
    "ResultStore",
    "SpeedTestResult",
    "SpeedTestRun",
    "SpeedTestService",
    "StorageError",
    "TEST_SERVERS",
    "TestServer",
    "TransportError",
    "UploadResult",
    "UploadTester",
    "assemble_result",
    "calculate_jitter",
    "calculate_mean",
    "format_latency",
    "format_speed",
    "new_result_id",
    "pick_server",
    "run_speed_test",
    "throughput_mbps",
    "upper_median",
]
