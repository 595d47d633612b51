"""Exception hierarchy for netmeter."""
from __future__ import annotations

from typing import List, Sequence


class NetmeterError(Exception):
    """Base exception for all netmeter errors."""

    pass


# ---------------------------------------------------------------------------
# Measurement
# ---------------------------------------------------------------------------

class MeasurementError(NetmeterError):
    """A measurement strategy could not produce a value."""

    pass


class InsufficientSamples(MeasurementError):
    """Too few latency probes succeeded for a meaningful estimate."""

    def __init__(self, min_required: int, collected: int) -> None:
        self.min_required = min_required
        self.collected = collected
        super().__init__(
            f"not enough successful pings ({collected} of {min_required} required)"
        )


class TransportError(MeasurementError):
    """A single network call failed (refused, timeout, DNS, non-2xx)."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}")


class AllConnectionsFailed(MeasurementError):
    """Every parallel worker of a multi-connection test failed."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__(f"all {len(self.errors)} connections failed")


class AllAlternativesFailed(MeasurementError):
    """Every sequential alternative source failed."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__(f"all {len(self.errors)} alternative sources failed")


class MeasurementUnavailable(MeasurementError):
    """All tiers for a metric were exhausted."""

    def __init__(self, metric: str) -> None:
        self.metric = metric
        super().__init__(f"no strategy could measure {metric}")


# ---------------------------------------------------------------------------
# Storage / configuration
# ---------------------------------------------------------------------------

class StorageError(NetmeterError):
    """The result store could not complete an operation."""

    pass


class ResultNotFound(StorageError):
    """No stored result has the requested id."""

    def __init__(self, result_id: str) -> None:
        self.result_id = result_id
        super().__init__(f"result {result_id} not found")


class ConfigError(NetmeterError):
    """Invalid configuration value."""

    pass
