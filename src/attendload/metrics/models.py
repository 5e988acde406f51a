"""Metric aggregation dataclasses for attendload."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from attendload.scenario.checks import CheckSummary


@dataclass(frozen=True)
class LatencyStats:
    """Latency distribution in milliseconds."""

    min: float = 0.0
    max: float = 0.0
    avg: float = 0.0
    p50: float = 0.0
    p90: float = 0.0
    p95: float = 0.0
    p99: float = 0.0


@dataclass
class EndpointMetrics:
    """Aggregated metrics for one request name (e.g. "Check Out").

    Attributes:
        name: Logical request name.
        request_count: Requests sent.
        error_count: Requests that raised or returned status >= 400.
        error_rate: error_count / request_count.
        requests_per_second: Throughput over the aggregation interval.
        latency: Latency distribution.
    """

    name: str
    request_count: int = 0
    error_count: int = 0
    error_rate: float = 0.0
    requests_per_second: float = 0.0
    latency: LatencyStats = field(default_factory=LatencyStats)


@dataclass
class MetricSnapshot:
    """Aggregated metrics for an interval, or for the whole run.

    Attributes:
        timestamp: Monotonic time the snapshot was built.
        elapsed_seconds: Seconds since the run started.
        active_users: Running virtual users.
        total_requests: Requests in the interval.
        requests_per_second: Overall throughput in the interval.
        latency: Overall latency distribution.
        total_errors: Requests that raised or returned status >= 400.
        error_rate: total_errors / total_requests.
        errors_by_status: Error counts keyed by HTTP status.
        errors_by_type: Transport error counts keyed by exception type.
        endpoints: Per-request-name metrics.
    """

    timestamp: float
    elapsed_seconds: float
    active_users: int
    total_requests: int = 0
    requests_per_second: float = 0.0
    latency: LatencyStats = field(default_factory=LatencyStats)
    total_errors: int = 0
    error_rate: float = 0.0
    errors_by_status: dict[int, int] = field(default_factory=dict)
    errors_by_type: dict[str, int] = field(default_factory=dict)
    endpoints: dict[str, EndpointMetrics] = field(default_factory=dict)


@dataclass
class RunResult:
    """Complete result of a load run.

    Attributes:
        base_url: API root the run targeted.
        virtual_users: Configured virtual user count.
        duration_seconds: Measured wall-clock duration after setup.
        iterations: Completed iterations across all virtual users.
        snapshots: One snapshot per tick.
        final_summary: Cumulative snapshot for the whole run.
        checks: Per-check pass/fail tallies.
    """

    base_url: str
    virtual_users: int
    duration_seconds: float
    iterations: int
    snapshots: list[MetricSnapshot] = field(default_factory=list)
    final_summary: MetricSnapshot | None = None
    checks: list[CheckSummary] = field(default_factory=list)

    @property
    def check_failure_rate(self) -> float:
        """Return the fraction of failing check evaluations."""
        total = sum(c.total for c in self.checks)
        return sum(c.fails for c in self.checks) / total if total else 0.0
