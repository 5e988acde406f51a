"""In-memory request metric collection."""

from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import TYPE_CHECKING

import numpy as np

from attendload.metrics.models import EndpointMetrics, LatencyStats, MetricSnapshot

if TYPE_CHECKING:
    from attendload.http_client import RequestMetric

_PERCENTILES = [50.0, 90.0, 95.0, 99.0]


def compute_latency_stats(latencies: list[float]) -> LatencyStats:
    """Compute the latency distribution of a list of millisecond values.

    Args:
        latencies: Latency values in milliseconds.

    Returns:
        LatencyStats, all zeros when the list is empty.
    """
    if not latencies:
        return LatencyStats()

    arr = np.array(latencies, dtype=np.float64)
    p50, p90, p95, p99 = np.percentile(arr, _PERCENTILES)
    return LatencyStats(
        min=float(np.min(arr)),
        max=float(np.max(arr)),
        avg=float(np.mean(arr)),
        p50=float(p50),
        p90=float(p90),
        p95=float(p95),
        p99=float(p99),
    )


def is_error(metric: RequestMetric) -> bool:
    """Return True if the request raised or returned status >= 400."""
    return metric.error is not None or metric.status_code >= 400


class MetricCollector:
    """Buffers RequestMetric objects and aggregates them into snapshots.

    ``record`` is passed as ``HttpClient.metric_callback``. ``flush``
    drains the buffer into an interval snapshot; ``get_cumulative_snapshot``
    summarizes everything recorded so far.
    """

    def __init__(self) -> None:
        """Initialize an empty collector."""
        self._buffer: deque[RequestMetric] = deque()
        self._all_metrics: list[RequestMetric] = []
        self._last_flush_time: float = time.monotonic()

    @property
    def pending_count(self) -> int:
        """Return the number of metrics not yet flushed."""
        return len(self._buffer)

    def record(self, metric: RequestMetric) -> None:
        """Append a metric to the buffer.

        Args:
            metric: The request metric to record.
        """
        self._buffer.append(metric)

    def flush(self, elapsed_seconds: float, active_users: int) -> MetricSnapshot:
        """Drain the buffer and aggregate it into an interval snapshot.

        Args:
            elapsed_seconds: Seconds since the run started.
            active_users: Running virtual users.

        Returns:
            Snapshot of the metrics recorded since the previous flush.
        """
        drained: list[RequestMetric] = []
        while self._buffer:
            drained.append(self._buffer.popleft())
        self._all_metrics.extend(drained)

        now = time.monotonic()
        interval = max(now - self._last_flush_time, 0.001)
        self._last_flush_time = now

        return self._build_snapshot(drained, elapsed_seconds, active_users, interval)

    def get_cumulative_snapshot(self, elapsed_seconds: float, active_users: int) -> MetricSnapshot:
        """Aggregate every flushed metric since the collector was created.

        Args:
            elapsed_seconds: Total elapsed seconds, also used for throughput.
            active_users: Running virtual users.

        Returns:
            Cumulative snapshot.
        """
        return self._build_snapshot(
            self._all_metrics,
            elapsed_seconds,
            active_users,
            max(elapsed_seconds, 0.001),
        )

    def _build_snapshot(
        self,
        metrics: list[RequestMetric],
        elapsed_seconds: float,
        active_users: int,
        interval: float,
    ) -> MetricSnapshot:
        if not metrics:
            return MetricSnapshot(
                timestamp=time.monotonic(),
                elapsed_seconds=elapsed_seconds,
                active_users=active_users,
            )

        by_endpoint: dict[str, list[RequestMetric]] = defaultdict(list)
        errors_by_status: dict[int, int] = defaultdict(int)
        errors_by_type: dict[str, int] = defaultdict(int)
        total_errors = 0

        for metric in metrics:
            by_endpoint[metric.name].append(metric)
            if not is_error(metric):
                continue
            total_errors += 1
            if metric.status_code >= 400:
                errors_by_status[metric.status_code] += 1
            if metric.error is not None:
                errors_by_type[metric.error.split(":")[0].strip()] += 1

        endpoints: dict[str, EndpointMetrics] = {}
        for name, ep_metrics in by_endpoint.items():
            ep_count = len(ep_metrics)
            ep_errors = sum(1 for m in ep_metrics if is_error(m))
            endpoints[name] = EndpointMetrics(
                name=name,
                request_count=ep_count,
                error_count=ep_errors,
                error_rate=ep_errors / ep_count,
                requests_per_second=ep_count / interval,
                latency=compute_latency_stats([m.latency_ms for m in ep_metrics]),
            )

        total_requests = len(metrics)
        return MetricSnapshot(
            timestamp=time.monotonic(),
            elapsed_seconds=elapsed_seconds,
            active_users=active_users,
            total_requests=total_requests,
            requests_per_second=total_requests / interval,
            latency=compute_latency_stats([m.latency_ms for m in metrics]),
            total_errors=total_errors,
            error_rate=total_errors / total_requests,
            errors_by_status=dict(errors_by_status),
            errors_by_type=dict(errors_by_type),
            endpoints=endpoints,
        )
