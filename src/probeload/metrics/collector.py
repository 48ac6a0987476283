"""In-memory metric collection for a run session."""

from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import TYPE_CHECKING

import numpy as np

from probeload._internal.logging import get_logger
from probeload.metrics.models import EndpointMetrics, MetricSnapshot

if TYPE_CHECKING:
    from probeload.dsl.http_client import RequestMetric
    from probeload.metrics.models import IterationMetric

logger = get_logger("metrics.collector")

_SNAPSHOT_PERCENTILES = (50.0, 75.0, 90.0, 95.0, 99.0, 99.9)
_ENDPOINT_PERCENTILES = (50.0, 75.0, 90.0, 95.0, 99.0)


def _latency_stats(latencies: list[float], percentiles: tuple[float, ...]) -> list[float]:
    """Compute ``[min, max, avg, *percentiles]`` for a list of latencies.

    Args:
        latencies: Latency values in milliseconds.
        percentiles: Percentiles to compute, in ascending order.

    Returns:
        A flat list of floats; all zeros when *latencies* is empty.
    """
    if not latencies:
        return [0.0] * (3 + len(percentiles))

    arr = np.asarray(latencies, dtype=np.float64)
    values = np.percentile(arr, list(percentiles))
    return [float(arr.min()), float(arr.max()), float(arr.mean())] + [float(v) for v in values]


def _is_error(metric: RequestMetric) -> bool:
    return metric.error is not None or metric.status_code >= 400


class MetricCollector:
    """Collects request and iteration metrics in deques.

    ``record`` is passed to every virtual user's ``HttpClient`` as its
    ``metric_callback``; ``record_iteration`` is called by the session
    after each iteration. ``flush`` drains both buffers into a
    ``MetricSnapshot`` for the interval, and everything drained is kept
    for the cumulative summary.
    """

    def __init__(self) -> None:
        """Initialize an empty collector."""
        self._buffer: deque[RequestMetric] = deque()
        self._iteration_buffer: deque[IterationMetric] = deque()
        self._all_metrics: list[RequestMetric] = []
        self._all_iterations: list[IterationMetric] = []
        self._last_flush_time: float = time.monotonic()

    @property
    def pending_count(self) -> int:
        """Return the number of unprocessed request metrics."""
        return len(self._buffer)

    def record(self, metric: RequestMetric) -> None:
        """Append a request metric to the collection buffer.

        Args:
            metric: The request metric to record.
        """
        self._buffer.append(metric)

    def record_iteration(self, metric: IterationMetric) -> None:
        """Append an iteration metric to the collection buffer.

        Args:
            metric: The iteration metric to record.
        """
        self._iteration_buffer.append(metric)

    def flush(
        self,
        elapsed_seconds: float,
        active_users: int,
    ) -> MetricSnapshot:
        """Drain the buffers and compute an aggregated snapshot.

        Args:
            elapsed_seconds: Seconds elapsed since the run started.
            active_users: Current number of running virtual users.

        Returns:
            A MetricSnapshot summarizing everything drained by this call.
        """
        drained: list[RequestMetric] = []
        while self._buffer:
            drained.append(self._buffer.popleft())

        iterations: list[IterationMetric] = []
        while self._iteration_buffer:
            iterations.append(self._iteration_buffer.popleft())

        self._all_metrics.extend(drained)
        self._all_iterations.extend(iterations)

        now = time.monotonic()
        interval = max(now - self._last_flush_time, 0.001)
        self._last_flush_time = now

        return self._build_snapshot(
            metrics=drained,
            iterations=iterations,
            elapsed_seconds=elapsed_seconds,
            active_users=active_users,
            interval=interval,
        )

    def get_cumulative_snapshot(
        self,
        elapsed_seconds: float,
        active_users: int,
    ) -> MetricSnapshot:
        """Return a snapshot of everything flushed since the collector was created.

        Metrics still pending in the buffers are not included; flush first.

        Args:
            elapsed_seconds: Total elapsed seconds.
            active_users: Current running virtual user count.

        Returns:
            A cumulative MetricSnapshot.
        """
        return self._build_snapshot(
            metrics=self._all_metrics,
            iterations=self._all_iterations,
            elapsed_seconds=elapsed_seconds,
            active_users=active_users,
            interval=max(elapsed_seconds, 0.001),
        )

    def reset(self) -> None:
        """Clear all internal state. Primarily for testing."""
        self._buffer.clear()
        self._iteration_buffer.clear()
        self._all_metrics.clear()
        self._all_iterations.clear()
        self._last_flush_time = time.monotonic()

    def _build_snapshot(
        self,
        metrics: list[RequestMetric],
        iterations: list[IterationMetric],
        elapsed_seconds: float,
        active_users: int,
        interval: float,
    ) -> MetricSnapshot:
        """Build a MetricSnapshot from request and iteration metrics."""
        snapshot = MetricSnapshot(
            timestamp=time.monotonic(),
            elapsed_seconds=elapsed_seconds,
            active_users=active_users,
        )

        if iterations:
            snapshot.iterations = len(iterations)
            snapshot.iterations_failed = sum(1 for it in iterations if it.failed)
            snapshot.iteration_duration_avg = float(
                np.mean([it.duration_ms for it in iterations])
            )

        if not metrics:
            return snapshot

        by_endpoint: dict[str, list[RequestMetric]] = defaultdict(list)
        errors_by_status: dict[int, int] = defaultdict(int)
        errors_by_type: dict[str, int] = defaultdict(int)
        total_errors = 0

        for metric in metrics:
            by_endpoint[metric.name].append(metric)
            if not _is_error(metric):
                continue
            total_errors += 1
            if metric.status_code >= 400:
                errors_by_status[metric.status_code] += 1
            if metric.error is not None:
                # "ServerDisconnectedError: ..." -> "ServerDisconnectedError"
                errors_by_type[metric.error.split(":")[0].strip()] += 1

        (
            snapshot.latency_min,
            snapshot.latency_max,
            snapshot.latency_avg,
            snapshot.latency_p50,
            snapshot.latency_p75,
            snapshot.latency_p90,
            snapshot.latency_p95,
            snapshot.latency_p99,
            snapshot.latency_p999,
        ) = _latency_stats([m.latency_ms for m in metrics], _SNAPSHOT_PERCENTILES)

        snapshot.total_requests = len(metrics)
        snapshot.requests_per_second = len(metrics) / interval
        snapshot.total_errors = total_errors
        snapshot.error_rate = total_errors / len(metrics)
        snapshot.errors_by_status = dict(errors_by_status)
        snapshot.errors_by_type = dict(errors_by_type)

        for name, ep_metrics in by_endpoint.items():
            ep_count = len(ep_metrics)
            ep_errors = sum(1 for m in ep_metrics if _is_error(m))
            ep = EndpointMetrics(
                name=name,
                request_count=ep_count,
                error_count=ep_errors,
                error_rate=ep_errors / ep_count,
                requests_per_second=ep_count / interval,
            )
            (
                ep.latency_min,
                ep.latency_max,
                ep.latency_avg,
                ep.latency_p50,
                ep.latency_p75,
                ep.latency_p90,
                ep.latency_p95,
                ep.latency_p99,
            ) = _latency_stats([m.latency_ms for m in ep_metrics], _ENDPOINT_PERCENTILES)
            snapshot.endpoints[name] = ep

        return snapshot
