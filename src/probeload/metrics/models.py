"""Metric aggregation dataclasses for probeload."""

from __future__ import annotations

from dataclasses import dataclass, field

# NOTE: RequestMetric lives in dsl/http_client.py. Imported here for
# re-export convenience.
from probeload.dsl.http_client import RequestMetric

__all__ = [
    "EndpointMetrics",
    "IterationMetric",
    "MetricSnapshot",
    "RequestMetric",
    "RunResult",
]


@dataclass
class IterationMetric:
    """Raw metric emitted when a virtual user finishes an iteration.

    Attributes:
        timestamp: Monotonic timestamp when the iteration started.
        duration_ms: Iteration wall-clock time, including its own pause.
        vu_id: ID of the virtual user that ran the iteration.
        failed: True if the iteration function raised.
    """

    timestamp: float
    duration_ms: float
    vu_id: int = 0
    failed: bool = False


@dataclass
class EndpointMetrics:
    """Aggregated metrics for a single endpoint (logical request name).

    Attributes:
        name: Logical endpoint name, usually the probe path.
        request_count: Total number of requests to this endpoint.
        error_count: Number of failed requests (status >= 400 or error).
        error_rate: Fraction of requests that failed (0.0 to 1.0).
        requests_per_second: Requests per second to this endpoint.
        latency_min: Minimum response time in milliseconds.
        latency_max: Maximum response time in milliseconds.
        latency_avg: Mean response time in milliseconds.
        latency_p50: 50th percentile response time in milliseconds.
        latency_p75: 75th percentile response time in milliseconds.
        latency_p90: 90th percentile response time in milliseconds.
        latency_p95: 95th percentile response time in milliseconds.
        latency_p99: 99th percentile response time in milliseconds.
    """

    name: str
    request_count: int = 0
    error_count: int = 0
    error_rate: float = 0.0
    requests_per_second: float = 0.0
    latency_min: float = 0.0
    latency_max: float = 0.0
    latency_avg: float = 0.0
    latency_p50: float = 0.0
    latency_p75: float = 0.0
    latency_p90: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0


@dataclass
class MetricSnapshot:
    """Aggregated metrics for one tick interval, or for the whole run.

    Attributes:
        timestamp: Monotonic timestamp of the snapshot.
        elapsed_seconds: Seconds since the run started.
        active_users: Number of running virtual users.
        total_requests: Total requests in this interval.
        requests_per_second: Overall RPS in this interval.
        latency_min: Minimum latency in milliseconds.
        latency_max: Maximum latency in milliseconds.
        latency_avg: Mean latency in milliseconds.
        latency_p50: 50th percentile latency (ms).
        latency_p75: 75th percentile latency (ms).
        latency_p90: 90th percentile latency (ms).
        latency_p95: 95th percentile latency (ms).
        latency_p99: 99th percentile latency (ms).
        latency_p999: 99.9th percentile latency (ms).
        total_errors: Total error count in this interval.
        error_rate: Fraction of requests that errored (0.0 to 1.0).
        errors_by_status: Error count breakdown by HTTP status code.
        errors_by_type: Error count breakdown by error type string.
        endpoints: Per-endpoint metrics keyed by endpoint name.
        iterations: Iterations completed in this interval.
        iterations_failed: Iterations whose function raised.
        iteration_duration_avg: Mean iteration duration (ms).
    """

    timestamp: float
    elapsed_seconds: float
    active_users: int
    total_requests: int = 0
    requests_per_second: float = 0.0
    latency_min: float = 0.0
    latency_max: float = 0.0
    latency_avg: float = 0.0
    latency_p50: float = 0.0
    latency_p75: float = 0.0
    latency_p90: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0
    latency_p999: float = 0.0
    total_errors: int = 0
    error_rate: float = 0.0
    errors_by_status: dict[int, int] = field(default_factory=dict)
    errors_by_type: dict[str, int] = field(default_factory=dict)
    endpoints: dict[str, EndpointMetrics] = field(default_factory=dict)
    iterations: int = 0
    iterations_failed: int = 0
    iteration_duration_avg: float = 0.0


@dataclass
class RunResult:
    """Complete result of a probe run.

    Attributes:
        scenario_name: Name of the scenario that was executed.
        address: The single address every request was sent to.
        vus: Number of virtual users.
        start_time: Monotonic time when the run started.
        end_time: Monotonic time when the run completed.
        duration_seconds: Total wall-clock duration of the run.
        snapshots: Time-series of MetricSnapshot objects (one per tick).
        final_summary: Aggregate MetricSnapshot for the entire run.
    """

    scenario_name: str
    address: str
    vus: int
    start_time: float
    end_time: float
    duration_seconds: float
    snapshots: list[MetricSnapshot] = field(default_factory=list)
    final_summary: MetricSnapshot | None = None
