"""Tests for the MetricCollector."""

from __future__ import annotations

import time

from probeload.dsl.http_client import RequestMetric
from probeload.metrics.collector import MetricCollector
from probeload.metrics.models import IterationMetric


def _make_metric(
    name: str = "/fake/fsf",
    latency_ms: float = 10.0,
    status_code: int = 200,
    error: str | None = None,
) -> RequestMetric:
    """Create a RequestMetric with sensible defaults."""
    return RequestMetric(
        timestamp=time.monotonic(),
        name=name,
        method="GET",
        url=f"http://localhost{name}",
        status_code=status_code,
        latency_ms=latency_ms,
        content_length=0,
        error=error,
    )


def _make_iteration(duration_ms: float = 1000.0, *, failed: bool = False) -> IterationMetric:
    return IterationMetric(timestamp=time.monotonic(), duration_ms=duration_ms, failed=failed)


class TestMetricCollectorRecord:
    """Tests for the record methods."""

    def test_pending_count_starts_at_zero(self) -> None:
        assert MetricCollector().pending_count == 0

    def test_record_appends_to_buffer(self) -> None:
        collector = MetricCollector()
        for _ in range(5):
            collector.record(_make_metric())
        assert collector.pending_count == 5

    def test_record_iteration_does_not_count_as_request(self) -> None:
        collector = MetricCollector()
        collector.record_iteration(_make_iteration())
        assert collector.pending_count == 0


class TestMetricCollectorFlush:
    """Tests for the flush method."""

    def test_flush_drains_buffer(self) -> None:
        collector = MetricCollector()
        collector.record(_make_metric())
        collector.record(_make_metric())
        snapshot = collector.flush(elapsed_seconds=1.0, active_users=2)
        assert collector.pending_count == 0
        assert snapshot.total_requests == 2
        assert snapshot.active_users == 2

    def test_flush_computes_latency_stats(self) -> None:
        collector = MetricCollector()
        for lat in [10.0, 20.0, 30.0, 40.0, 50.0]:
            collector.record(_make_metric(latency_ms=lat))
        snapshot = collector.flush(elapsed_seconds=1.0, active_users=1)
        assert snapshot.latency_min == 10.0
        assert snapshot.latency_max == 50.0
        assert snapshot.latency_avg == 30.0
        assert snapshot.latency_p50 == 30.0
        assert snapshot.latency_p50 <= snapshot.latency_p95 <= snapshot.latency_p999 <= 50.0

    def test_flush_groups_by_endpoint_in_first_seen_order(self) -> None:
        collector = MetricCollector()
        collector.record(_make_metric(name="/fake/fsf", latency_ms=10.0))
        collector.record(_make_metric(name="/combination/1", latency_ms=30.0))
        collector.record(_make_metric(name="/fake/fsf", latency_ms=20.0))
        snapshot = collector.flush(elapsed_seconds=1.0, active_users=1)
        assert list(snapshot.endpoints) == ["/fake/fsf", "/combination/1"]
        assert snapshot.endpoints["/fake/fsf"].request_count == 2
        assert snapshot.endpoints["/fake/fsf"].latency_avg == 15.0
        assert snapshot.endpoints["/combination/1"].request_count == 1

    def test_status_404_counts_as_error(self) -> None:
        collector = MetricCollector()
        collector.record(_make_metric(status_code=200))
        collector.record(_make_metric(name="/does_not_exist", status_code=404))
        collector.record(_make_metric(status_code=200))
        snapshot = collector.flush(elapsed_seconds=1.0, active_users=1)
        assert snapshot.total_errors == 1
        assert abs(snapshot.error_rate - 1 / 3) < 0.01
        assert snapshot.errors_by_status == {404: 1}
        assert snapshot.endpoints["/does_not_exist"].error_rate == 1.0

    def test_transport_errors_grouped_by_type(self) -> None:
        collector = MetricCollector()
        collector.record(
            _make_metric(status_code=0, error="ClientConnectorError: Cannot connect to host")
        )
        collector.record(
            _make_metric(status_code=200, error="ClientPayloadError: Response payload is not completed")
        )
        collector.record(_make_metric(status_code=0, error="TimeoutError: "))
        snapshot = collector.flush(elapsed_seconds=1.0, active_users=1)
        assert snapshot.total_errors == 3
        assert snapshot.errors_by_type == {
            "ClientConnectorError": 1,
            "ClientPayloadError": 1,
            "TimeoutError": 1,
        }
        # A status 200 with a broken body is not a status error
        assert snapshot.errors_by_status == {}

    def test_flush_computes_rps(self) -> None:
        collector = MetricCollector()
        for _ in range(10):
            collector.record(_make_metric())
        snapshot = collector.flush(elapsed_seconds=1.0, active_users=1)
        assert snapshot.requests_per_second > 0

    def test_empty_flush_returns_zero_snapshot(self) -> None:
        collector = MetricCollector()
        snapshot = collector.flush(elapsed_seconds=1.0, active_users=0)
        assert snapshot.total_requests == 0
        assert snapshot.requests_per_second == 0.0
        assert snapshot.latency_min == 0.0
        assert snapshot.total_errors == 0
        assert snapshot.iterations == 0
        assert snapshot.endpoints == {}

    def test_flush_counts_iterations(self) -> None:
        collector = MetricCollector()
        collector.record_iteration(_make_iteration(1000.0))
        collector.record_iteration(_make_iteration(1200.0))
        collector.record_iteration(_make_iteration(800.0, failed=True))
        snapshot = collector.flush(elapsed_seconds=1.0, active_users=3)
        assert snapshot.iterations == 3
        assert snapshot.iterations_failed == 1
        assert snapshot.iteration_duration_avg == 1000.0
        # Iterations alone produce no request statistics
        assert snapshot.total_requests == 0

    def test_flush_drains_iterations(self) -> None:
        collector = MetricCollector()
        collector.record_iteration(_make_iteration())
        collector.flush(elapsed_seconds=1.0, active_users=1)
        snapshot = collector.flush(elapsed_seconds=2.0, active_users=1)
        assert snapshot.iterations == 0


class TestMetricCollectorCumulative:
    """Tests for get_cumulative_snapshot."""

    def test_cumulative_includes_all_flushed_metrics(self) -> None:
        collector = MetricCollector()
        for _ in range(3):
            collector.record(_make_metric())
        collector.record_iteration(_make_iteration())
        collector.flush(elapsed_seconds=1.0, active_users=1)

        for _ in range(2):
            collector.record(_make_metric())
        collector.record_iteration(_make_iteration())
        collector.flush(elapsed_seconds=2.0, active_users=1)

        cumulative = collector.get_cumulative_snapshot(elapsed_seconds=2.0, active_users=0)
        assert cumulative.total_requests == 5
        assert cumulative.iterations == 2

    def test_cumulative_does_not_drain_buffer(self) -> None:
        collector = MetricCollector()
        collector.record(_make_metric())
        cumulative = collector.get_cumulative_snapshot(elapsed_seconds=1.0, active_users=1)
        assert collector.pending_count == 1
        assert cumulative.total_requests == 0


class TestMetricCollectorReset:
    """Tests for the reset method."""

    def test_reset_clears_everything(self) -> None:
        collector = MetricCollector()
        collector.record(_make_metric())
        collector.record_iteration(_make_iteration())
        collector.flush(elapsed_seconds=1.0, active_users=1)
        collector.record(_make_metric())
        collector.reset()
        assert collector.pending_count == 0
        cumulative = collector.get_cumulative_snapshot(elapsed_seconds=0.0, active_users=0)
        assert cumulative.total_requests == 0
        assert cumulative.iterations == 0
