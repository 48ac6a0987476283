"""Run session lifecycle management and signal handling."""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
import time
from enum import Enum, auto
from typing import TYPE_CHECKING

from probeload._internal.errors import ConfigError, EngineError
from probeload._internal.logging import bind, get_logger
from probeload.dsl.http_client import HttpClient
from probeload.engine._vu_utils import shutdown_all_vus
from probeload.metrics.collector import MetricCollector
from probeload.metrics.models import IterationMetric, MetricSnapshot, RunResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from probeload.dsl.scenario import ScenarioDefinition

logger = get_logger("engine.session")


class SessionState(Enum):
    """State machine for a run session."""

    CREATED = auto()
    STARTING = auto()
    RUNNING = auto()
    STOPPING = auto()
    COMPLETED = auto()
    FAILED = auto()


class RunSession:
    """Runs a fixed pool of virtual users against one address for a bounded time.

    Every virtual user (VU) owns a fresh scenario instance and its own
    ``HttpClient``, and calls the scenario's iteration function back to
    back until the session stops. VUs share nothing but the metric
    collector; no VU waits for another, so the iteration count is bounded
    only by the duration and the latency of each iteration.

    State machine: CREATED -> STARTING -> RUNNING -> STOPPING -> COMPLETED
                                                  -> FAILED (on error)

    Attributes:
        scenario: The scenario being executed.
        address: Base URL shared by all VUs for the whole run.
    """

    def __init__(
        self,
        scenario: ScenarioDefinition,
        address: str,
        vus: int,
        duration_seconds: float,
        *,
        request_timeout: float = 60.0,
        graceful_stop: float = 30.0,
        tick_interval: float = 1.0,
        on_snapshot: Callable[[MetricSnapshot], None] | None = None,
    ) -> None:
        """Initialize a run session.

        Args:
            scenario: The scenario definition to execute.
            address: Base URL every request path is appended to.
            vus: Number of concurrent virtual users.
            duration_seconds: Wall-clock bound on the run.
            request_timeout: Per-request timeout in seconds.
            graceful_stop: Seconds in-flight iterations get to finish after
                the duration has elapsed.
            tick_interval: Seconds between metric snapshots.
            on_snapshot: Optional callback invoked with each snapshot.

        Raises:
            ConfigError: If a numeric argument is out of range.
        """
        if vus < 1:
            msg = f"vus must be >= 1, got {vus}"
            raise ConfigError(msg)
        if duration_seconds <= 0:
            msg = f"duration_seconds must be positive, got {duration_seconds}"
            raise ConfigError(msg)
        if tick_interval <= 0:
            msg = f"tick_interval must be positive, got {tick_interval}"
            raise ConfigError(msg)
        if graceful_stop < 0:
            msg = f"graceful_stop must be non-negative, got {graceful_stop}"
            raise ConfigError(msg)

        self.scenario = scenario
        self.address = address
        self._vus = vus
        self._duration_seconds = duration_seconds
        self._request_timeout = request_timeout
        self._graceful_stop = graceful_stop
        self._tick_interval = tick_interval
        self._on_snapshot = on_snapshot

        self._state = SessionState.CREATED
        self._collector = MetricCollector()
        self._vu_tasks: list[tuple[int, asyncio.Task[None]]] = []
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> SessionState:
        """Return the current session state."""
        return self._state

    @property
    def active_vu_count(self) -> int:
        """Return the number of VUs that are still running."""
        return sum(1 for _, t in self._vu_tasks if not t.done())

    async def run(self) -> RunResult:
        """Execute the full session lifecycle.

        Returns:
            RunResult containing all snapshots and the final summary.

        Raises:
            EngineError: If the session encounters an unrecoverable error.
        """
        self._state = SessionState.STARTING
        logger.info(
            "Starting run: scenario=%s, address=%s, vus=%d, duration=%.1fs",
            self.scenario.name,
            self.address,
            self._vus,
            self._duration_seconds,
        )

        self._install_signal_handlers()

        start_time = time.monotonic()
        deadline = start_time + self._duration_seconds
        snapshots: list[MetricSnapshot] = []
        interrupted = 0

        self._state = SessionState.RUNNING

        try:
            for vu_id in range(self._vus):
                task = asyncio.create_task(self._run_vu(vu_id), name=f"vu-{vu_id}")
                self._vu_tasks.append((vu_id, task))

            next_tick = start_time + self._tick_interval
            while not self._stop_event.is_set():
                now = time.monotonic()
                if now >= deadline:
                    break

                # Sleep until the next tick, waking early on stop()
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(
                        self._stop_event.wait(),
                        timeout=min(next_tick, deadline) - now,
                    )

                self._raise_for_dead_vus()

                if time.monotonic() >= next_tick:
                    snapshots.append(self._take_snapshot(start_time))
                    next_tick += self._tick_interval

            self._raise_for_dead_vus()

        except Exception as exc:
            self._state = SessionState.FAILED
            logger.exception("Run session failed")
            raise EngineError("Run session failed") from exc
        finally:
            if self._state != SessionState.FAILED:
                self._state = SessionState.STOPPING
            interrupted = await shutdown_all_vus(
                self._vu_tasks, self._stop_event, self._graceful_stop
            )
            self._remove_signal_handlers()

        end_time = time.monotonic()
        total_duration = end_time - start_time

        # Pick up metrics from the last partial tick and the graceful stop
        self._collector.flush(elapsed_seconds=total_duration, active_users=0)

        final_summary = self._collector.get_cumulative_snapshot(
            elapsed_seconds=total_duration,
            active_users=0,
        )

        self._state = SessionState.COMPLETED
        logger.info(
            "Run completed: duration=%.1fs, iterations=%d, interrupted=%d, "
            "requests=%d, avg_rps=%.1f, p95=%.1fms, error_rate=%.2f%%",
            total_duration,
            final_summary.iterations,
            interrupted,
            final_summary.total_requests,
            final_summary.requests_per_second,
            final_summary.latency_p95,
            final_summary.error_rate * 100,
        )

        return RunResult(
            scenario_name=self.scenario.name,
            address=self.address,
            vus=self._vus,
            start_time=start_time,
            end_time=end_time,
            duration_seconds=total_duration,
            snapshots=snapshots,
            final_summary=final_summary,
        )

    async def stop(self) -> None:
        """Request graceful shutdown of the session.

        VUs finish their current iteration (within the graceful stop
        window) and start no new one.
        """
        if self._state == SessionState.RUNNING:
            logger.info("Graceful shutdown requested")
            self._state = SessionState.STOPPING
            self._stop_event.set()

    def _raise_for_dead_vus(self) -> None:
        """Raise if a VU task ended with an exception.

        Iteration errors are caught inside the VU loop, so an exception
        here means the VU could not start (for example the scenario class
        could not be instantiated) or its client failed.

        Raises:
            EngineError: For the first failed VU found.
        """
        for vu_id, task in self._vu_tasks:
            if not task.done() or task.cancelled():
                continue
            exc = task.exception()
            if exc is not None:
                msg = f"VU {vu_id} stopped unexpectedly: {exc!r}"
                raise EngineError(msg) from exc

    def _take_snapshot(self, start_time: float) -> MetricSnapshot:
        elapsed = time.monotonic() - start_time
        snapshot = self._collector.flush(
            elapsed_seconds=elapsed,
            active_users=self.active_vu_count,
        )
        logger.debug(
            "Tick %.1fs: vus=%d, iterations=%d, rps=%.1f, p95=%.1fms, errors=%d",
            elapsed,
            snapshot.active_users,
            snapshot.iterations,
            snapshot.requests_per_second,
            snapshot.latency_p95,
            snapshot.total_errors,
        )
        if self._on_snapshot is not None:
            self._on_snapshot(snapshot)
        return snapshot

    async def _run_vu(self, vu_id: int) -> None:
        """Run one virtual user until the stop event is set.

        Args:
            vu_id: Unique identifier for this virtual user.
        """
        vu_logger = bind(
            logger, scenario=self.scenario.name, vu_id=vu_id, address=self.address
        )
        instance = self.scenario.cls()
        async with HttpClient(
            base_url=self.address,
            metric_callback=self._collector.record,
            vu_id=vu_id,
            timeout=self._request_timeout,
        ) as client:
            try:
                while not self._stop_event.is_set():
                    started = time.monotonic()
                    failed = False
                    try:
                        await self.scenario.iteration(instance, client)
                    except asyncio.CancelledError:
                        raise
                    except Exception:
                        failed = True
                        vu_logger.debug("Iteration failed", exc_info=True)

                    self._collector.record_iteration(
                        IterationMetric(
                            timestamp=started,
                            duration_ms=(time.monotonic() - started) * 1000,
                            vu_id=vu_id,
                            failed=failed,
                        )
                    )
                    # An iteration that never awaits must not starve the loop
                    await asyncio.sleep(0)

            except asyncio.CancelledError:
                pass

    def _install_signal_handlers(self) -> None:
        """Install SIGINT and SIGTERM handlers for graceful shutdown.

        Handlers transition the session to STOPPING state, which causes
        the main loop to exit immediately.
        """
        loop = asyncio.get_running_loop()

        def _signal_handler() -> None:
            logger.info("Signal received, initiating graceful shutdown")
            self._state = SessionState.STOPPING
            self._stop_event.set()

        if sys.platform != "win32":
            loop.add_signal_handler(signal.SIGINT, _signal_handler)
            loop.add_signal_handler(signal.SIGTERM, _signal_handler)
        else:
            # Windows doesn't support add_signal_handler
            signal.signal(signal.SIGINT, lambda _s, _f: _signal_handler())
            signal.signal(signal.SIGTERM, lambda _s, _f: _signal_handler())

    def _remove_signal_handlers(self) -> None:
        """Remove custom signal handlers, restoring defaults."""
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
        else:
            signal.signal(signal.SIGINT, signal.default_int_handler)
            signal.signal(signal.SIGTERM, signal.SIG_DFL)
