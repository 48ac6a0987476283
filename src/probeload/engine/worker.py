"""Synchronous entry point running a session on a uvloop event loop."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from probeload._internal.logging import get_logger, setup_logging
from probeload.engine.session import RunSession

if TYPE_CHECKING:
    from collections.abc import Callable

    from probeload._internal.config import ProbeLoadConfig
    from probeload.dsl.scenario import ScenarioDefinition
    from probeload.metrics.models import MetricSnapshot, RunResult

logger = get_logger("engine.worker")


def _uvloop_factory() -> Callable[[], asyncio.AbstractEventLoop] | None:
    """Return uvloop's event loop factory if available.

    Falls back to the default asyncio event loop on Windows or if uvloop
    is not installed.
    """
    if sys.platform == "win32":
        return None

    try:
        import uvloop
    except ImportError:
        logger.debug("uvloop not available, using default asyncio event loop")
        return None

    logger.debug("Using uvloop event loop")
    return uvloop.new_event_loop


def run_worker(
    scenario: ScenarioDefinition,
    config: ProbeLoadConfig,
    *,
    tick_interval: float = 1.0,
    on_snapshot: Callable[[MetricSnapshot], None] | None = None,
    log_level: int = logging.INFO,
    json_logs: bool = False,
) -> RunResult:
    """Execute a run in the current process and block until it completes.

    Args:
        scenario: The scenario definition to execute.
        config: Resolved run configuration (address, VUs, duration, ...).
        tick_interval: Seconds between metric snapshots.
        on_snapshot: Optional callback invoked with each snapshot.
        log_level: Logging level.
        json_logs: Emit structured JSON logs.

    Returns:
        RunResult containing all snapshots and the final summary.

    Raises:
        EngineError: If the run fails to execute.
    """
    setup_logging(level=log_level, json_format=json_logs)

    with asyncio.Runner(loop_factory=_uvloop_factory()) as runner:
        return runner.run(
            _run_session(
                scenario,
                config,
                tick_interval=tick_interval,
                on_snapshot=on_snapshot,
            )
        )


async def _run_session(
    scenario: ScenarioDefinition,
    config: ProbeLoadConfig,
    *,
    tick_interval: float,
    on_snapshot: Callable[[MetricSnapshot], None] | None,
) -> RunResult:
    """Create the RunSession inside the running loop and execute it."""
    session = RunSession(
        scenario,
        address=config.address,
        vus=config.vus,
        duration_seconds=config.duration_seconds,
        request_timeout=config.request_timeout,
        graceful_stop=config.graceful_stop,
        tick_interval=tick_interval,
        on_snapshot=on_snapshot,
    )
    return await session.run()
