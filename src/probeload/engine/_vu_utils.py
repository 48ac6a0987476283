"""Virtual user helpers shared by the run session."""

from __future__ import annotations

import asyncio

from probeload._internal.logging import get_logger

logger = get_logger("engine.vu_utils")

# Seconds to wait for cancelled VUs to unwind.
_CANCEL_WAIT = 2.0


async def shutdown_all_vus(
    vu_tasks: list[tuple[int, asyncio.Task[None]]],
    stop_event: asyncio.Event,
    graceful_stop: float,
) -> int:
    """Gracefully shut down all virtual users.

    Sets the stop event so no VU starts a new iteration, waits up to
    ``graceful_stop`` seconds for in-flight iterations to finish, then
    cancels whatever is still running. VUs that ended with an exception are
    logged at error level.

    Args:
        vu_tasks: List of (vu_id, task) tuples to shut down. Cleared on return.
        stop_event: Event observed by every VU loop.
        graceful_stop: Seconds in-flight iterations may take to finish.

    Returns:
        Number of VUs that had to be cancelled.
    """
    stop_event.set()

    interrupted = 0
    if vu_tasks:
        tasks = [t for _, t in vu_tasks]
        _done, pending = await asyncio.wait(tasks, timeout=graceful_stop)

        for task in pending:
            task.cancel()

        if pending:
            interrupted = len(pending)
            logger.info(
                "%d virtual users still busy after %.1fs graceful stop, cancelled",
                interrupted,
                graceful_stop,
            )
            await asyncio.wait(pending, timeout=_CANCEL_WAIT)

        for vu_id, task in vu_tasks:
            if task.done() and not task.cancelled() and task.exception() is not None:
                logger.error("VU %d ended with an error: %r", vu_id, task.exception())

    vu_tasks.clear()
    logger.debug("All virtual users shut down")
    return interrupted
