"""The example-server probe: six GETs in a fixed order, then a one second pause.

Each virtual user runs :func:`run_probe_iteration` back to back for the
whole run. Responses are never inspected; recording status, latency and
failures is the engine's job.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from probeload.dsl.decorators import iteration
from probeload.dsl.scenario import ScenarioDefinition

if TYPE_CHECKING:
    from probeload.dsl.http_client import HttpClient

PROBE_PATHS: tuple[str, ...] = (
    "/fake/fsf",
    "/combination/1",
    "/direct/slow",
    "/direct/delayed",
    "/direct/drop",
    "/does_not_exist",
)

# Seconds a VU sleeps after the last probe of an iteration.
ITERATION_PAUSE = 1.0

PROBE_SCENARIO_NAME = "Example Server Probe"
PROBE_VUS = 2
PROBE_DURATION = "150m"


def probe_targets(address: str) -> list[str]:
    """Return the full probe URLs for *address*, in request order."""
    base = address.rstrip("/")
    return [f"{base}{path}" for path in PROBE_PATHS]


async def run_probe_iteration(client: HttpClient, *, pause: float = ITERATION_PAUSE) -> None:
    """Run one probe iteration on *client*.

    Each GET is awaited before the next one is issued. The client records
    failures instead of raising, so a failed probe never prevents the
    following ones.
    """
    for path in PROBE_PATHS:
        await client.get(path)
    await asyncio.sleep(pause)


class ProbeIteration:
    """Scenario class for the example-server probe."""

    @iteration
    async def probe(self, client: HttpClient) -> None:
        await run_probe_iteration(client)


def build_probe_scenario(address: str | None = None) -> ScenarioDefinition:
    """Build the bundled probe scenario without touching the global registry.

    Args:
        address: Script-level address. None leaves it to configuration.

    Returns:
        ScenarioDefinition running :class:`ProbeIteration` with 2 VUs for
        150 minutes unless overridden.
    """
    return ScenarioDefinition(
        name=PROBE_SCENARIO_NAME,
        cls=ProbeIteration,
        iteration=ProbeIteration.probe,  # type: ignore[arg-type]
        base_url=address,
        vus=PROBE_VUS,
        duration=PROBE_DURATION,
    )
