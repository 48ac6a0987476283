"""Only the slow routes, each under its own metric name.

    probeload run examples/slow_routes_probe.py --vus 10 --duration 1m
"""

from __future__ import annotations

import asyncio

from probeload import HttpClient, iteration, scenario


@scenario(name="Slow Routes", vus=4, duration="5m")
class SlowRoutesProbe:
    """Hammer /direct/slow and /direct/delayed."""

    @iteration
    async def probe(self, client: HttpClient) -> None:
        for path in ("/direct/slow", "/direct/delayed"):
            await client.get(path, name=f"slow {path}")
        await asyncio.sleep(0.5)
