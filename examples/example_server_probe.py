"""Probe the example gateway: six GETs, then a one second pause.

The same iteration as the built-in scenario, written as a script. Run it
against a local stand-in with:

    probeload serve &
    probeload run examples/example_server_probe.py --duration 30s

or point it somewhere else with ``--address`` / ``PROBELOAD_ADDRESS``.
"""

from __future__ import annotations

import asyncio

from probeload import HttpClient, iteration, scenario


@scenario(
    name="Example Gateway Probe",
    vus=2,
    duration="150m",
)
class ExampleGatewayProbe:
    """Hit every instrumented route once per iteration."""

    @iteration
    async def probe(self, client: HttpClient) -> None:
        await client.get("/fake/fsf")
        await client.get("/combination/1")
        await client.get("/direct/slow")
        await client.get("/direct/delayed")
        await client.get("/direct/drop")
        await client.get("/does_not_exist")
        await asyncio.sleep(1)
