"""``probeload serve``: run the local stand-in target."""

from __future__ import annotations

import logging

import typer

from probeload._internal.logging import setup_logging
from probeload.target.app import DEFAULT_PORT, run_target


def serve_cmd(
    host: str = typer.Option(
        "127.0.0.1",
        "--host",
        help="Interface to bind.",
    ),
    port: int = typer.Option(
        DEFAULT_PORT,
        "--port",
        "-p",
        help="TCP port to bind.",
        min=1,
        max=65535,
    ),
    delay: float = typer.Option(
        0.5,
        "--delay",
        help="Seconds /direct/delayed waits before answering.",
        min=0.0,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
) -> None:
    """Serve the six probed paths until interrupted."""
    setup_logging(level=logging.DEBUG if verbose else logging.INFO)
    run_target(host=host, port=port, delay=delay)
