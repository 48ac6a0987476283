"""``probeload targets``: print the URLs of one probe iteration."""

from __future__ import annotations

import typer

from probeload._internal.config import load_config
from probeload._internal.errors import ConfigError
from probeload.probes import ITERATION_PAUSE, probe_targets


def targets_cmd(
    address: str | None = typer.Option(
        None,
        "--address",
        "-a",
        help="Target base URL (default: PROBELOAD_ADDRESS or the built-in address).",
    ),
) -> None:
    """Print the probe URLs in request order, without sending anything."""
    if address is None:
        try:
            address = load_config().address
        except ConfigError as exc:
            raise typer.BadParameter(str(exc)) from exc

    for url in probe_targets(address):
        typer.echo(f"GET {url}")
    typer.echo(f"sleep {ITERATION_PAUSE:g}s")
