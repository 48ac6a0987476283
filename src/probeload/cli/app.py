"""The ``probeload`` command: Typer app and command registration."""

from __future__ import annotations

import typer

from probeload import __version__
from probeload.cli.run import run_cmd
from probeload.cli.serve import serve_cmd
from probeload.cli.targets import targets_cmd

_COMMANDS = (
    ("run", run_cmd, "Run the example-server probe, or a scenario script."),
    ("targets", targets_cmd, "Print the URLs one probe iteration requests."),
    ("serve", serve_cmd, "Serve a local stand-in for the probed gateway."),
)

app = typer.Typer(
    name="probeload",
    help="Six GETs and a one second pause, repeated by every virtual user.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

for _name, _func, _help in _COMMANDS:
    app.command(_name, help=_help)(_func)


def _show_version(value: bool) -> None:
    if not value:
        return
    typer.echo(f"probeload {__version__}")
    raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Print the probeload version and exit.",
        callback=_show_version,
        is_eager=True,
    ),
) -> None:
    """Probe an HTTP gateway with a fixed request sequence from concurrent virtual users.

    Address, VU count and duration come from flags, then PROBELOAD_*
    environment variables, then the scenario's own options.
    """
