"""``probeload run``: execute a probe scenario with live terminal output."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from probeload._internal.config import config_for_scenario, load_config, parse_duration
from probeload._internal.errors import ProbeLoadError
from probeload.dsl.loader import load_scenario
from probeload.engine.worker import run_worker
from probeload.metrics.export import write_summary
from probeload.probes import build_probe_scenario

if TYPE_CHECKING:
    from probeload._internal.config import ProbeLoadConfig
    from probeload.dsl.scenario import ScenarioDefinition
    from probeload.metrics.models import MetricSnapshot, RunResult

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Option resolution
# ---------------------------------------------------------------------------


def _resolve_config(
    scenario: ScenarioDefinition,
    *,
    vus: int | None,
    duration: str | None,
    address: str | None,
    timeout: float | None,
    graceful_stop: str | None,
) -> ProbeLoadConfig:
    """Resolve the run configuration.

    Precedence: command-line flag, then environment variable, then the
    scenario's own options, then the built-in defaults.

    Raises:
        ConfigError: If any value is invalid.
    """
    config = load_config(base=config_for_scenario(scenario))

    overrides: dict[str, object] = {}
    if vus is not None:
        overrides["vus"] = vus
    if duration is not None:
        overrides["duration_seconds"] = parse_duration(duration)
    if address is not None:
        overrides["address"] = address
    if timeout is not None:
        overrides["request_timeout"] = timeout
    if graceful_stop is not None:
        overrides["graceful_stop"] = parse_duration(graceful_stop, allow_zero=True)

    return replace(config, **overrides)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Rich live display
# ---------------------------------------------------------------------------


def _make_live_table(snapshot: MetricSnapshot | None) -> Table:
    """Build a Rich table summarising the latest tick.

    Args:
        snapshot: Latest metric snapshot, or None if no data yet.

    Returns:
        Formatted Rich Table.
    """
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    if snapshot is None:
        table.add_row("Status", "Starting...")
        return table

    table.add_row("Elapsed", f"{snapshot.elapsed_seconds:.0f}s")
    table.add_row("Active VUs", str(snapshot.active_users))
    table.add_row("Iterations", str(snapshot.iterations))
    table.add_row("Requests/sec", f"{snapshot.requests_per_second:.1f}")
    table.add_row("p50 Latency", f"{snapshot.latency_p50:.1f}ms")
    table.add_row("p95 Latency", f"{snapshot.latency_p95:.1f}ms")
    table.add_row("Errors", str(snapshot.total_errors))
    table.add_row("Error Rate", f"{snapshot.error_rate * 100:.2f}%")

    return table


def _print_summary(result: RunResult) -> None:
    """Print the per-endpoint breakdown and the run summary.

    Args:
        result: Completed run result.
    """
    summary = result.final_summary

    if summary and summary.endpoints:
        ep_table = Table(
            title="Per-Endpoint Breakdown",
            show_header=True,
            header_style="bold cyan",
            expand=True,
        )
        ep_table.add_column("Endpoint")
        ep_table.add_column("Requests", justify="right")
        ep_table.add_column("p50", justify="right")
        ep_table.add_column("p95", justify="right")
        ep_table.add_column("max", justify="right")
        ep_table.add_column("Errors", justify="right")
        ep_table.add_column("Error %", justify="right")

        for ep in summary.endpoints.values():
            ep_table.add_row(
                ep.name,
                str(ep.request_count),
                f"{ep.latency_p50:.1f}ms",
                f"{ep.latency_p95:.1f}ms",
                f"{ep.latency_max:.1f}ms",
                str(ep.error_count),
                f"{ep.error_rate * 100:.2f}%",
            )
        console.print(ep_table)

    table = Table(
        title="Run Complete",
        show_header=True,
        header_style="bold green",
        expand=True,
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Scenario", result.scenario_name)
    table.add_row("Address", result.address)
    table.add_row("VUs", str(result.vus))
    table.add_row("Duration", f"{result.duration_seconds:.1f}s")

    if summary:
        table.add_row("Iterations", str(summary.iterations))
        table.add_row("Failed Iterations", str(summary.iterations_failed))
        table.add_row("Avg Iteration", f"{summary.iteration_duration_avg:.1f}ms")
        table.add_row("Total Requests", str(summary.total_requests))
        table.add_row("Avg Requests/sec", f"{summary.requests_per_second:.1f}")
        table.add_row("p95 Latency", f"{summary.latency_p95:.1f}ms")
        table.add_row("Total Errors", str(summary.total_errors))
        table.add_row("Error Rate", f"{summary.error_rate * 100:.2f}%")

    console.print(table)


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def run_cmd(
    script: Path | None = typer.Argument(
        None,
        help="Scenario .py file. Defaults to the built-in probe scenario.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    vus: int | None = typer.Option(
        None,
        "--vus",
        "-u",
        help="Number of concurrent virtual users.",
        min=1,
    ),
    duration: str | None = typer.Option(
        None,
        "--duration",
        "-d",
        help="Run duration, e.g. 30s, 150m, 1h30m.",
    ),
    address: str | None = typer.Option(
        None,
        "--address",
        "-a",
        help="Target base URL.",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Per-request timeout in seconds.",
        min=0.001,
    ),
    graceful_stop: str | None = typer.Option(
        None,
        "--graceful-stop",
        help="Time in-flight iterations get to finish after the duration, e.g. 30s.",
    ),
    summary_export: Path | None = typer.Option(
        None,
        "--summary-export",
        help="Write the run summary to this JSON file.",
    ),
    fail_on_error_rate: float | None = typer.Option(
        None,
        "--fail-on-error-rate",
        help="Exit non-zero if error rate exceeds this threshold (e.g., 0.05).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit logs as one JSON object per line.",
    ),
) -> None:
    """Run a probe scenario with live terminal output."""
    try:
        scenario = load_scenario(script) if script is not None else build_probe_scenario()
        config = _resolve_config(
            scenario,
            vus=vus,
            duration=duration,
            address=address,
            timeout=timeout,
            graceful_stop=graceful_stop,
        )
    except ProbeLoadError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(
        Panel(
            f"[bold]Scenario:[/bold] {scenario.name}\n"
            f"[bold]Address:[/bold]  {config.address}\n"
            f"[bold]VUs:[/bold]      {config.vus}\n"
            f"[bold]Duration:[/bold] {config.duration_seconds:g}s",
            title="probeload",
            border_style="cyan",
        )
    )

    log_level = logging.DEBUG if verbose else logging.INFO

    try:
        with Live(
            _make_live_table(None),
            console=console,
            refresh_per_second=2,
            transient=True,
        ) as live:

            def _on_snapshot(snapshot: MetricSnapshot) -> None:
                live.update(_make_live_table(snapshot))

            result = run_worker(
                scenario,
                config,
                on_snapshot=_on_snapshot,
                log_level=log_level,
                json_logs=json_logs,
            )
    except ProbeLoadError as exc:
        console.print(f"[red]Run failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    _print_summary(result)

    if summary_export is not None:
        write_summary(result, summary_export)
        console.print(f"[green]Summary written to[/green] {summary_export}")

    if (
        fail_on_error_rate is not None
        and result.final_summary is not None
        and result.final_summary.error_rate > fail_on_error_rate
    ):
        console.print(
            f"[red]FAIL:[/red] Error rate {result.final_summary.error_rate * 100:.2f}% "
            f"exceeds threshold {fail_on_error_rate * 100:.2f}%"
        )
        raise typer.Exit(code=1)

    console.print("[green]Run completed successfully.[/green]")
