"""JSON export of a run summary."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from probeload._internal.logging import get_logger

if TYPE_CHECKING:
    from pathlib import Path

    from probeload.metrics.models import RunResult

logger = get_logger("metrics.export")


def summary_to_dict(result: RunResult) -> dict[str, Any]:
    """Convert a run result into a JSON-serializable summary.

    The per-tick snapshots are left out; only the run metadata and the
    cumulative summary are exported.

    Args:
        result: Completed run result.

    Returns:
        A dict with ``scenario``, ``address``, ``vus``,
        ``duration_seconds`` and ``summary`` keys.
    """
    summary: dict[str, Any] | None = None
    if result.final_summary is not None:
        summary = asdict(result.final_summary)
        # JSON object keys must be strings
        summary["errors_by_status"] = {
            str(status): count for status, count in summary["errors_by_status"].items()
        }
        del summary["timestamp"]

    return {
        "scenario": result.scenario_name,
        "address": result.address,
        "vus": result.vus,
        "duration_seconds": result.duration_seconds,
        "snapshots": len(result.snapshots),
        "summary": summary,
    }


def write_summary(result: RunResult, path: Path) -> None:
    """Write the run summary as indented JSON.

    Parent directories are created as needed.

    Args:
        result: Completed run result.
        path: Destination file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary_to_dict(result), indent=2) + "\n")
    logger.info("Summary written to %s", path)
