"""probeload: probe an HTTP gateway with a fixed request sequence under concurrent load."""

from __future__ import annotations

from probeload.dsl.decorators import iteration, scenario
from probeload.dsl.http_client import HttpClient, ProbeResponse, RequestMetric
from probeload.probes import PROBE_PATHS, probe_targets, run_probe_iteration

__version__ = "0.1.0"

__all__ = [
    "PROBE_PATHS",
    "HttpClient",
    "ProbeResponse",
    "RequestMetric",
    "iteration",
    "probe_targets",
    "run_probe_iteration",
    "scenario",
]
