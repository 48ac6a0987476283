"""Exceptions raised by probeload.

Failed HTTP requests are not exceptions: the client records them as
metrics. These classes cover the cases that stop a run from starting or
finishing.
"""

from __future__ import annotations


class ProbeLoadError(Exception):
    """Root of the probeload hierarchy; the CLI turns it into exit code 1."""


class ScenarioError(ProbeLoadError):
    """A scenario script or class cannot be used.

    Examples:
        - The class has no ``@iteration`` method, or more than one.
        - The ``@iteration`` method is not ``async def``.
        - ``vus`` or ``duration`` given to ``@scenario`` is invalid.
        - The script file is missing or fails to import.
    """


class ConfigError(ProbeLoadError):
    """A run setting is invalid.

    Examples:
        - ``PROBELOAD_VUS`` is not a positive integer.
        - A duration such as ``--duration 10x`` does not parse.
    """


class EngineError(ProbeLoadError):
    """A run session failed for reasons outside the scenario script."""
