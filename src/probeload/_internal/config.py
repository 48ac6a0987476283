"""Configuration loading for probeload."""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from probeload._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from probeload.dsl.scenario import ScenarioDefinition

DEFAULT_ADDRESS = "http://127.0.0.1:54444"

_UNIT_SECONDS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 0.001,
    "us": 0.000001,
}

# "ms" must be tried before "m" and "s".
_SEGMENT = re.compile(r"(\d+(?:\.\d+)?)(ms|us|h|m|s)")


@dataclass(frozen=True)
class ProbeLoadConfig:
    """Run configuration, read once at start and immutable afterwards.

    Attributes:
        address: Base URL every probe path is appended to.
        vus: Number of concurrent virtual users.
        duration_seconds: Wall-clock bound on the run.
        request_timeout: Per-request timeout in seconds.
        graceful_stop: Seconds in-flight iterations get to finish once
            the duration has elapsed.
    """

    address: str = DEFAULT_ADDRESS
    vus: int = 2
    duration_seconds: float = 9000.0
    request_timeout: float = 60.0
    graceful_stop: float = 30.0


def parse_duration(text: str, *, allow_zero: bool = False) -> float:
    """Parse a duration string such as ``"150m"`` or ``"1h30m"`` into seconds.

    A bare number is read as seconds.

    Args:
        text: Duration string.
        allow_zero: Also accept ``0``. Used for the graceful stop window.

    Returns:
        Duration in seconds.

    Raises:
        ConfigError: If the string is empty, malformed, or not positive
            (negative when ``allow_zero`` is set).
    """
    value = text.strip()
    if not value:
        msg = "duration must not be empty"
        raise ConfigError(msg)

    try:
        seconds = float(value)
    except ValueError:
        pos = 0
        seconds = 0.0
        for match in _SEGMENT.finditer(value):
            if match.start() != pos:
                break
            seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
            pos = match.end()
        if pos != len(value):
            msg = f"invalid duration: {text!r} (expected e.g. '30s', '150m', '1h30m')"
            raise ConfigError(msg) from None

    if not math.isfinite(seconds):
        msg = f"duration must be positive, got: {text!r}"
        raise ConfigError(msg)
    if allow_zero and seconds < 0:
        msg = f"duration must not be negative, got: {text!r}"
        raise ConfigError(msg)
    if not allow_zero and seconds <= 0:
        msg = f"duration must be positive, got: {text!r}"
        raise ConfigError(msg)

    return seconds


def _env_int(environ: Mapping[str, str], key: str) -> int | None:
    raw = environ.get(key)
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        msg = f"{key} must be an integer, got: {raw!r}"
        raise ConfigError(msg) from None
    if value < 1:
        msg = f"{key} must be >= 1, got: {value}"
        raise ConfigError(msg)
    return value


def _env_float(environ: Mapping[str, str], key: str) -> float | None:
    raw = environ.get(key)
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        msg = f"{key} must be a number, got: {raw!r}"
        raise ConfigError(msg) from None
    if value <= 0:
        msg = f"{key} must be positive, got: {value}"
        raise ConfigError(msg)
    return value


def _env_duration(
    environ: Mapping[str, str], key: str, *, allow_zero: bool = False
) -> float | None:
    raw = environ.get(key)
    if raw is None:
        return None
    try:
        return parse_duration(raw, allow_zero=allow_zero)
    except ConfigError as exc:
        msg = f"{key}: {exc}"
        raise ConfigError(msg) from None


def load_config(
    base: ProbeLoadConfig | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProbeLoadConfig:
    """Overlay environment variables on a base configuration.

    Environment variables:
        PROBELOAD_ADDRESS: Target base URL.
        PROBELOAD_VUS: Number of virtual users.
        PROBELOAD_DURATION: Run duration (e.g. ``150m``).
        PROBELOAD_TIMEOUT: Request timeout in seconds.
        PROBELOAD_GRACEFUL_STOP: Graceful stop window (e.g. ``30s``).

    Args:
        base: Configuration to start from. Defaults to ``ProbeLoadConfig()``.
        environ: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        Populated ProbeLoadConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    config = base or ProbeLoadConfig()
    env = os.environ if environ is None else environ

    overrides: dict[str, object] = {}

    address = env.get("PROBELOAD_ADDRESS")
    if address:
        overrides["address"] = address

    vus = _env_int(env, "PROBELOAD_VUS")
    if vus is not None:
        overrides["vus"] = vus

    duration = _env_duration(env, "PROBELOAD_DURATION")
    if duration is not None:
        overrides["duration_seconds"] = duration

    timeout = _env_float(env, "PROBELOAD_TIMEOUT")
    if timeout is not None:
        overrides["request_timeout"] = timeout

    graceful_stop = _env_duration(env, "PROBELOAD_GRACEFUL_STOP", allow_zero=True)
    if graceful_stop is not None:
        overrides["graceful_stop"] = graceful_stop

    return replace(config, **overrides)  # type: ignore[arg-type]


def config_for_scenario(scenario: ScenarioDefinition) -> ProbeLoadConfig:
    """Return the defaults overlaid with a scenario's own options.

    Args:
        scenario: Scenario whose ``base_url``, ``vus`` and ``duration``
            take precedence over the built-in defaults.

    Returns:
        ProbeLoadConfig for the scenario, before environment overrides.
    """
    config = ProbeLoadConfig()
    overrides: dict[str, object] = {}
    if scenario.base_url:
        overrides["address"] = scenario.base_url
    if scenario.vus is not None:
        overrides["vus"] = scenario.vus
    if scenario.duration is not None:
        overrides["duration_seconds"] = parse_duration(scenario.duration)
    return replace(config, **overrides)  # type: ignore[arg-type]
