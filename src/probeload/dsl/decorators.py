"""Decorators for defining probe scenarios."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING

from probeload._internal.config import parse_duration
from probeload._internal.errors import ConfigError, ScenarioError
from probeload.dsl.scenario import (
    AsyncIterationMethod,
    ScenarioDefinition,
    registry,
)

if TYPE_CHECKING:
    from collections.abc import Callable

# Marker attribute set on the decorated iteration method.
_ITERATION_MARKER = "_probeload_iteration"


def scenario(
    *,
    name: str,
    base_url: str | None = None,
    vus: int | None = None,
    duration: str | None = None,
) -> Callable[[type], ScenarioDefinition]:
    """Decorate a class as a probeload scenario.

    The decorator looks up the single ``@iteration`` method of the class,
    builds a ``ScenarioDefinition`` and registers it in the global
    scenario registry. ``vus`` and ``duration`` play the role of a
    script's options: command-line flags and environment variables take
    precedence over them.

    Args:
        name: Human-readable name for this scenario.
        base_url: Address requests are sent to. Optional; the configured
            address is used when omitted.
        vus: Number of concurrent virtual users.
        duration: Run duration string, e.g. ``"150m"``.

    Returns:
        A class decorator that transforms the class into a
        ScenarioDefinition.

    Raises:
        ScenarioError: If the options are invalid, or the class does not
            have exactly one async ``@iteration`` method.
    """
    if vus is not None and vus < 1:
        msg = f"Scenario {name!r}: vus must be >= 1, got {vus}"
        raise ScenarioError(msg)

    if duration is not None:
        try:
            parse_duration(duration)
        except ConfigError as exc:
            msg = f"Scenario {name!r}: {exc}"
            raise ScenarioError(msg) from exc

    def decorator(cls: type) -> ScenarioDefinition:
        iteration_func: AsyncIterationMethod | None = None

        for attr_name in dir(cls):
            if attr_name.startswith("__"):
                continue

            attr = getattr(cls, attr_name, None)
            if attr is None or not callable(attr):
                continue

            if not getattr(attr, _ITERATION_MARKER, False):
                continue

            if not inspect.iscoroutinefunction(attr):
                msg = f"Iteration method {cls.__name__}.{attr_name} must be an async function"
                raise ScenarioError(msg)
            if iteration_func is not None:
                msg = f"Scenario {cls.__name__} has multiple @iteration methods"
                raise ScenarioError(msg)
            iteration_func = attr

        if iteration_func is None:
            msg = (
                f"Scenario {cls.__name__} has no @iteration method. "
                f"Exactly one @iteration is required."
            )
            raise ScenarioError(msg)

        definition = ScenarioDefinition(
            name=name,
            cls=cls,
            iteration=iteration_func,
            base_url=base_url,
            vus=vus,
            duration=duration,
        )

        registry.register(definition)
        return definition

    return decorator


def iteration(func: AsyncIterationMethod) -> AsyncIterationMethod:
    """Mark a method as the scenario's iteration function.

    Each virtual user calls it back to back until the run's duration
    elapses. Any pause between iterations is the method's own business.

    Args:
        func: The async method to run per iteration.

    Returns:
        The original method, tagged with iteration metadata.
    """
    setattr(func, _ITERATION_MARKER, True)
    return func
