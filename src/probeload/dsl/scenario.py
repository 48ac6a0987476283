"""Scenario definition dataclass and the global scenario registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class AsyncIterationMethod(Protocol):
    """Protocol for the async iteration method of a scenario.

    Matches unbound async methods with signature ``(self, client) -> None``.
    """

    @property
    def __name__(self) -> str:
        """Function name."""
        ...

    async def __call__(self, instance: object, client: object) -> None:
        """Call the method."""
        ...


@dataclass
class ScenarioDefinition:
    """Complete definition of a probe scenario.

    Created by the ``@scenario`` class decorator, or built directly for
    the bundled probe scenario.

    Attributes:
        name: Human-readable name for this scenario.
        cls: The original class that was decorated. A fresh instance is
            created for every virtual user.
        iteration: The unbound async method run once per iteration.
        base_url: Address requests are sent to, unless overridden by
            configuration. None means "use the configured address".
        vus: Script-level virtual user count, or None for the default.
        duration: Script-level duration string (e.g. ``"150m"``), or None
            for the default.
    """

    name: str
    cls: type
    iteration: AsyncIterationMethod
    base_url: str | None = None
    vus: int | None = None
    duration: str | None = None


class ScenarioRegistry:
    """Name-keyed store of the scenarios defined in this process.

    ``@scenario`` adds to the module-level ``registry``; the loader drops
    a script's entries before re-importing it. Iteration follows
    definition order.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._scenarios: dict[str, ScenarioDefinition] = {}

    def register(self, definition: ScenarioDefinition) -> None:
        """Add *definition* under its name.

        Raises:
            ScenarioError: If the name is taken.
        """
        from probeload._internal.errors import ScenarioError

        if definition.name in self._scenarios:
            msg = f"Scenario {definition.name!r} is already registered"
            raise ScenarioError(msg)
        self._scenarios[definition.name] = definition

    def unregister(self, name: str) -> None:
        """Drop the scenario called *name*, if any."""
        self._scenarios.pop(name, None)

    def get(self, name: str) -> ScenarioDefinition | None:
        """Return the scenario called *name*, or None if there is none."""
        return self._scenarios.get(name)

    def get_all(self) -> list[ScenarioDefinition]:
        """Return every registered scenario, in definition order."""
        return list(self._scenarios.values())

    def clear(self) -> None:
        """Drop every scenario. Used by the test suite between tests."""
        self._scenarios.clear()

    def __len__(self) -> int:
        """Return the number of registered scenarios."""
        return len(self._scenarios)


registry = ScenarioRegistry()
