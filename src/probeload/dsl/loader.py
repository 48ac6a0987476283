"""Scenario script loading via importlib."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path

from probeload._internal.errors import ScenarioError
from probeload._internal.logging import get_logger
from probeload.dsl.scenario import ScenarioDefinition, registry

logger = get_logger("dsl.loader")


def load_scenario(file_path: str | Path, name: str | None = None) -> ScenarioDefinition:
    """Load a scenario from a Python script.

    Imports the file with ``importlib`` and collects the
    ``ScenarioDefinition`` objects it defines at module level. Scenarios
    the script registered earlier are dropped from the registry first, so
    the same file can be loaded more than once in a process.

    Args:
        file_path: Path to the Python scenario file.
        name: Scenario name to pick when the script defines several.
            Defaults to the first one found.

    Returns:
        The selected ``ScenarioDefinition``.

    Raises:
        ScenarioError: If the file does not exist, is not a ``.py`` file,
            cannot be imported, or defines no matching scenario.
    """
    path = Path(file_path)

    if not path.is_file():
        msg = f"Scenario file not found: {path}"
        raise ScenarioError(msg)

    if path.suffix != ".py":
        msg = f"Scenario file must be a .py file, got: {path}"
        raise ScenarioError(msg)

    module_name = f"probeload_scenario_{path.stem}"

    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        msg = f"Could not create module spec for: {path}"
        raise ScenarioError(msg)

    previous = sys.modules.pop(module_name, None)
    if previous is not None:
        for obj in vars(previous).values():
            if isinstance(obj, ScenarioDefinition) and registry.get(obj.name) is obj:
                registry.unregister(obj.name)

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module

    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(module_name, None)
        msg = f"Failed to import scenario file {path}: {exc}"
        raise ScenarioError(msg) from exc

    definitions = [obj for obj in vars(module).values() if isinstance(obj, ScenarioDefinition)]

    if not definitions:
        sys.modules.pop(module_name, None)
        msg = (
            f"No @scenario-decorated class found in {path}. "
            f"Ensure one class is decorated with @scenario."
        )
        raise ScenarioError(msg)

    if name is None:
        if len(definitions) > 1:
            logger.info(
                "%s defines %d scenarios, using %r",
                path.name,
                len(definitions),
                definitions[0].name,
            )
        return definitions[0]

    for definition in definitions:
        if definition.name == name:
            return definition

    available = ", ".join(repr(d.name) for d in definitions)
    msg = f"Scenario {name!r} not found in {path} (available: {available})"
    raise ScenarioError(msg)
