"""Tests for the scenario registry, dataclass, and scenario loader."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path

from probeload._internal.errors import ScenarioError
from probeload.dsl.decorators import iteration, scenario
from probeload.dsl.loader import load_scenario
from probeload.dsl.scenario import ScenarioDefinition, ScenarioRegistry, registry


def _definition(name: str) -> ScenarioDefinition:
    class _Probe:
        @iteration
        async def probe(self, client: object) -> None:
            pass

    return ScenarioDefinition(name=name, cls=_Probe, iteration=_Probe.probe)


# =========================================================================
# ScenarioRegistry
# =========================================================================


class TestScenarioRegistry:
    """Tests for the ScenarioRegistry class."""

    def test_register_and_get(self):
        reg = ScenarioRegistry()
        definition = _definition("Lookup")
        reg.register(definition)
        assert reg.get("Lookup") is definition

    def test_get_nonexistent_returns_none(self):
        assert ScenarioRegistry().get("nonexistent") is None

    def test_get_all_keeps_registration_order(self):
        reg = ScenarioRegistry()
        reg.register(_definition("First"))
        reg.register(_definition("Second"))
        assert [d.name for d in reg.get_all()] == ["First", "Second"]

    def test_duplicate_name_raises_error(self):
        reg = ScenarioRegistry()
        reg.register(_definition("Dup"))
        with pytest.raises(ScenarioError, match="already registered"):
            reg.register(_definition("Dup"))

    def test_unregister(self):
        reg = ScenarioRegistry()
        reg.register(_definition("Gone"))
        reg.unregister("Gone")
        assert reg.get("Gone") is None
        # Unknown names are ignored
        reg.unregister("Never There")

    def test_public_methods_are_documented(self):
        for name in ("register", "unregister", "get", "get_all", "clear", "__len__"):
            assert getattr(ScenarioRegistry, name).__doc__, name

    def test_clear_and_len(self):
        reg = ScenarioRegistry()
        reg.register(_definition("A"))
        reg.register(_definition("B"))
        assert len(reg) == 2
        reg.clear()
        assert len(reg) == 0


# =========================================================================
# ScenarioDefinition
# =========================================================================


class TestScenarioDefinition:
    """Tests for the ScenarioDefinition dataclass."""

    def test_defaults(self):
        definition = _definition("Defaults")
        assert definition.base_url is None
        assert definition.vus is None
        assert definition.duration is None

    async def test_iteration_runs_on_instance(self):
        calls: list[object] = []

        @scenario(name="Recording")
        class Recording:
            @iteration
            async def probe(self, client: object) -> None:
                calls.append(client)

        instance = Recording.cls()
        await Recording.iteration(instance, "client")
        assert calls == ["client"]


# =========================================================================
# load_scenario
# =========================================================================


class TestLoadScenario:
    """Tests for loading scenarios from script files."""

    def test_loads_scenario_with_options(self, sample_scenario_path: Path):
        definition = load_scenario(sample_scenario_path)
        assert definition.name == "Sample Probe"
        assert definition.vus == 3
        assert definition.duration == "45s"
        assert registry.get("Sample Probe") is definition

    def test_reload_same_file(self, sample_scenario_path: Path):
        """Loading a script twice does not trip the duplicate-name check."""
        first = load_scenario(sample_scenario_path)
        second = load_scenario(sample_scenario_path)
        assert second.name == first.name
        assert registry.get("Sample Probe") is second

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ScenarioError, match="not found"):
            load_scenario(tmp_path / "missing.py")

    def test_directory_is_not_a_file(self, tmp_path: Path):
        with pytest.raises(ScenarioError, match="not found"):
            load_scenario(tmp_path)

    def test_non_python_file(self, tmp_path: Path):
        path = tmp_path / "probe.js"
        path.write_text("export default function () {}\n")
        with pytest.raises(ScenarioError, match=r"must be a \.py file"):
            load_scenario(path)

    def test_import_error(self, tmp_path: Path):
        path = tmp_path / "broken.py"
        path.write_text("raise RuntimeError('boom')\n")
        with pytest.raises(ScenarioError, match="Failed to import"):
            load_scenario(path)

    def test_no_scenario(self, tmp_path: Path):
        path = tmp_path / "empty.py"
        path.write_text("X = 1\n")
        with pytest.raises(ScenarioError, match="No @scenario-decorated class"):
            load_scenario(path)

    def test_select_by_name(self, tmp_path: Path):
        path = tmp_path / "two.py"
        path.write_text(
            """\
from probeload import iteration, scenario


@scenario(name="Alpha")
class Alpha:
    @iteration
    async def probe(self, client):
        pass


@scenario(name="Beta")
class Beta:
    @iteration
    async def probe(self, client):
        pass
"""
        )
        assert load_scenario(path).name == "Alpha"
        assert load_scenario(path, name="Beta").name == "Beta"

    def test_unknown_name_lists_available(self, sample_scenario_path: Path):
        with pytest.raises(ScenarioError, match="available: 'Sample Probe'"):
            load_scenario(sample_scenario_path, name="Other")
