"""Shared test fixtures for the probeload test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

from probeload.dsl.scenario import registry
from probeload.target.app import create_target_app

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator
    from pathlib import Path


# Short delays keep one probe iteration well under 100ms of request time.
FAST_TARGET = {"delay": 0.02, "slow_chunks": 3, "slow_interval": 0.01}


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


@pytest.fixture(autouse=True)
def _clear_registry() -> Iterator[None]:
    """Start and end every test with an empty scenario registry."""
    registry.clear()
    yield
    registry.clear()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep PROBELOAD_* variables from the caller's shell out of tests."""
    for key in (
        "PROBELOAD_ADDRESS",
        "PROBELOAD_VUS",
        "PROBELOAD_DURATION",
        "PROBELOAD_TIMEOUT",
        "PROBELOAD_GRACEFUL_STOP",
    ):
        monkeypatch.delenv(key, raising=False)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


@pytest.fixture
def unused_address() -> str:
    """Address of a localhost port nothing listens on."""
    return f"http://127.0.0.1:{_get_free_port()}"


# =============================================================================
# Target server fixtures
# =============================================================================


@pytest.fixture
async def target_server() -> AsyncIterator[str]:
    """Stand-in target running on the test's event loop.

    Returns the base URL (e.g., 'http://127.0.0.1:54321').
    """
    app = create_target_app(**FAST_TARGET)
    port = _get_free_port()
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield f"http://127.0.0.1:{port}"
    await runner.cleanup()


@pytest.fixture
def sync_target_server() -> Iterator[str]:
    """Stand-in target running in a background thread.

    For tests where the code under test runs its own event loop and
    blocks the main thread (the CLI).
    """
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(create_target_app(**FAST_TARGET))
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield f"http://127.0.0.1:{port}"

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


# =============================================================================
# Scenario files
# =============================================================================


@pytest.fixture
def sample_scenario_path(tmp_path: Path) -> Path:
    """A scenario script with options and a two-request iteration."""
    code = """\
from __future__ import annotations

import asyncio

from probeload import HttpClient, iteration, scenario


@scenario(name="Sample Probe", vus=3, duration="45s")
class SampleProbe:

    @iteration
    async def probe(self, client: HttpClient) -> None:
        await client.get("/fake/sample")
        await client.get("/does_not_exist")
        await asyncio.sleep(0.05)
"""
    path = tmp_path / "sample_probe.py"
    path.write_text(code)
    return path
