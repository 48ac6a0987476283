"""Local stand-in for the probed gateway.

Serves the six probe paths with the behaviours their names promise, so a
probe run can be exercised without the real gateway:

* ``/fake/{name}``: static fake backend payload.
* ``/combination/{id}``: two backend payloads merged into one response.
* ``/direct/slow``: body streamed in small chunks with pauses in between.
* ``/direct/delayed``: full response after a fixed delay.
* ``/direct/drop``: connection closed in the middle of the body.
* anything else, ``/does_not_exist`` included: 404.
"""

from __future__ import annotations

import asyncio

from aiohttp import web

from probeload._internal.logging import get_logger

logger = get_logger("target.app")

DEFAULT_PORT = 54444


class _TargetHandlers:
    """Request handlers sharing the configured delays."""

    def __init__(self, delay: float, slow_chunks: int, slow_interval: float) -> None:
        self.delay = delay
        self.slow_chunks = slow_chunks
        self.slow_interval = slow_interval

    async def fake(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        return web.json_response({"backend": "fake", "name": name, "items": [1, 2, 3]})

    async def combination(self, request: web.Request) -> web.Response:
        item_id = request.match_info["id"]
        user = {"id": item_id, "name": f"user-{item_id}"}
        posts = [{"id": n, "user_id": item_id, "title": f"post {n}"} for n in range(1, 4)]
        return web.json_response({"user": user, "posts": posts})

    async def slow(self, request: web.Request) -> web.StreamResponse:
        resp = web.StreamResponse()
        resp.content_type = "text/plain"
        await resp.prepare(request)
        for n in range(self.slow_chunks):
            await resp.write(f"chunk {n}\n".encode())
            await asyncio.sleep(self.slow_interval)
        await resp.write_eof()
        return resp

    async def delayed(self, request: web.Request) -> web.Response:
        await asyncio.sleep(self.delay)
        return web.json_response({"delayed_by": self.delay})

    async def drop(self, request: web.Request) -> web.StreamResponse:
        resp = web.StreamResponse()
        resp.content_type = "application/json"
        await resp.prepare(request)
        await resp.write(b'{"partial": ')
        if request.transport is not None:
            request.transport.close()
        return resp


def create_target_app(
    *,
    delay: float = 0.5,
    slow_chunks: int = 5,
    slow_interval: float = 0.1,
) -> web.Application:
    """Build the stand-in target application.

    Args:
        delay: Seconds ``/direct/delayed`` waits before answering.
        slow_chunks: Number of chunks ``/direct/slow`` streams.
        slow_interval: Seconds between two ``/direct/slow`` chunks.

    Returns:
        The aiohttp application.
    """
    handlers = _TargetHandlers(delay, slow_chunks, slow_interval)
    app = web.Application()
    app.router.add_get("/fake/{name}", handlers.fake)
    app.router.add_get("/combination/{id}", handlers.combination)
    app.router.add_get("/direct/slow", handlers.slow)
    app.router.add_get("/direct/delayed", handlers.delayed)
    app.router.add_get("/direct/drop", handlers.drop)
    return app


def run_target(
    host: str = "127.0.0.1",
    port: int = DEFAULT_PORT,
    *,
    delay: float = 0.5,
) -> None:
    """Serve the stand-in target until interrupted.

    Args:
        host: Interface to bind.
        port: TCP port to bind.
        delay: Seconds ``/direct/delayed`` waits before answering.
    """
    logger.info("Serving probe target on http://%s:%d", host, port)
    web.run_app(create_target_app(delay=delay), host=host, port=port, print=None)
