"""Instrumented HTTP client with auto-timing and metric emission."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiohttp

if TYPE_CHECKING:
    from collections.abc import Callable


def _noop_callback(metric: RequestMetric) -> None:
    """Default no-op metric callback."""


@dataclass
class RequestMetric:
    """Raw metric emitted for every HTTP request.

    Attributes:
        timestamp: Monotonic timestamp when the request started.
        name: Logical name for metric grouping (defaults to the path).
        method: HTTP method.
        url: Full request URL.
        status_code: HTTP response status code (0 if no response arrived).
        latency_ms: Time from sending the request to reading the full body,
            in milliseconds.
        content_length: Number of body bytes received.
        error: Error message if the exchange failed, None otherwise.
        vu_id: ID of the virtual user that made the request.
    """

    timestamp: float
    name: str
    method: str
    url: str
    status_code: int
    latency_ms: float
    content_length: int
    error: str | None = None
    vu_id: int = 0


@dataclass
class ProbeResponse:
    """Outcome of a single request, successful or not.

    Attributes:
        url: Full request URL.
        status: HTTP status code, or 0 if no response arrived.
        body: Body bytes read before the exchange ended.
        latency_ms: Request duration in milliseconds.
        error: ``"ExcType: message"`` if the exchange failed, else None.
    """

    url: str
    status: int
    body: bytes
    latency_ms: float
    error: str | None = None

    @property
    def ok(self) -> bool:
        """True for a complete exchange with a non-error status."""
        return self.error is None and 0 < self.status < 400


class HttpClient:
    """Instrumented async HTTP client wrapping ``aiohttp.ClientSession``.

    Every request is auto-timed and emits a ``RequestMetric`` via the
    configured ``metric_callback``. Transport failures (refused or dropped
    connections, DNS errors, timeouts) are not raised: they come back as a
    ``ProbeResponse`` carrying the error, and are recorded the same way as
    any other request. Only cancellation propagates.

    Attributes:
        base_url: Base URL prepended to all request paths.
        headers: Mutable headers dict applied to every request.
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        metric_callback: Callable[[RequestMetric], None] | None = None,
        vu_id: int = 0,
        timeout: float = 60.0,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            base_url: Base URL prepended to all request paths.
            headers: Default headers applied to every request.
            metric_callback: Callback invoked with a ``RequestMetric``
                after each request. Defaults to a no-op.
            vu_id: Virtual user identifier for metric tagging.
            timeout: Per-request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.headers: dict[str, str] = dict(headers or {})
        self._metric_callback = metric_callback or _noop_callback
        self._vu_id = vu_id
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HttpClient:
        """Open the underlying aiohttp session."""
        self._session = aiohttp.ClientSession(
            timeout=self._timeout,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def get(
        self,
        path: str,
        *,
        name: str | None = None,
        **kwargs: object,
    ) -> ProbeResponse:
        """Send a GET request.

        Args:
            path: URL path appended to base_url.
            name: Logical name for metric grouping. Defaults to the path.
            **kwargs: Additional keyword arguments passed to aiohttp.

        Returns:
            The outcome of the request.
        """
        return await self._request("GET", path, name=name, **kwargs)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        name: str | None = None,
        **kwargs: object,
    ) -> ProbeResponse:
        """Send an HTTP request with auto-timing and metric emission.

        Args:
            method: HTTP method.
            path: URL path appended to base_url.
            name: Logical name for metric grouping. Defaults to the path.
            **kwargs: Additional keyword arguments passed to aiohttp.

        Returns:
            The outcome of the request.

        Raises:
            RuntimeError: If the client is used outside of an async context
                manager.
        """
        if self._session is None:
            msg = "HttpClient must be used as an async context manager"
            raise RuntimeError(msg)

        url = f"{self.base_url}{path}"
        metric_name = name or path
        merged_headers = {**self.headers}

        start = time.monotonic()
        status_code = 0
        body = b""
        error: str | None = None

        try:
            async with self._session.request(
                method,
                url,
                headers=merged_headers,
                **kwargs,  # type: ignore[arg-type]
            ) as resp:
                status_code = resp.status
                body = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            error = f"{type(exc).__name__}: {exc}"

        latency_ms = (time.monotonic() - start) * 1000
        self._metric_callback(
            RequestMetric(
                timestamp=start,
                name=metric_name,
                method=method,
                url=url,
                status_code=status_code,
                latency_ms=latency_ms,
                content_length=len(body),
                error=error,
                vu_id=self._vu_id,
            )
        )

        return ProbeResponse(
            url=url,
            status=status_code,
            body=body,
            latency_ms=latency_ms,
            error=error,
        )
