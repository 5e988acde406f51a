"""Instrumented HTTP client with auto-timing and metric emission."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiohttp

if TYPE_CHECKING:
    from collections.abc import Callable

    from attendload._internal.types import Headers, JsonBody


def _noop_callback(metric: RequestMetric) -> None:
    """Default no-op metric callback."""


@dataclass
class RequestMetric:
    """Raw metric emitted for every HTTP request.

    Attributes:
        timestamp: Monotonic timestamp when the request started.
        name: Logical name for metric grouping (e.g., "Check In").
        method: HTTP method.
        url: Full request URL.
        status_code: HTTP response status code (0 if the request raised).
        latency_ms: Response time in milliseconds.
        content_length: Response body size in bytes, from Content-Length.
        error: ``"<ExceptionType>: <message>"`` if the request raised.
        vu_id: Virtual user that sent the request (-1 for setup).
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


class HttpClient:
    """Async JSON client wrapping ``aiohttp.ClientSession``.

    Every request is timed and reported through ``metric_callback``,
    including requests that fail at the transport level. Transport errors
    are re-raised to the caller after the metric is emitted.

    Attributes:
        base_url: Base URL prepended to all request paths.
        headers: Headers applied to every request.
    """

    def __init__(
        self,
        base_url: str,
        headers: Headers | None = None,
        metric_callback: Callable[[RequestMetric], None] | None = None,
        vu_id: int = 0,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            base_url: Base URL prepended to all request paths.
            headers: Headers applied to every request.
            metric_callback: Called with a ``RequestMetric`` after each request.
            vu_id: Virtual user identifier for metric tagging.
            timeout: Total request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.headers: Headers = dict(headers or {})
        self._metric_callback = metric_callback or _noop_callback
        self._vu_id = vu_id
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HttpClient:
        """Open the underlying aiohttp session."""
        self._session = aiohttp.ClientSession(timeout=self._timeout)
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

    async def post(
        self,
        path: str,
        body: JsonBody,
        *,
        name: str | None = None,
    ) -> aiohttp.ClientResponse:
        """Send a POST request with a JSON body.

        Args:
            path: URL path appended to base_url.
            body: JSON object to send.
            name: Logical name for metric grouping. Defaults to the path.

        Returns:
            The aiohttp response. The caller reads or releases it.
        """
        return await self.request("POST", path, body, name=name)

    async def request(
        self,
        method: str,
        path: str,
        body: JsonBody,
        *,
        name: str | None = None,
    ) -> aiohttp.ClientResponse:
        """Send a JSON request with auto-timing and metric emission.

        Args:
            method: HTTP method.
            path: URL path appended to base_url.
            body: JSON object to send.
            name: Logical name for metric grouping. Defaults to the path.

        Returns:
            The aiohttp response object.

        Raises:
            RuntimeError: If the client is used outside of an async context
                manager.
            aiohttp.ClientError: On connection-level failures.
            TimeoutError: When the request exceeds the configured timeout.
        """
        if self._session is None:
            msg = "HttpClient must be used as an async context manager"
            raise RuntimeError(msg)

        url = f"{self.base_url}{path}"
        start = time.monotonic()
        status_code = 0
        content_length = 0
        error: str | None = None

        try:
            resp = await self._session.request(
                method,
                url,
                json=body,
                headers=dict(self.headers),
            )
            status_code = resp.status
            content_length = int(resp.headers.get("Content-Length", 0))
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            raise
        finally:
            self._metric_callback(
                RequestMetric(
                    timestamp=start,
                    name=name or path,
                    method=method,
                    url=url,
                    status_code=status_code,
                    latency_ms=(time.monotonic() - start) * 1000,
                    content_length=content_length,
                    error=error,
                    vu_id=self._vu_id,
                )
            )

        return resp
