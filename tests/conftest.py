"""Shared test fixtures for the attendload test suite."""

from __future__ import annotations

import asyncio
import json
import socket
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

from attendload._internal.config import DriverConfig

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterator


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


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# =============================================================================
# Fake attendance API
# =============================================================================


@dataclass
class RecordedRequest:
    """A request received by the fake API."""

    method: str
    path: str
    headers: dict[str, str]
    body: object


@dataclass
class FakeAttendanceApi:
    """In-process stand-in for the attendance-management API.

    Attributes:
        base_url: Root URL once the server is started.
        requests: Every request received, in arrival order.
        statuses: Response status per path; unlisted paths return 200.
        login_body: Raw body returned by ``POST /login``.
        login_status: Status returned by ``POST /login``.
    """

    base_url: str = ""
    requests: list[RecordedRequest] = field(default_factory=list)
    statuses: dict[str, int] = field(default_factory=dict)
    login_body: str = json.dumps({"token": "abc123"})
    login_status: int = 200

    def paths(self) -> list[str]:
        """Return the paths of received requests in order."""
        return [r.path for r in self.requests]

    def requests_to(self, path: str) -> list[RecordedRequest]:
        """Return the received requests for one path."""
        return [r for r in self.requests if r.path == path]

    async def _handle(self, request: web.Request) -> web.Response:
        raw = await request.read()
        try:
            body: object = json.loads(raw) if raw else None
        except ValueError:
            body = raw.decode("utf-8", errors="replace")
        self.requests.append(
            RecordedRequest(
                method=request.method,
                path=request.path,
                headers=dict(request.headers),
                body=body,
            )
        )

        if request.path == "/login":
            return web.Response(
                text=self.login_body,
                status=self.login_status,
                content_type="application/json",
            )

        status = self.statuses.get(request.path, 200)
        return web.json_response({"success": status == 200}, status=status)

    def create_app(self) -> web.Application:
        """Build the aiohttp application serving every route."""
        app = web.Application()
        app.router.add_route("*", "/{path:.*}", self._handle)
        return app


def _make_config(base_url: str, **overrides: object) -> DriverConfig:
    """Return a DriverConfig tuned for fast tests."""
    values: dict[str, object] = {
        "base_url": base_url,
        "virtual_users": 2,
        "duration_seconds": 0.5,
        "pause_seconds": 0.01,
        "request_timeout": 2.0,
        "tick_interval": 0.1,
        "graceful_stop": 2.0,
    }
    values.update(overrides)
    return DriverConfig(**values)  # type: ignore[arg-type]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def attendance_api() -> AsyncIterator[FakeAttendanceApi]:
    """Fake attendance API on the test's event loop."""
    api = FakeAttendanceApi()
    port = _get_free_port()
    runner = web.AppRunner(api.create_app())
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    api.base_url = f"http://127.0.0.1:{port}"
    yield api
    await runner.cleanup()


@pytest.fixture
def sync_attendance_api() -> Iterator[FakeAttendanceApi]:
    """Fake attendance API running in a background thread.

    Used by CLI tests, where the runner blocks the main thread with its
    own event loop.
    """
    api = FakeAttendanceApi()
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(api.create_app())
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
    api.base_url = f"http://127.0.0.1:{port}"

    yield api

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


@pytest.fixture
def make_config() -> Callable[..., DriverConfig]:
    """Factory for fast DriverConfig instances: ``make_config(base_url, **overrides)``."""
    return _make_config
