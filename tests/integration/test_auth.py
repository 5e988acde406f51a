"""Integration tests for the one-time login."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from attendload._internal.errors import SetupError
from attendload.http_client import HttpClient, RequestMetric
from attendload.scenario.auth import JSON_HEADERS, SessionToken, login

if TYPE_CHECKING:
    from conftest import FakeAttendanceApi


class TestSessionToken:
    """Tests for the SessionToken value object."""

    def test_headers(self):
        """Headers carry the JSON content type and the bearer token."""
        assert SessionToken("abc123").headers() == {
            "Content-Type": "application/json",
            "Authorization": "Bearer abc123",
        }

    def test_empty_token_rejected(self):
        """An empty token cannot be constructed."""
        with pytest.raises(SetupError):
            SessionToken("")

    def test_immutable(self):
        """SessionToken is frozen."""
        token = SessionToken("abc123")
        with pytest.raises(AttributeError):
            token.value = "other"  # type: ignore[misc]

    def test_repr_hides_value(self):
        """The token value never appears in repr."""
        assert "abc123" not in repr(SessionToken("abc123"))


class TestLogin:
    """Tests for the setup login."""

    async def test_returns_token_and_sends_credentials(self, attendance_api: FakeAttendanceApi):
        """Login posts the credentials without a token and returns the session token."""
        metrics: list[RequestMetric] = []
        async with HttpClient(
            base_url=attendance_api.base_url,
            headers=JSON_HEADERS,
            metric_callback=metrics.append,
        ) as client:
            token = await login(client, "employee1", "password123")

        assert token == SessionToken("abc123")
        [request] = attendance_api.requests
        assert request.method == "POST"
        assert request.path == "/login"
        assert request.body == {"username": "employee1", "password": "password123"}
        assert request.headers["Content-Type"].startswith("application/json")
        assert "Authorization" not in request.headers
        assert metrics[0].name == "Login"

    @pytest.mark.parametrize(
        ("body", "match"),
        [
            ("<html>oops</html>", "not valid JSON"),
            ("", "not a JSON object"),
            (json.dumps(["abc123"]), "not a JSON object"),
            (json.dumps({}), "has no token"),
            (json.dumps({"token": ""}), "has no token"),
            (json.dumps({"token": 123}), "has no token"),
        ],
    )
    async def test_unusable_body_is_fatal(
        self, attendance_api: FakeAttendanceApi, body: str, match: str
    ):
        """A body without a usable token raises SetupError."""
        attendance_api.login_body = body
        async with HttpClient(base_url=attendance_api.base_url) as client:
            with pytest.raises(SetupError, match=match):
                await login(client, "employee1", "password123")

    async def test_api_error_message_is_reported(self, attendance_api: FakeAttendanceApi):
        """The API's human_error is quoted in the SetupError."""
        attendance_api.login_status = 401
        attendance_api.login_body = json.dumps(
            {"success": False, "human_error": "invalid credentials", "debug_error": "x"}
        )
        async with HttpClient(base_url=attendance_api.base_url) as client:
            with pytest.raises(SetupError, match=r"HTTP 401.*invalid credentials"):
                await login(client, "employee1", "wrong")

    async def test_connection_failure_is_fatal(self):
        """An unreachable API raises SetupError."""
        async with HttpClient(base_url="http://127.0.0.1:1", timeout=1.0) as client:
            with pytest.raises(SetupError, match="Login request"):
                await login(client, "employee1", "password123")

    async def test_no_retry(self, attendance_api: FakeAttendanceApi):
        """A failed login is attempted exactly once."""
        attendance_api.login_body = "{}"
        async with HttpClient(base_url=attendance_api.base_url) as client:
            with pytest.raises(SetupError):
                await login(client, "employee1", "password123")
        assert len(attendance_api.requests) == 1
