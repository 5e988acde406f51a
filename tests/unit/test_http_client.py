"""Tests for the instrumented HTTP client and RequestMetric."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiohttp
import pytest

from attendload.http_client import HttpClient, RequestMetric

if TYPE_CHECKING:
    from conftest import FakeAttendanceApi


class TestRequestMetric:
    """Tests for the RequestMetric dataclass."""

    def test_defaults(self):
        """Optional fields default to no error and VU 0."""
        metric = RequestMetric(
            timestamp=1000.0,
            name="Check In",
            method="POST",
            url="http://localhost/api/attendance/checkin",
            status_code=200,
            latency_ms=42.5,
            content_length=16,
        )
        assert metric.error is None
        assert metric.vu_id == 0


class TestHttpClient:
    """Tests for the HttpClient class."""

    async def test_post_sends_json_and_emits_metric(self, attendance_api: FakeAttendanceApi):
        """POST sends the JSON body and emits one metric per request."""
        metrics: list[RequestMetric] = []

        async with HttpClient(
            base_url=attendance_api.base_url,
            metric_callback=metrics.append,
            vu_id=4,
        ) as client:
            resp = await client.post("/api/attendance/checkin", {"user_id": 1}, name="Check In")
            assert resp.status == 200
            resp.release()

        [request] = attendance_api.requests
        assert request.method == "POST"
        assert request.body == {"user_id": 1}

        [metric] = metrics
        assert metric.method == "POST"
        assert metric.name == "Check In"
        assert metric.url == f"{attendance_api.base_url}/api/attendance/checkin"
        assert metric.status_code == 200
        assert metric.latency_ms > 0
        assert metric.vu_id == 4

    async def test_request_with_method(self, attendance_api: FakeAttendanceApi):
        """request() sends the given HTTP method."""
        async with HttpClient(base_url=attendance_api.base_url) as client:
            resp = await client.request("PATCH", "/api/attendance/checkout", {"user_id": 1})
            resp.release()

        assert attendance_api.requests[0].method == "PATCH"

    async def test_default_name_is_path(self, attendance_api: FakeAttendanceApi):
        """Without a name the metric is grouped under the path."""
        metrics: list[RequestMetric] = []
        async with HttpClient(
            base_url=attendance_api.base_url,
            metric_callback=metrics.append,
        ) as client:
            (await client.post("/api/reimbursement/submit", {})).release()

        assert metrics[0].name == "/api/reimbursement/submit"

    async def test_headers_sent(self, attendance_api: FakeAttendanceApi):
        """Default headers are sent with every request."""
        async with HttpClient(
            base_url=attendance_api.base_url,
            headers={"Authorization": "Bearer abc123", "Content-Type": "application/json"},
        ) as client:
            (await client.post("/api/attendance/overtime", {})).release()

        headers = attendance_api.requests[0].headers
        assert headers["Authorization"] == "Bearer abc123"
        assert headers["Content-Type"].startswith("application/json")

    async def test_trailing_slash_in_base_url(self, attendance_api: FakeAttendanceApi):
        """A trailing slash on the base URL is not doubled."""
        async with HttpClient(base_url=f"{attendance_api.base_url}/") as client:
            (await client.post("/login", {})).release()

        assert attendance_api.paths() == ["/login"]

    async def test_error_status_is_not_raised(self, attendance_api: FakeAttendanceApi):
        """HTTP error statuses are returned, not raised."""
        attendance_api.statuses["/api/attendance/checkin"] = 500
        metrics: list[RequestMetric] = []
        async with HttpClient(
            base_url=attendance_api.base_url,
            metric_callback=metrics.append,
        ) as client:
            resp = await client.post("/api/attendance/checkin", {})
            resp.release()

        assert resp.status == 500
        assert metrics[0].status_code == 500
        assert metrics[0].error is None

    async def test_error_metric_on_connection_failure(self):
        """A connection failure emits an error metric before re-raising."""
        metrics: list[RequestMetric] = []

        async with HttpClient(
            base_url="http://127.0.0.1:1",
            metric_callback=metrics.append,
            timeout=1.0,
        ) as client:
            with pytest.raises(aiohttp.ClientError):
                await client.post("/login", {}, name="Login")

        [metric] = metrics
        assert metric.error is not None
        assert metric.status_code == 0

    async def test_context_manager_required(self):
        """Requests outside the context manager raise RuntimeError."""
        client = HttpClient(base_url="http://localhost")
        with pytest.raises(RuntimeError, match="async context manager"):
            await client.post("/login", {})
