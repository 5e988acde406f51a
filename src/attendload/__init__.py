"""attendload: load driver for the attendance-management API."""

from __future__ import annotations

from attendload._internal.config import DriverConfig, load_config, parse_duration
from attendload.engine.runner import run_load_test
from attendload.engine.session import LoadSession
from attendload.http_client import HttpClient, RequestMetric
from attendload.metrics.models import RunResult

__version__ = "0.1.0"

__all__ = [
    "DriverConfig",
    "HttpClient",
    "LoadSession",
    "RequestMetric",
    "RunResult",
    "load_config",
    "parse_duration",
    "run_load_test",
]
