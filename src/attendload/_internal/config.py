"""Configuration loading for attendload."""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass

from attendload._internal.errors import ConfigError

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


@dataclass(frozen=True)
class DriverConfig:
    """Load driver configuration.

    The identity and body literals default to the values of the pre-seeded
    fixture account the attendance API is tested against.

    Attributes:
        base_url: Root URL of the attendance API.
        username: Login name used once during setup.
        password: Login password used once during setup.
        virtual_users: Number of concurrent virtual users.
        duration_seconds: Wall-clock run duration.
        pause_seconds: Fixed pause after every request in an iteration.
        request_timeout: Total timeout per HTTP request in seconds.
        user_id: ``user_id`` sent in every request body.
        attendance_period_id: ``attendance_period_id`` sent in every body.
        overtime_hours: Hours claimed by the overtime request.
        reimbursement_title: Title of the submitted reimbursement.
        reimbursement_amount: Amount of the submitted reimbursement.
        tick_interval: Seconds between metric snapshots.
        graceful_stop: Seconds in-flight iterations get to finish at shutdown.
    """

    base_url: str = "http://localhost:8080"
    username: str = "employee1"
    password: str = "password123"  # noqa: S105
    virtual_users: int = 10
    duration_seconds: float = 30.0
    pause_seconds: float = 1.0
    request_timeout: float = 30.0
    user_id: int = 1
    attendance_period_id: int = 1
    overtime_hours: int = 2
    reimbursement_title: str = "Meal Allowance"
    reimbursement_amount: int = 30000
    tick_interval: float = 1.0
    graceful_stop: float = 5.0


def parse_duration(value: str) -> float:
    """Parse a duration string into seconds.

    Accepts bare seconds (``"45"``, ``"2.5"``) or unit-suffixed parts that
    may be combined, e.g. ``"500ms"``, ``"30s"``, ``"2m"``, ``"1h"``,
    ``"1m30s"``.

    Args:
        value: Duration string.

    Returns:
        Duration in seconds.

    Raises:
        ConfigError: If the string cannot be parsed or is not positive.
    """
    text = value.strip().lower()
    try:
        seconds = float(text)
    except ValueError:
        parts = _DURATION_PART.findall(text)
        if not parts or "".join(n + u for n, u in parts) != text:
            msg = f"Invalid duration: {value!r} (expected e.g. 30s, 1m30s, 45)"
            raise ConfigError(msg) from None
        seconds = sum(float(number) * _UNIT_SECONDS[unit] for number, unit in parts)

    if not math.isfinite(seconds) or seconds <= 0:
        msg = f"Duration must be positive, got: {value!r}"
        raise ConfigError(msg)
    return seconds


def _env_int(name: str, default: int, *, minimum: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got: {raw!r}"
        raise ConfigError(msg) from None
    if value < minimum:
        msg = f"{name} must be >= {minimum}, got: {value}"
        raise ConfigError(msg)
    return value


def _env_float(name: str, default: float, *, allow_zero: bool = False) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        msg = f"{name} must be a number, got: {raw!r}"
        raise ConfigError(msg) from None
    if not math.isfinite(value):
        msg = f"{name} must be a finite number, got: {raw!r}"
        raise ConfigError(msg)
    if value < 0 or (value == 0 and not allow_zero):
        qualifier = "non-negative" if allow_zero else "positive"
        msg = f"{name} must be {qualifier}, got: {value}"
        raise ConfigError(msg)
    return value


def load_config() -> DriverConfig:
    """Load configuration from environment variables with defaults.

    Environment variables:
        ATTENDLOAD_BASE_URL: API root URL.
        ATTENDLOAD_USERNAME / ATTENDLOAD_PASSWORD: Setup credentials.
        ATTENDLOAD_VUS: Virtual user count (default: 10).
        ATTENDLOAD_DURATION: Run duration, e.g. ``30s`` (default: 30s).
        ATTENDLOAD_PAUSE: Pause between requests in seconds (default: 1.0).
        ATTENDLOAD_TIMEOUT: Request timeout in seconds (default: 30.0).
        ATTENDLOAD_USER_ID: ``user_id`` for request bodies (default: 1).
        ATTENDLOAD_PERIOD_ID: ``attendance_period_id`` (default: 1).

    Returns:
        Populated DriverConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    defaults = DriverConfig()
    duration_str = os.environ.get("ATTENDLOAD_DURATION")

    return DriverConfig(
        base_url=os.environ.get("ATTENDLOAD_BASE_URL", defaults.base_url),
        username=os.environ.get("ATTENDLOAD_USERNAME", defaults.username),
        password=os.environ.get("ATTENDLOAD_PASSWORD", defaults.password),
        virtual_users=_env_int("ATTENDLOAD_VUS", defaults.virtual_users, minimum=1),
        duration_seconds=(
            parse_duration(duration_str) if duration_str is not None else defaults.duration_seconds
        ),
        pause_seconds=_env_float("ATTENDLOAD_PAUSE", defaults.pause_seconds, allow_zero=True),
        request_timeout=_env_float("ATTENDLOAD_TIMEOUT", defaults.request_timeout),
        user_id=_env_int("ATTENDLOAD_USER_ID", defaults.user_id, minimum=1),
        attendance_period_id=_env_int(
            "ATTENDLOAD_PERIOD_ID", defaults.attendance_period_id, minimum=1
        ),
    )
