"""Custom exception hierarchy for attendload."""

from __future__ import annotations


class AttendLoadError(Exception):
    """Base exception for all attendload errors."""


class ConfigError(AttendLoadError):
    """Raised when configuration is invalid.

    Examples:
        - ``ATTENDLOAD_VUS`` is not an integer.
        - A duration string such as ``"30x"`` cannot be parsed.
    """


class SetupError(AttendLoadError):
    """Raised when the one-time login cannot produce a session token.

    The run is aborted: no virtual user is started once this is raised.
    """


class EngineError(AttendLoadError):
    """Raised when the load session fails after setup."""
