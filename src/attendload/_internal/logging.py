"""Structured logging setup for attendload."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

_NAMESPACE = "attendload"


class _JsonFormatter(logging.Formatter):
    """One-line JSON log formatter.

    Keys: timestamp, level, logger, message, and exception when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            A single-line JSON string.
        """
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure and return the ``attendload`` logger.

    Repeated calls only update the level of the existing handler.

    Args:
        level: Logging level (e.g., ``logging.DEBUG``).
        json_format: Emit JSON lines instead of human-readable text.

    Returns:
        The configured ``attendload`` logger.
    """
    logger = logging.getLogger(_NAMESPACE)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        formatter: logging.Formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``attendload`` namespace.

    Args:
        name: Dotted suffix, e.g. ``"engine.session"``.

    Returns:
        ``logging.getLogger("attendload.<name>")``.
    """
    return logging.getLogger(f"{_NAMESPACE}.{name}")
