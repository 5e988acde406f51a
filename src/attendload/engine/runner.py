"""Synchronous entry point that runs a load session on an event loop."""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING

from attendload._internal.logging import get_logger
from attendload.engine.session import LoadSession

if TYPE_CHECKING:
    from collections.abc import Callable

    from attendload._internal.config import DriverConfig
    from attendload.metrics.models import MetricSnapshot, RunResult

logger = get_logger("engine.runner")


def _loop_factory() -> Callable[[], asyncio.AbstractEventLoop] | None:
    """Return uvloop's loop constructor when available.

    Falls back to the default asyncio event loop on Windows or if uvloop
    is not installed.
    """
    if sys.platform == "win32":
        return None

    try:
        import uvloop
    except ImportError:
        logger.debug("uvloop not available, using default asyncio event loop")
        return None

    logger.debug("Using uvloop event loop")
    return uvloop.new_event_loop


def run_load_test(
    config: DriverConfig,
    *,
    on_snapshot: Callable[[MetricSnapshot], None] | None = None,
    handle_signals: bool = True,
) -> RunResult:
    """Run a complete load session and block until it finishes.

    Args:
        config: Driver configuration.
        on_snapshot: Called with every interval snapshot.
        handle_signals: Install SIGINT/SIGTERM handlers for graceful stop.

    Returns:
        The completed RunResult.

    Raises:
        SetupError: If the one-time login fails.
        EngineError: If the session fails after setup.
    """
    with asyncio.Runner(loop_factory=_loop_factory()) as runner:
        session = LoadSession(config, on_snapshot=on_snapshot, handle_signals=handle_signals)
        return runner.run(session.run())
