"""Load session lifecycle: setup, virtual users, shutdown."""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
import time
from enum import Enum, auto
from typing import TYPE_CHECKING

from attendload._internal.errors import EngineError, SetupError
from attendload._internal.logging import get_logger
from attendload.engine._user_utils import shutdown_all_users
from attendload.http_client import HttpClient
from attendload.metrics.collector import MetricCollector
from attendload.metrics.models import MetricSnapshot, RunResult
from attendload.scenario.auth import JSON_HEADERS, login
from attendload.scenario.checks import CheckRecorder
from attendload.scenario.journey import run_iteration

if TYPE_CHECKING:
    from collections.abc import Callable

    from attendload._internal.config import DriverConfig
    from attendload.scenario.auth import SessionToken

logger = get_logger("engine.session")

# vu_id tagged on metrics of the one-time login.
SETUP_VU_ID = -1


class SessionState(Enum):
    """State machine for a load session."""

    CREATED = auto()
    SETTING_UP = auto()
    RUNNING = auto()
    STOPPING = auto()
    COMPLETED = auto()
    FAILED = auto()


class LoadSession:
    """Runs the attendance scenario with a fixed number of virtual users.

    Logs in once, then starts ``config.virtual_users`` coroutines that each
    loop :func:`run_iteration` until ``config.duration_seconds`` elapses or
    a SIGINT/SIGTERM arrives. No user starts before setup has succeeded.

    State machine: CREATED -> SETTING_UP -> RUNNING -> STOPPING -> COMPLETED
                                         -> FAILED (setup or engine error)
    """

    def __init__(
        self,
        config: DriverConfig,
        *,
        on_snapshot: Callable[[MetricSnapshot], None] | None = None,
        handle_signals: bool = True,
    ) -> None:
        """Initialize a load session.

        Args:
            config: Driver configuration.
            on_snapshot: Called with every interval snapshot.
            handle_signals: Install SIGINT/SIGTERM handlers for graceful stop.
        """
        self._config = config
        self._on_snapshot = on_snapshot
        self._handle_signals = handle_signals

        self._state = SessionState.CREATED
        self._collector = MetricCollector()
        self._recorder = CheckRecorder()
        self._user_tasks: list[tuple[int, asyncio.Task[None]]] = []
        self._stop_event = asyncio.Event()
        self._iterations = 0

    @property
    def state(self) -> SessionState:
        """Return the current session state."""
        return self._state

    @property
    def active_user_count(self) -> int:
        """Return the number of running virtual users."""
        return sum(1 for _, task in self._user_tasks if not task.done())

    @property
    def iterations(self) -> int:
        """Return the number of completed iterations."""
        return self._iterations

    async def run(self) -> RunResult:
        """Execute the full session lifecycle.

        Returns:
            RunResult with snapshots, the cumulative summary and check tallies.

        Raises:
            SetupError: If login fails. No virtual user is started.
            EngineError: If the session fails after setup.
        """
        config = self._config
        logger.info(
            "Starting load session: base_url=%s, users=%d, duration=%.1fs",
            config.base_url,
            config.virtual_users,
            config.duration_seconds,
        )

        self._state = SessionState.SETTING_UP
        try:
            token = await self._setup()
        except SetupError:
            self._state = SessionState.FAILED
            logger.exception("Setup failed, aborting run")
            raise

        if self._handle_signals:
            self._install_signal_handlers()

        start_time = time.monotonic()
        deadline = start_time + config.duration_seconds
        snapshots: list[MetricSnapshot] = []

        self._state = SessionState.RUNNING
        try:
            for user_id in range(config.virtual_users):
                task = asyncio.create_task(
                    self._run_virtual_user(user_id, token),
                    name=f"virtual-user-{user_id}",
                )
                self._user_tasks.append((user_id, task))

            while not self._stop_event.is_set():
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(
                        self._stop_event.wait(),
                        timeout=min(config.tick_interval, remaining),
                    )

                snapshot = self._collector.flush(
                    elapsed_seconds=time.monotonic() - start_time,
                    active_users=self.active_user_count,
                )
                snapshots.append(snapshot)
                if self._on_snapshot is not None:
                    self._on_snapshot(snapshot)

                logger.debug(
                    "Tick %.1fs: users=%d, rps=%.1f, p95=%.1fms, errors=%d",
                    snapshot.elapsed_seconds,
                    snapshot.active_users,
                    snapshot.requests_per_second,
                    snapshot.latency.p95,
                    snapshot.total_errors,
                )
        except Exception as exc:
            self._state = SessionState.FAILED
            logger.exception("Load session failed")
            raise EngineError("Load session failed") from exc
        finally:
            if self._state != SessionState.FAILED:
                self._state = SessionState.STOPPING
            await shutdown_all_users(
                self._user_tasks,
                self._stop_event,
                grace_period=config.graceful_stop,
            )
            if self._handle_signals:
                self._remove_signal_handlers()

        total_duration = time.monotonic() - start_time
        # Captures requests finished during the graceful stop.
        self._collector.flush(elapsed_seconds=total_duration, active_users=0)
        final_summary = self._collector.get_cumulative_snapshot(
            elapsed_seconds=total_duration,
            active_users=0,
        )

        self._state = SessionState.COMPLETED
        logger.info(
            "Run completed: duration=%.1fs, iterations=%d, requests=%d, "
            "p95=%.1fms, check failures=%d/%d",
            total_duration,
            self._iterations,
            final_summary.total_requests,
            final_summary.latency.p95,
            self._recorder.total_fails,
            self._recorder.total_passes + self._recorder.total_fails,
        )

        return RunResult(
            base_url=config.base_url,
            virtual_users=config.virtual_users,
            duration_seconds=total_duration,
            iterations=self._iterations,
            snapshots=snapshots,
            final_summary=final_summary,
            checks=self._recorder.summaries(),
        )

    async def stop(self) -> None:
        """Request graceful shutdown; the tick loop exits immediately."""
        if self._state == SessionState.RUNNING:
            logger.info("Graceful shutdown requested")
            self._state = SessionState.STOPPING
            self._stop_event.set()

    async def _setup(self) -> SessionToken:
        async with HttpClient(
            base_url=self._config.base_url,
            headers=JSON_HEADERS,
            metric_callback=self._collector.record,
            vu_id=SETUP_VU_ID,
            timeout=self._config.request_timeout,
        ) as client:
            return await login(client, self._config.username, self._config.password)

    async def _run_virtual_user(self, user_id: int, token: SessionToken) -> None:
        """Loop iterations until the stop event is set.

        Args:
            user_id: Virtual user identifier, used for metric tagging only.
            token: Shared session token from setup.
        """
        async with HttpClient(
            base_url=self._config.base_url,
            headers=token.headers(),
            metric_callback=self._collector.record,
            vu_id=user_id,
            timeout=self._config.request_timeout,
        ) as client:
            while not self._stop_event.is_set():
                try:
                    await run_iteration(client, self._config, self._recorder)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.debug("Iteration failed for user %d", user_id, exc_info=True)
                else:
                    self._iterations += 1

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()

        def _signal_handler() -> None:
            logger.info("Signal received, initiating graceful shutdown")
            self._state = SessionState.STOPPING
            self._stop_event.set()

        if sys.platform != "win32":
            loop.add_signal_handler(signal.SIGINT, _signal_handler)
            loop.add_signal_handler(signal.SIGTERM, _signal_handler)
        else:
            signal.signal(signal.SIGINT, lambda _s, _f: _signal_handler())
            signal.signal(signal.SIGTERM, lambda _s, _f: _signal_handler())

    def _remove_signal_handlers(self) -> None:
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
        else:
            signal.signal(signal.SIGINT, signal.default_int_handler)
            signal.signal(signal.SIGTERM, signal.SIG_DFL)
