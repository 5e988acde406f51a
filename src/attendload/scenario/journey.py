"""One virtual-user iteration: check in, check out, request overtime, claim a reimbursement."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiohttp

from attendload._internal.logging import get_logger
from attendload.scenario.checks import Check, CheckResult
from attendload.scenario.payloads import (
    build_checkin,
    build_checkout,
    build_overtime,
    build_reimbursement,
    utc_now,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from attendload._internal.config import DriverConfig
    from attendload.http_client import HttpClient
    from attendload.scenario.checks import CheckRecorder
    from attendload.scenario.payloads import AttendanceRequest

logger = get_logger("scenario.journey")


@dataclass(frozen=True)
class Step:
    """A single request of the iteration and the check applied to it.

    Attributes:
        name: Metric name for the request.
        method: HTTP method.
        path: Request path below the base URL.
        check: Check evaluated on the response.
        build: Builds the request body from the config and the current time.
    """

    name: str
    method: str
    path: str
    check: Check
    build: Callable[[DriverConfig, datetime], AttendanceRequest]


CHECK_IN = Step(
    name="Check In",
    method="POST",
    path="/api/attendance/checkin",
    check=Check("check-in success"),
    build=build_checkin,
)
# 409 means the attendance was already checked out.
CHECK_OUT = Step(
    name="Check Out",
    method="PATCH",
    path="/api/attendance/checkout",
    check=Check("check-out success", frozenset({200, 409})),
    build=build_checkout,
)
OVERTIME = Step(
    name="Request Overtime",
    method="POST",
    path="/api/attendance/overtime",
    check=Check("overtime requested"),
    build=build_overtime,
)
REIMBURSEMENT = Step(
    name="Submit Reimbursement",
    method="POST",
    path="/api/reimbursement/submit",
    check=Check("reimbursement submitted"),
    build=build_reimbursement,
)

STEPS: tuple[Step, ...] = (CHECK_IN, CHECK_OUT, OVERTIME, REIMBURSEMENT)


async def execute_step(
    client: HttpClient,
    step: Step,
    config: DriverConfig,
    now: datetime,
) -> CheckResult:
    """Send one request and evaluate its check.

    Transport failures become a failed check with status 0; they are not
    raised.

    Args:
        client: Client carrying the authorization headers.
        step: The step to execute.
        config: Driver configuration supplying body values.
        now: Current time used for timestamps in the body.

    Returns:
        The evaluated CheckResult.
    """
    body = step.build(config, now).to_json()
    try:
        resp = await client.request(step.method, step.path, body, name=step.name)
    except (aiohttp.ClientError, TimeoutError) as exc:
        return step.check.evaluate(0, f"{type(exc).__name__}: {exc}")

    try:
        await resp.read()
    except (aiohttp.ClientError, TimeoutError) as exc:
        return step.check.evaluate(resp.status, f"{type(exc).__name__}: {exc}")
    finally:
        resp.release()

    return step.check.evaluate(resp.status)


async def run_iteration(
    client: HttpClient,
    config: DriverConfig,
    recorder: CheckRecorder | None = None,
    *,
    pause: Callable[[float], Awaitable[object]] = asyncio.sleep,
    clock: Callable[[], datetime] = utc_now,
) -> list[CheckResult]:
    """Run the four steps in order, pausing after each one.

    Every step runs regardless of earlier check outcomes.

    Args:
        client: Client carrying the authorization headers.
        config: Driver configuration.
        recorder: Optional recorder receiving every check result.
        pause: Coroutine function used for the fixed pause.
        clock: Returns the current aware datetime.

    Returns:
        The check results in step order.
    """
    results: list[CheckResult] = []
    for step in STEPS:
        result = await execute_step(client, step, config, clock())
        if not result.passed:
            logger.debug(
                "Check %r failed: status=%d error=%s",
                result.name,
                result.status_code,
                result.error,
            )
        if recorder is not None:
            recorder.record(result)
        results.append(result)
        await pause(config.pause_seconds)
    return results
