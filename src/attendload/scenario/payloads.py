"""Request bodies sent during an iteration.

Each record is built fresh for a single call and discarded afterwards.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from attendload._internal.config import DriverConfig
    from attendload._internal.types import JsonBody


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as ISO 8601 UTC with milliseconds and a ``Z`` suffix.

    >>> format_timestamp(datetime(2026, 10, 19, 8, 30, tzinfo=UTC))
    '2026-10-19T08:30:00.000Z'
    """
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class AttendanceRequest:
    """Body of the check-in call."""

    user_id: int
    attendance_period_id: int

    def to_json(self) -> JsonBody:
        """Return the JSON object for this request."""
        return asdict(self)


@dataclass(frozen=True)
class CheckOutRequest(AttendanceRequest):
    """Body of the check-out call."""

    check_out_at: datetime

    def to_json(self) -> JsonBody:
        return {
            "user_id": self.user_id,
            "attendance_period_id": self.attendance_period_id,
            "check_out_at": format_timestamp(self.check_out_at),
        }


@dataclass(frozen=True)
class OvertimeRequest(AttendanceRequest):
    """Body of the overtime request call."""

    date: dt.date
    hours: int

    def to_json(self) -> JsonBody:
        return {
            "user_id": self.user_id,
            "attendance_period_id": self.attendance_period_id,
            "date": self.date.isoformat(),
            "hours": self.hours,
        }


@dataclass(frozen=True)
class ReimbursementRequest(AttendanceRequest):
    """Body of the reimbursement submission call."""

    title: str
    amount: int


def build_checkin(config: DriverConfig, now: datetime) -> AttendanceRequest:
    return AttendanceRequest(
        user_id=config.user_id,
        attendance_period_id=config.attendance_period_id,
    )


def build_checkout(config: DriverConfig, now: datetime) -> CheckOutRequest:
    return CheckOutRequest(
        user_id=config.user_id,
        attendance_period_id=config.attendance_period_id,
        check_out_at=now,
    )


def build_overtime(config: DriverConfig, now: datetime) -> OvertimeRequest:
    # Calendar date of the UTC timestamp, matching check_out_at.
    return OvertimeRequest(
        user_id=config.user_id,
        attendance_period_id=config.attendance_period_id,
        date=now.astimezone(UTC).date(),
        hours=config.overtime_hours,
    )


def build_reimbursement(config: DriverConfig, now: datetime) -> ReimbursementRequest:
    return ReimbursementRequest(
        user_id=config.user_id,
        attendance_period_id=config.attendance_period_id,
        title=config.reimbursement_title,
        amount=config.reimbursement_amount,
    )
