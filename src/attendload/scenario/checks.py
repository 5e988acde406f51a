"""Status-code checks and their pass/fail tallies.

A check never alters control flow: a failed check is recorded and the
iteration moves on to the next request.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Check:
    """A named assertion on the response status code.

    Attributes:
        name: Label reported in the run summary.
        accepted_statuses: Status codes that count as a pass.
    """

    name: str
    accepted_statuses: frozenset[int] = frozenset({200})

    def evaluate(self, status_code: int, error: str | None = None) -> CheckResult:
        """Evaluate the check against a response status.

        Args:
            status_code: Response status, 0 if the request raised.
            error: Transport error description, if any.

        Returns:
            The CheckResult for this evaluation.
        """
        passed = error is None and status_code in self.accepted_statuses
        return CheckResult(name=self.name, passed=passed, status_code=status_code, error=error)


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a single check evaluation."""

    name: str
    passed: bool
    status_code: int
    error: str | None = None


@dataclass
class CheckSummary:
    """Cumulative tally for one check.

    Attributes:
        name: Check label.
        passes: Number of passing evaluations.
        fails: Number of failing evaluations.
        fails_by_status: Failing evaluations keyed by status code
            (0 for transport errors).
    """

    name: str
    passes: int = 0
    fails: int = 0
    fails_by_status: dict[int, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        """Return the number of evaluations."""
        return self.passes + self.fails

    @property
    def pass_rate(self) -> float:
        """Return the fraction of passing evaluations (0.0 when empty)."""
        return self.passes / self.total if self.total else 0.0


class CheckRecorder:
    """Collects check results from all virtual users.

    Results are appended from coroutines on a single event loop, so no
    locking is needed.
    """

    def __init__(self) -> None:
        """Initialize an empty recorder."""
        self._summaries: dict[str, CheckSummary] = {}

    def record(self, result: CheckResult) -> None:
        """Add a result to its check's tally.

        Args:
            result: The check result to record.
        """
        summary = self._summaries.get(result.name)
        if summary is None:
            summary = self._summaries[result.name] = CheckSummary(name=result.name)

        if result.passed:
            summary.passes += 1
        else:
            summary.fails += 1
            summary.fails_by_status[result.status_code] = (
                summary.fails_by_status.get(result.status_code, 0) + 1
            )

    def summaries(self) -> list[CheckSummary]:
        """Return tallies in the order checks were first seen."""
        return list(self._summaries.values())

    @property
    def total_passes(self) -> int:
        """Return passing evaluations across all checks."""
        return sum(s.passes for s in self._summaries.values())

    @property
    def total_fails(self) -> int:
        """Return failing evaluations across all checks."""
        return sum(s.fails for s in self._summaries.values())
