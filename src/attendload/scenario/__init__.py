"""The attendance load scenario.

Setup logs in once (:func:`login`); every virtual user then repeats
:func:`run_iteration`, which walks the fixed :data:`STEPS` sequence.
"""

from __future__ import annotations

from attendload.scenario.auth import SessionToken, login
from attendload.scenario.checks import Check, CheckRecorder, CheckResult, CheckSummary
from attendload.scenario.journey import STEPS, Step, run_iteration

__all__ = [
    "STEPS",
    "Check",
    "CheckRecorder",
    "CheckResult",
    "CheckSummary",
    "SessionToken",
    "Step",
    "login",
    "run_iteration",
]
