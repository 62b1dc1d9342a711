"""Data models.

Defines the value types exchanged by the convergence engine:
- PollSpec / PollTiming: label sets and timing for one wait
- PollOutcome / Refresh: what a refresh step returns and how it is tagged
- AutoScalingGroup / GroupMember / CapacitySnapshot: scaling-group snapshots
- WaitReport: diagnostic record of a finished wait
"""

from infra_convergence.models.polling import (
    CancelToken,
    CapacityLabel,
    DeleteLabel,
    DrainLabel,
    ModelValidationError,
    PollAttempt,
    PollOutcome,
    PollSpec,
    PollTiming,
    Refresh,
    RefreshKind,
)
from infra_convergence.models.report import WaitReport
from infra_convergence.models.scaling import AutoScalingGroup, CapacitySnapshot, GroupMember

__all__ = [
    "AutoScalingGroup",
    "CancelToken",
    "CapacityLabel",
    "CapacitySnapshot",
    "DeleteLabel",
    "DrainLabel",
    "GroupMember",
    "ModelValidationError",
    "PollAttempt",
    "PollOutcome",
    "PollSpec",
    "PollTiming",
    "Refresh",
    "RefreshKind",
    "WaitReport",
]
