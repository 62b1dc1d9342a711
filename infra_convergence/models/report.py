"""Pydantic diagnostic record for a single convergence wait.

A ``WaitReport`` is the audit trail of one wait: which stage ran against
which resource, how it ended, how long it took and what the last
observation was.  Lifecycle operations return one report per stage so
the caller can persist or display them alongside the resource record.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from infra_convergence.core.exceptions import (
    ConvergenceError,
    UnexpectedStateError,
    WaitCancelledError,
    WaitError,
    WaitTimeoutError,
    label_text,
)

Outcome = Literal["converged", "skipped", "timeout", "cancelled", "unexpected_state", "failed"]


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


class WaitReport(BaseModel):
    """Outcome of one wait stage.

    Attributes:
        stage: Lifecycle stage (e.g. ``"capacity"``, ``"drain"``, ``"delete"``).
        resource_id: Remote resource the wait observed.
        outcome: How the wait ended.
        attempts: Number of completed refresh calls.
        elapsed_s: Wall-clock seconds spent waiting.
        last_label: Label of the last successful refresh, if any.
        summary: Stage-specific snapshot summary.
        error: Structured error payload when the wait did not converge.
        finished_at: Completion timestamp (ISO 8601, UTC).
    """

    stage: str
    resource_id: str
    outcome: Outcome
    attempts: int = 0
    elapsed_s: float = 0.0
    last_label: str | None = None
    summary: dict[str, Any] = Field(default_factory=dict)
    error: dict[str, Any] | None = None
    finished_at: str = Field(default_factory=_utc_now_iso)

    @property
    def converged(self) -> bool:
        return self.outcome in ("converged", "skipped")

    @classmethod
    def from_error(
        cls,
        stage: str,
        resource_id: str,
        exc: BaseException,
        *,
        elapsed_s: float = 0.0,
        attempts: int = 0,
    ) -> WaitReport:
        """Build a report for a wait that ended with *exc*.

        ``WaitError`` subclasses supply their own elapsed time, attempt
        count and last label; other exceptions (refresh failures) use the
        values observed by the caller.
        """
        outcome: Outcome = "failed"
        last_label: str | None = None
        if isinstance(exc, WaitError):
            elapsed_s = exc.elapsed_s
            attempts = exc.attempts
            last_label = label_text(exc.last_label)
            if isinstance(exc, WaitTimeoutError):
                outcome = "timeout"
            elif isinstance(exc, WaitCancelledError):
                outcome = "cancelled"
            elif isinstance(exc, UnexpectedStateError):
                outcome = "unexpected_state"

        if isinstance(exc, ConvergenceError):
            error = exc.to_error_dict()
        else:
            error = {
                "category": "permanent",
                "code": type(exc).__name__,
                "stage": stage,
                "message": str(exc),
                "retryable": False,
                "resource_id": resource_id,
            }

        return cls(
            stage=stage,
            resource_id=resource_id,
            outcome=outcome,
            attempts=attempts,
            elapsed_s=round(elapsed_s, 3),
            last_label=last_label,
            error=error,
        )
