"""Unified convergence exception taxonomy.

Provides a shared base exception hierarchy for the poller, the error
policy, the recipes and the control-plane collaborators.  Every domain
exception inherits from ``ConvergenceError`` and carries structured
context fields that enable consistent retry decisions and operator
diagnostics.

Taxonomy categories
-------------------
- ``ValidationError``   — invalid values or configuration, never retryable.
- ``TransientError``    — temporary failures (network, throttle, timeout), retryable.
- ``PermanentError``    — unrecoverable failures, not retryable.
- ``WaitCancelledError`` — caller-initiated abort, reported as ``cancelled``.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for logging and diagnostic reports.
"""

from __future__ import annotations

from typing import Any


class ConvergenceError(Exception):
    """Base exception for all convergence-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Stage where the error occurred
            (e.g. ``"wait"``, ``"control_plane"``, ``"config"``).
        code: Machine-readable error code (e.g. ``"WAIT_TIMEOUT"``).
        retryable: Whether the caller may retry the operation.
        resource_id: Identifier of the remote resource involved, if any.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        resource_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.resource_id = resource_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, WaitCancelledError):
            return "cancelled"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, Any]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "resource_id": self.resource_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(ConvergenceError):
    """Input, model or configuration validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)


class TransientError(ConvergenceError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)


class PermanentError(ConvergenceError):
    """Unrecoverable failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)


# ---------------------------------------------------------------------------
# Poller errors
# ---------------------------------------------------------------------------


class WaitError(ConvergenceError):
    """Base class for failures surfaced by the convergence poller.

    Carries enough context for the caller to produce a diagnostic
    without having to re-query the remote resource.

    Attributes:
        elapsed_s: Seconds since the wait started.
        attempts: Number of completed refresh calls.
        last_label: Label of the last successful refresh (``None`` if none).
        last_snapshot: Snapshot of the last successful refresh (``None`` if none).
    """

    default_stage = "wait"
    default_code = "WAIT_FAILED"

    def __init__(
        self,
        message: str,
        *,
        elapsed_s: float = 0.0,
        attempts: int = 0,
        last_label: object = None,
        last_snapshot: object = None,
        retryable: bool = False,
        resource_id: str = "",
    ) -> None:
        self.elapsed_s = elapsed_s
        self.attempts = attempts
        self.last_label = last_label
        self.last_snapshot = last_snapshot
        super().__init__(message, retryable=retryable, resource_id=resource_id)

    def to_error_dict(self) -> dict[str, Any]:
        payload = super().to_error_dict()
        payload["elapsed_s"] = round(self.elapsed_s, 3)
        payload["attempts"] = self.attempts
        payload["last_label"] = label_text(self.last_label)
        return payload


class WaitTimeoutError(WaitError):
    """Pending persisted past the deadline.

    Retryable from the caller's point of view: a new wait with a fresh
    budget may succeed.  The poller itself never retries.
    """

    default_code = "WAIT_TIMEOUT"

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)


class WaitCancelledError(WaitError):
    """The caller's cancellation token was set before convergence."""

    default_code = "WAIT_CANCELLED"


class UnexpectedStateError(WaitError):
    """A refresh returned a label outside the declared pending and target sets."""

    default_code = "UNEXPECTED_STATE"

    @property
    def category(self) -> str:
        return "permanent"


def label_text(label: object) -> str | None:
    """Render a label for logs and payloads (enum value or ``str()``)."""
    if label is None:
        return None
    value = getattr(label, "value", label)
    return str(value)
