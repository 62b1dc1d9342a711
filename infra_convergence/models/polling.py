"""Typed value objects exchanged between the poller and its refresh steps.

- ``PollTiming``: delay, interval and budget shared by the recipes
- ``PollSpec``: label sets plus timing for a single wait
- ``PollOutcome``: the result of one successful refresh call
- ``Refresh``: a refresh callable tagged as observational or action
- ``PollAttempt``: progress record handed to an optional observer
- ``CapacityLabel`` / ``DrainLabel`` / ``DeleteLabel``: per-recipe vocabularies

Design notes:
- All models are frozen dataclasses.  A ``PollSpec`` and its ``Refresh``
  live only for the duration of one wait.
- The poller compares labels only through set membership, so any hashable
  value works; the recipes use small string enums.
- Refresh failures are raised, not returned.  A refresh that returns has
  succeeded and its label is meaningful.
"""

from __future__ import annotations

import enum
import math
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

from infra_convergence.core.exceptions import ValidationError

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, ValidationError):
    """Raised when a value object is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        ValidationError.__init__(self, formatted)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class CancelToken(Protocol):
    """Cooperative cancellation signal.

    ``threading.Event`` satisfies this protocol.  ``wait`` must return
    ``True`` as soon as the token is set, which is what makes the
    poller's sleeps interruptible.
    """

    def is_set(self) -> bool: ...

    def wait(self, timeout: float | None = None) -> bool: ...


# ---------------------------------------------------------------------------
# Label vocabularies
# ---------------------------------------------------------------------------


class CapacityLabel(enum.Enum):
    """Labels produced by the capacity recipe."""

    WAITING = "waiting"
    READY = "ready"


class DrainLabel(enum.Enum):
    """Labels produced by the dependent-drain recipe."""

    STILL_ATTACHED = "still-attached"
    DRAINED = "drained"


class DeleteLabel(enum.Enum):
    """Labels produced by the delete-until-accepted recipe."""

    BLOCKED = "blocked"
    DELETED = "deleted"


# ---------------------------------------------------------------------------
# Poll models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PollTiming:
    """Timing half of a ``PollSpec``, shared by every recipe.

    Attributes:
        initial_delay_s: Sleep before the first refresh (>= 0).
        min_interval_s: Sleep between refreshes while pending (> 0).
        timeout_s: Budget measured from the start of the wait (> 0).
    """

    initial_delay_s: float
    min_interval_s: float
    timeout_s: float

    def __post_init__(self) -> None:
        _check_min("PollTiming", "initial_delay_s", self.initial_delay_s, 0)
        _check_positive("PollTiming", "min_interval_s", self.min_interval_s)
        _check_positive("PollTiming", "timeout_s", self.timeout_s)

    def spec(self, pending: Iterable[Hashable], target: Iterable[Hashable]) -> PollSpec:
        """Combine this timing with a pair of label sets."""
        return PollSpec(
            pending=frozenset(pending),
            target=frozenset(target),
            initial_delay_s=self.initial_delay_s,
            min_interval_s=self.min_interval_s,
            timeout_s=self.timeout_s,
        )


@dataclass(frozen=True, slots=True)
class PollSpec:
    """Label sets and timing for one wait.

    Attributes:
        pending: Labels meaning "still converging".
        target: Labels meaning "done".
        initial_delay_s: Sleep before the first refresh (>= 0).
        min_interval_s: Sleep between refreshes while pending (> 0).
        timeout_s: Budget measured from the start of the wait (> 0).
    """

    pending: frozenset[Hashable]
    target: frozenset[Hashable]
    initial_delay_s: float
    min_interval_s: float
    timeout_s: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "pending", frozenset(self.pending))
        object.__setattr__(self, "target", frozenset(self.target))
        if not self.target:
            raise ModelValidationError("PollSpec", "target", set(self.target), "must not be empty")
        overlap = self.pending & self.target
        if overlap:
            raise ModelValidationError(
                "PollSpec",
                "pending",
                set(overlap),
                "labels must not also appear in target",
            )
        _check_min("PollSpec", "initial_delay_s", self.initial_delay_s, 0)
        _check_positive("PollSpec", "min_interval_s", self.min_interval_s)
        _check_positive("PollSpec", "timeout_s", self.timeout_s)


@dataclass(frozen=True, slots=True)
class PollOutcome(Generic[T]):
    """Result of one successful refresh.

    Attributes:
        snapshot: Latest observed representation of the resource.
        label: Classification of ``snapshot``.
    """

    snapshot: T
    label: Hashable


@dataclass(frozen=True, slots=True)
class PollAttempt:
    """Progress record passed to a poller observer after each refresh.

    Attributes:
        attempt: 1-based refresh counter.
        elapsed_s: Seconds since the wait started.
        label: Label returned by this refresh.
    """

    attempt: int
    elapsed_s: float
    label: Hashable


class RefreshKind(enum.Enum):
    """Whether invoking a refresh only reads, or also re-issues a mutation.

    Values:
        OBSERVATIONAL: Pure read of remote state; safe to call any number of times.
        ACTION:        Each call re-issues a mutating request (e.g. a delete).
                       The mutation must be idempotent: a call may already be
                       in flight when the wait is cancelled.
    """

    OBSERVATIONAL = "observational"
    ACTION = "action"


@dataclass(frozen=True, slots=True)
class Refresh(Generic[T]):
    """A refresh step plus its side-effect classification.

    Attributes:
        fn: Callable receiving the wait's cancellation token and returning
            a ``PollOutcome``.  Raising aborts the wait.
        kind: ``OBSERVATIONAL`` or ``ACTION``.
        description: Short human-readable name used in logs and errors.
    """

    fn: Callable[[CancelToken], PollOutcome[T]]
    kind: RefreshKind = RefreshKind.OBSERVATIONAL
    description: str = "resource"

    @classmethod
    def observe(
        cls, fn: Callable[[CancelToken], PollOutcome[T]], description: str = "resource"
    ) -> Refresh[T]:
        """Wrap a read-only refresh."""
        return cls(fn, RefreshKind.OBSERVATIONAL, description)

    @classmethod
    def act(
        cls, fn: Callable[[CancelToken], PollOutcome[T]], description: str = "resource"
    ) -> Refresh[T]:
        """Wrap a refresh that re-issues an idempotent mutation on every call."""
        return cls(fn, RefreshKind.ACTION, description)

    @property
    def is_action(self) -> bool:
        return self.kind is RefreshKind.ACTION

    def __call__(self, cancel: CancelToken) -> PollOutcome[T]:
        return self.fn(cancel)


# ---------------------------------------------------------------------------
# Validation helpers (module-private)
# ---------------------------------------------------------------------------


def _check_min(model: str, field_name: str, value: float, lo: float) -> None:
    """Raise `ModelValidationError` if *value* is below *lo* or not finite."""
    if not (math.isfinite(value) and value >= lo):
        raise ModelValidationError(model, field_name, value, f"must be a finite number >= {lo}")


def _check_positive(model: str, field_name: str, value: float) -> None:
    """Raise `ModelValidationError` unless *value* is finite and strictly positive."""
    if not (math.isfinite(value) and value > 0):
        raise ModelValidationError(model, field_name, value, "must be a finite number > 0")
