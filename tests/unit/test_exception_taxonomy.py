"""Tests for the unified exception taxonomy.

Validates:
- ConvergenceError hierarchy and structured attributes
- Category classification (validation, transient, permanent, cancelled)
- ``to_error_dict()`` produces stable payload keys
- Retry semantics are consistent with taxonomy class
- All poller/client/config exceptions are ConvergenceError subclasses
"""

from __future__ import annotations

from typing import ClassVar

from infra_convergence.clients.base import ControlPlaneError, ResourceNotFoundError
from infra_convergence.core.config import ConfigValidationError
from infra_convergence.core.exceptions import (
    ConvergenceError,
    PermanentError,
    TransientError,
    UnexpectedStateError,
    ValidationError,
    WaitCancelledError,
    WaitError,
    WaitTimeoutError,
    label_text,
)
from infra_convergence.lifecycle.scaling_group import LifecycleError
from infra_convergence.models.polling import DrainLabel, ModelValidationError
from infra_convergence.models.report import WaitReport


class TestConvergenceErrorBase:
    """ConvergenceError base class behavior."""

    def test_default_attributes(self) -> None:
        err = ConvergenceError("boom")
        assert err.message == "boom"
        assert err.stage == ""
        assert err.code == ""
        assert err.retryable is False
        assert err.resource_id == ""

    def test_custom_attributes(self) -> None:
        err = ConvergenceError(
            "fail",
            stage="drain",
            code="DRAIN_FAILED",
            retryable=True,
            resource_id="asg-1",
        )
        assert err.stage == "drain"
        assert err.code == "DRAIN_FAILED"
        assert err.retryable is True
        assert err.resource_id == "asg-1"

    def test_str_is_message(self) -> None:
        assert str(ConvergenceError("human-readable error")) == "human-readable error"

    def test_to_error_dict_keys(self) -> None:
        err = ConvergenceError("x", stage="s", code="C", retryable=True, resource_id="id")
        d = err.to_error_dict()
        assert set(d.keys()) == {
            "category",
            "code",
            "stage",
            "message",
            "retryable",
            "resource_id",
        }
        assert d["message"] == "x"
        assert d["retryable"] is True
        assert d["resource_id"] == "id"


class TestCategoryBases:
    """Category base classes set correct defaults."""

    def test_validation_error_not_retryable(self) -> None:
        err = ValidationError("bad input")
        assert err.retryable is False
        assert err.category == "validation"

    def test_transient_error_retryable(self) -> None:
        err = TransientError("throttled")
        assert err.retryable is True
        assert err.category == "transient"

    def test_permanent_error_not_retryable(self) -> None:
        err = PermanentError("gone")
        assert err.retryable is False
        assert err.category == "permanent"

    def test_dynamic_category_from_retryable(self) -> None:
        assert ConvergenceError("x", retryable=True).category == "transient"
        assert ConvergenceError("x", retryable=False).category == "permanent"


class TestAllExceptionsAreConvergenceError:
    """Every custom exception inherits from ConvergenceError."""

    EXCEPTION_CLASSES: ClassVar[list[type[ConvergenceError]]] = [
        WaitError,
        WaitTimeoutError,
        WaitCancelledError,
        UnexpectedStateError,
        ControlPlaneError,
        ResourceNotFoundError,
        ConfigValidationError,
        ModelValidationError,
        LifecycleError,
    ]

    def test_all_subclass_convergence_error(self) -> None:
        for cls in self.EXCEPTION_CLASSES:
            assert issubclass(cls, ConvergenceError), f"{cls.__name__} is not a ConvergenceError"


class TestWaitErrors:
    """Poller errors carry the wait's progress."""

    def test_timeout_defaults(self) -> None:
        err = WaitTimeoutError("late", elapsed_s=11.0, attempts=3, last_label=DrainLabel.STILL_ATTACHED)
        assert err.stage == "wait"
        assert err.code == "WAIT_TIMEOUT"
        assert err.retryable is True
        assert err.category == "transient"

    def test_cancelled_category(self) -> None:
        err = WaitCancelledError("stop")
        assert err.code == "WAIT_CANCELLED"
        assert err.category == "cancelled"
        assert err.retryable is False

    def test_unexpected_state_is_permanent(self) -> None:
        err = UnexpectedStateError("odd", last_label="error")
        assert err.code == "UNEXPECTED_STATE"
        assert err.category == "permanent"

    def test_wait_error_dict_extends_base(self) -> None:
        err = WaitTimeoutError(
            "late",
            elapsed_s=10.12345,
            attempts=3,
            last_label=DrainLabel.STILL_ATTACHED,
            last_snapshot=("i-1",),
        )
        d = err.to_error_dict()
        assert d["elapsed_s"] == 10.123
        assert d["attempts"] == 3
        assert d["last_label"] == "still-attached"
        assert "last_snapshot" not in d

    def test_last_snapshot_kept_on_exception(self) -> None:
        err = WaitTimeoutError("late", last_snapshot={"members": 1})
        assert err.last_snapshot == {"members": 1}


class TestControlPlaneErrors:
    def test_defaults(self) -> None:
        err = ControlPlaneError("denied", status=403)
        assert err.stage == "control_plane"
        assert err.code == "CONTROL_PLANE_ERROR"
        assert err.status == 403
        assert err.category == "permanent"

    def test_str_includes_code(self) -> None:
        assert str(ControlPlaneError("in use", code="X9")) == "[X9] in use"

    def test_not_found(self) -> None:
        err = ResourceNotFoundError("gone", resource_id="asg-1")
        assert err.code == "RESOURCE_NOT_FOUND"
        assert isinstance(err, ControlPlaneError)

    def test_retryable_control_plane_error_is_transient(self) -> None:
        assert ControlPlaneError("throttled", retryable=True).category == "transient"


class TestValidationStageAndCode:
    def test_config_validation_error(self) -> None:
        err = ConfigValidationError("CONVERGENCE_MIN_INTERVAL_S", 0, "must be > 0")
        assert err.stage == "config"
        assert err.code == "CONFIG_VALIDATION_FAILED"
        assert err.key == "CONVERGENCE_MIN_INTERVAL_S"
        assert err.value == 0

    def test_model_validation_error(self) -> None:
        err = ModelValidationError("PollSpec", "target", set(), "must not be empty")
        assert err.stage == "model_validation"
        assert err.code == "MODEL_VALIDATION_FAILED"
        assert isinstance(err, ValueError)
        assert isinstance(err, ConvergenceError)


class TestLifecycleError:
    def test_inherits_cause_code_and_retryability(self) -> None:
        cause = WaitTimeoutError("late", attempts=4)
        report = WaitReport.from_error("drain", "asg-1", cause)

        err = LifecycleError("drain failed", reports=[report], cause=cause, resource_id="asg-1")

        assert err.stage == "drain"
        assert err.code == "WAIT_TIMEOUT"
        assert err.retryable is True
        assert err.reports == [report]

    def test_foreign_cause_uses_default_code(self) -> None:
        cause = ConnectionError("reset")
        report = WaitReport.from_error("delete", "asg-1", cause)

        err = LifecycleError("delete failed", reports=[report], cause=cause)

        assert err.code == "LIFECYCLE_STAGE_FAILED"
        assert err.retryable is False


def test_label_text() -> None:
    assert label_text(None) is None
    assert label_text(DrainLabel.DRAINED) == "drained"
    assert label_text("raw") == "raw"
    assert label_text(7) == "7"
