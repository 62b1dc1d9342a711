"""Scaling-group lifecycle — sequence the convergence recipes.

After a mutating call returns, the control plane keeps working on the
group asynchronously.  This module issues the follow-up waits a resource
handler needs and records each one as a ``WaitReport``.

Stages
------
1. **capacity** — after create / update, wait until enough members are
   healthy and in service.  A ``wait_for_capacity_timeout`` of ``"0"``
   skips the wait.
2. **scale_to_zero** — on destroy, set desired/min/max to zero.
3. **drain** — wait until no members remain attached.
4. **delete** — re-issue the delete until the control plane accepts it.

A failing stage stops the sequence and raises ``LifecycleError`` with the
reports gathered so far; the original error is chained as ``__cause__``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from infra_convergence.core.config import ConvergenceConfig
from infra_convergence.core.exceptions import ConvergenceError, label_text
from infra_convergence.models.report import WaitReport
from infra_convergence.polling.error_policy import ErrorPolicy, error_code
from infra_convergence.polling.recipes import (
    group_members_drain_refresh,
    wait_for_capacity,
    wait_for_deletion,
    wait_for_drain,
)

if TYPE_CHECKING:
    from infra_convergence.clients.base import AutoScalingClient
    from infra_convergence.models.polling import CancelToken, PollAttempt
    from infra_convergence.models.scaling import AutoScalingGroup
    from infra_convergence.polling.poller import Clock, Observer

logger = logging.getLogger("infra_convergence.lifecycle.scaling_group")

T = TypeVar("T")

STAGE_CAPACITY = "capacity"
STAGE_SCALE_TO_ZERO = "scale_to_zero"
STAGE_DRAIN = "drain"
STAGE_DELETE = "delete"


class LifecycleError(ConvergenceError):
    """Raised when a lifecycle stage fails.

    Attributes:
        reports: Reports for every stage that ran, the failed one last.
    """

    default_stage = "lifecycle"
    default_code = "LIFECYCLE_STAGE_FAILED"

    def __init__(
        self,
        message: str,
        *,
        reports: list[WaitReport],
        cause: BaseException,
        resource_id: str = "",
    ) -> None:
        self.reports = reports
        failed = reports[-1]
        retryable = cause.retryable if isinstance(cause, ConvergenceError) else False
        super().__init__(
            message,
            stage=failed.stage,
            code=(cause.code if isinstance(cause, ConvergenceError) else "") or self.default_code,
            retryable=retryable,
            resource_id=resource_id,
        )


class ScalingGroupLifecycle:
    """Follow-up waits for scaling-group create, update and destroy.

    Example usage::

        lifecycle = ScalingGroupLifecycle(client, ConvergenceConfig.from_env())
        client.update_group(group_id, desired_capacity=4)
        report = lifecycle.after_update(group_id)
        ...
        reports = lifecycle.destroy(group_id)
    """

    def __init__(
        self,
        client: AutoScalingClient,
        config: ConvergenceConfig | None = None,
        policy: ErrorPolicy | None = None,
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self._client = client
        self._config = config or ConvergenceConfig()
        self._policy = policy or ErrorPolicy.from_codes(self._config.retry_as_pending_codes)
        self._clock = clock

    @property
    def config(self) -> ConvergenceConfig:
        return self._config

    @property
    def policy(self) -> ErrorPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Capacity
    # ------------------------------------------------------------------

    def after_create(
        self,
        group_id: str,
        *,
        wait_for_capacity_timeout: str | None = None,
        cancel: CancelToken | None = None,
    ) -> WaitReport:
        """Wait for a newly created group to reach its required capacity."""
        return self._wait_for_capacity(group_id, wait_for_capacity_timeout, cancel)

    def after_update(
        self,
        group_id: str,
        *,
        wait_for_capacity_timeout: str | None = None,
        cancel: CancelToken | None = None,
    ) -> WaitReport:
        """Wait for an updated group to reach its (new) required capacity."""
        return self._wait_for_capacity(group_id, wait_for_capacity_timeout, cancel)

    def _wait_for_capacity(
        self,
        group_id: str,
        override: str | None,
        cancel: CancelToken | None,
    ) -> WaitReport:
        timeout_s = self._config.capacity_timeout_s(override)
        if timeout_s == 0:
            logger.info("Capacity wait disabled | group=%s", group_id)
            return WaitReport(stage=STAGE_CAPACITY, resource_id=group_id, outcome="skipped")

        timing = self._config.timing(timeout_s)

        def run(observer: Observer) -> AutoScalingGroup:
            return wait_for_capacity(
                self._client,
                group_id,
                timing,
                cancel=cancel,
                clock=self._clock,
                observer=observer,
            )

        def summarize(group: AutoScalingGroup) -> dict[str, Any]:
            return {
                "group_id": group.group_id,
                "required_count": group.required_capacity,
                "desired_capacity": group.desired_capacity,
                "min_size": group.min_size,
            }

        return self._run_stage(STAGE_CAPACITY, group_id, run, summarize, reports=[])

    # ------------------------------------------------------------------
    # Destroy
    # ------------------------------------------------------------------

    def destroy(self, group_id: str, *, cancel: CancelToken | None = None) -> list[WaitReport]:
        """Scale the group to zero, wait for members to drain, then delete it.

        Returns:
            One report per stage, in execution order.  A group that is
            already gone yields a single ``skipped`` report.

        Raises:
            LifecycleError: If any stage fails.
        """
        reports: list[WaitReport] = []
        logger.info("Destroy started | group=%s", group_id)

        try:
            self._client.update_group(group_id, desired_capacity=0, min_size=0, max_size=0)
        except Exception as exc:
            if self._policy.is_not_found(exc):
                logger.info("Destroy target already gone | group=%s", group_id)
                return [WaitReport(stage=STAGE_SCALE_TO_ZERO, resource_id=group_id, outcome="skipped")]
            reports.append(WaitReport.from_error(STAGE_SCALE_TO_ZERO, group_id, exc))
            raise self._failure(STAGE_SCALE_TO_ZERO, group_id, exc, reports) from exc
        reports.append(
            WaitReport(
                stage=STAGE_SCALE_TO_ZERO,
                resource_id=group_id,
                outcome="converged",
                attempts=1,
                summary={"desired_capacity": 0, "min_size": 0, "max_size": 0},
            )
        )

        drain_timing = self._config.timing(self._config.drain_timeout_s)

        def run_drain(observer: Observer) -> Any:
            return wait_for_drain(
                group_members_drain_refresh(self._client, group_id),
                drain_timing,
                cancel=cancel,
                clock=self._clock,
                observer=observer,
                resource_id=group_id,
            )

        self._run_stage(
            STAGE_DRAIN,
            group_id,
            run_drain,
            lambda remaining: {"remaining": len(remaining)},
            reports=reports,
        )

        delete_timing = self._config.timing(self._config.delete_timeout_s)

        def run_delete(observer: Observer) -> Any:
            return wait_for_deletion(
                self._client,
                group_id,
                delete_timing,
                self._policy,
                cancel=cancel,
                clock=self._clock,
                observer=observer,
            )

        self._run_stage(STAGE_DELETE, group_id, run_delete, lambda _response: {}, reports=reports)
        logger.info("Destroy completed | group=%s | stages=%d", group_id, len(reports))
        return reports

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run_stage(
        self,
        stage: str,
        group_id: str,
        run: Callable[[Observer], T],
        summarize: Callable[[T], dict[str, Any]],
        *,
        reports: list[WaitReport],
    ) -> WaitReport:
        """Run one wait, append its report to *reports* and return it."""
        attempts: list[PollAttempt] = []
        started = self._clock()
        try:
            result = run(attempts.append)
        except Exception as exc:
            reports.append(
                WaitReport.from_error(
                    stage,
                    group_id,
                    exc,
                    elapsed_s=self._clock() - started,
                    attempts=len(attempts),
                )
            )
            raise self._failure(stage, group_id, exc, reports) from exc

        last = attempts[-1] if attempts else None
        report = WaitReport(
            stage=stage,
            resource_id=group_id,
            outcome="converged",
            attempts=len(attempts),
            elapsed_s=round(self._clock() - started, 3),
            last_label=label_text(last.label) if last else None,
            summary=summarize(result),
        )
        reports.append(report)
        return report

    def _failure(
        self, stage: str, group_id: str, exc: BaseException, reports: list[WaitReport]
    ) -> LifecycleError:
        logger.error(
            "Lifecycle stage failed | group=%s | stage=%s | code=%s | report=%s",
            group_id,
            stage,
            error_code(exc) or getattr(exc, "code", ""),
            reports[-1].model_dump_json(),
        )
        msg = f"Scaling group {group_id!r} stage {stage!r} failed: {exc}"
        return LifecycleError(msg, reports=reports, cause=exc, resource_id=group_id)
