"""Convergence poller — block until a resource reaches a target label.

``wait_for`` drives a refresh step until its label lands in the target
set, falls outside the declared sets, the refresh raises, the caller
cancels, or the budget runs out.

Algorithm:
    1. Sleep ``initial_delay_s`` (interruptible).
    2. Loop: check cancellation, check the deadline, refresh, then
       return on a target label, sleep ``min_interval_s`` on a pending
       label, or abort on anything else.

Refresh exceptions propagate unchanged and immediately.  Retry-as-pending
semantics for specific control-plane codes belong to the refresh step
(see ``recipes.delete_until_accepted_refresh``), never to the poller.

The interval is fixed; no backoff growth is applied.

Concurrency:
    Each call is a plain blocking loop with no shared state.  Run
    independent waits on separate threads; pass a ``threading.Event`` as
    ``cancel`` to abort a sleep and suppress further refresh calls.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Hashable
from typing import TypeVar

from infra_convergence.core.exceptions import (
    UnexpectedStateError,
    WaitCancelledError,
    WaitTimeoutError,
    label_text,
)
from infra_convergence.models.polling import CancelToken, PollAttempt, PollSpec, Refresh

logger = logging.getLogger("infra_convergence.polling.poller")

T = TypeVar("T")

Clock = Callable[[], float]
Observer = Callable[[PollAttempt], None]


def wait_for(
    spec: PollSpec,
    refresh: Refresh[T],
    *,
    cancel: CancelToken | None = None,
    clock: Clock = time.monotonic,
    observer: Observer | None = None,
    resource_id: str = "",
) -> T:
    """Poll *refresh* until its label is in ``spec.target``.

    Args:
        spec: Label sets and timing for this wait.
        refresh: The refresh step.  Receives *cancel* on every call.
        cancel: Cancellation token; a fresh ``threading.Event`` if omitted.
        clock: Monotonic time source in seconds (injectable for tests).
        observer: Called with a ``PollAttempt`` after every refresh that returns.
        resource_id: Identifier attached to raised errors and log lines.

    Returns:
        The snapshot of the first refresh whose label is in ``spec.target``.

    Raises:
        WaitCancelledError: *cancel* was set before convergence.
        WaitTimeoutError: The label stayed pending for ``spec.timeout_s``.
        UnexpectedStateError: A label outside ``pending | target`` was observed.
        Exception: Any exception raised by *refresh*, unchanged.
    """
    token: CancelToken = cancel if cancel is not None else threading.Event()
    description = refresh.description
    started = clock()
    attempts = 0
    last_label: Hashable | None = None
    last_snapshot: T | None = None

    def elapsed() -> float:
        return clock() - started

    def cancelled() -> WaitCancelledError:
        if refresh.is_action and attempts:
            logger.warning(
                "Wait cancelled after mutating refresh | resource=%s | description=%s | attempts=%d",
                resource_id,
                description,
                attempts,
            )
        else:
            logger.warning(
                "Wait cancelled | resource=%s | description=%s | attempts=%d",
                resource_id,
                description,
                attempts,
            )
        return WaitCancelledError(
            f"Wait for {description} {resource_id!r} cancelled after {elapsed():.1f}s "
            f"({attempts} refreshes)",
            elapsed_s=elapsed(),
            attempts=attempts,
            last_label=last_label,
            last_snapshot=last_snapshot,
            resource_id=resource_id,
        )

    logger.info(
        "Wait started | resource=%s | description=%s | kind=%s | pending=%s | target=%s | timeout=%.1fs",
        resource_id,
        description,
        refresh.kind.value,
        sorted(label_text(label) or "" for label in spec.pending),
        sorted(label_text(label) or "" for label in spec.target),
        spec.timeout_s,
    )

    if spec.initial_delay_s > 0 and token.wait(spec.initial_delay_s):
        raise cancelled()

    while True:
        if token.is_set():
            raise cancelled()

        if elapsed() >= spec.timeout_s:
            logger.warning(
                "Wait timed out | resource=%s | description=%s | timeout=%.1fs | attempts=%d | last_label=%s",
                resource_id,
                description,
                spec.timeout_s,
                attempts,
                label_text(last_label),
            )
            raise WaitTimeoutError(
                f"Timeout waiting for {description} {resource_id!r} after {spec.timeout_s:.1f}s "
                f"({attempts} refreshes, last label {label_text(last_label)!r})",
                elapsed_s=elapsed(),
                attempts=attempts,
                last_label=last_label,
                last_snapshot=last_snapshot,
                resource_id=resource_id,
            )

        outcome = refresh(token)
        attempts += 1
        last_label = outcome.label
        last_snapshot = outcome.snapshot

        logger.debug(
            "Refresh | resource=%s | description=%s | attempt=%d | label=%s | elapsed=%.1fs",
            resource_id,
            description,
            attempts,
            label_text(outcome.label),
            elapsed(),
        )
        if observer is not None:
            observer(PollAttempt(attempt=attempts, elapsed_s=elapsed(), label=outcome.label))

        if outcome.label in spec.target:
            logger.info(
                "Wait converged | resource=%s | description=%s | label=%s | attempts=%d | elapsed=%.1fs",
                resource_id,
                description,
                label_text(outcome.label),
                attempts,
                elapsed(),
            )
            return outcome.snapshot

        if outcome.label not in spec.pending:
            logger.warning(
                "Unexpected state | resource=%s | description=%s | label=%s | attempts=%d",
                resource_id,
                description,
                label_text(outcome.label),
                attempts,
            )
            raise UnexpectedStateError(
                f"Unexpected state {label_text(outcome.label)!r} for {description} "
                f"{resource_id!r}; wanted one of "
                f"{sorted(label_text(label) or '' for label in spec.target)}",
                elapsed_s=elapsed(),
                attempts=attempts,
                last_label=last_label,
                last_snapshot=last_snapshot,
                resource_id=resource_id,
            )

        if token.wait(spec.min_interval_s):
            raise cancelled()
