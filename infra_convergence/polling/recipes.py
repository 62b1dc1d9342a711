"""Convergence recipes — composed refresh steps built on ``wait_for``.

Three shapes recur across resource types:

- **Capacity**: count healthy, in-service members of a scaling group and
  compare against its required capacity.
- **Drain**: wait for a dependent list (e.g. attached instances) to empty.
- **Delete-until-accepted**: re-issue a delete on every refresh; the
  control plane rejects it while dependents still reference the resource,
  and the error policy turns that rejection into "still pending".

Each recipe has a ``*_refresh`` builder returning a ``Refresh`` plus a
``wait_for_*`` convenience that pairs it with the matching ``PollSpec``.
All recipes share one state machine: pending is the only state with a
self-loop; target, fatal, unexpected and timeout are terminal.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, TypeVar

from infra_convergence.clients.base import ResourceNotFoundError
from infra_convergence.models.polling import (
    CancelToken,
    CapacityLabel,
    DeleteLabel,
    DrainLabel,
    PollOutcome,
    PollTiming,
    Refresh,
)
from infra_convergence.models.scaling import CapacitySnapshot
from infra_convergence.polling.error_policy import Disposition, ErrorPolicy, error_code
from infra_convergence.polling.poller import Clock, Observer, wait_for

if TYPE_CHECKING:
    from infra_convergence.clients.base import AutoScalingClient
    from infra_convergence.models.scaling import AutoScalingGroup, GroupMember

logger = logging.getLogger("infra_convergence.polling.recipes")

T = TypeVar("T")
R = TypeVar("R")

CAPACITY_PENDING = frozenset({CapacityLabel.WAITING})
CAPACITY_TARGET = frozenset({CapacityLabel.READY})
DRAIN_PENDING = frozenset({DrainLabel.STILL_ATTACHED})
DRAIN_TARGET = frozenset({DrainLabel.DRAINED})
DELETE_PENDING = frozenset({DeleteLabel.BLOCKED})
DELETE_TARGET = frozenset({DeleteLabel.DELETED})


# ---------------------------------------------------------------------------
# Capacity
# ---------------------------------------------------------------------------


def capacity_refresh(client: AutoScalingClient, group_id: str) -> Refresh[CapacitySnapshot]:
    """Refresh step that reports whether a group has enough healthy members.

    A group that fails to load, or no longer exists, is a refresh error:
    the recipe does not distinguish "group deleted" from "API unreachable".
    """

    def refresh(_cancel: CancelToken) -> PollOutcome[CapacitySnapshot]:
        group = client.get_group(group_id)
        if group is None:
            msg = f"Scaling group {group_id!r} not found"
            raise ResourceNotFoundError(msg, resource_id=group_id)

        members = client.list_group_members(group_id)
        healthy = sum(1 for member in members if member.is_in_service)
        snapshot = CapacitySnapshot(
            group=group,
            healthy_count=healthy,
            required_count=group.required_capacity,
        )
        label = CapacityLabel.READY if snapshot.is_satisfied else CapacityLabel.WAITING
        return PollOutcome(snapshot=snapshot, label=label)

    return Refresh.observe(refresh, description="scaling group capacity")


def wait_for_capacity(
    client: AutoScalingClient,
    group_id: str,
    timing: PollTiming,
    *,
    cancel: CancelToken | None = None,
    clock: Clock = time.monotonic,
    observer: Observer | None = None,
) -> AutoScalingGroup:
    """Block until *group_id* has at least its required healthy capacity.

    Returns the group descriptor from the converging refresh.
    """
    snapshot = wait_for(
        timing.spec(CAPACITY_PENDING, CAPACITY_TARGET),
        capacity_refresh(client, group_id),
        cancel=cancel,
        clock=clock,
        observer=observer,
        resource_id=group_id,
    )
    return snapshot.group


# ---------------------------------------------------------------------------
# Drain
# ---------------------------------------------------------------------------


def drain_refresh(
    list_dependents: Callable[[], Sequence[T] | None],
    description: str = "dependent list",
) -> Refresh[tuple[T, ...]]:
    """Refresh step that reports whether a dependent list is empty.

    ``list_dependents`` returning ``None`` means the parent is gone,
    which leaves nothing attached.
    """

    def refresh(_cancel: CancelToken) -> PollOutcome[tuple[T, ...]]:
        dependents = tuple(list_dependents() or ())
        label = DrainLabel.STILL_ATTACHED if dependents else DrainLabel.DRAINED
        return PollOutcome(snapshot=dependents, label=label)

    return Refresh.observe(refresh, description=description)


def group_members_drain_refresh(
    client: AutoScalingClient, group_id: str
) -> Refresh[tuple[GroupMember, ...]]:
    """Drain step over a scaling group's attached server instances.

    Members are read from the group descriptor, one call per refresh.
    A group that is gone (``None`` or ``ResourceNotFoundError``) is drained.
    """

    def list_members() -> Sequence[GroupMember] | None:
        try:
            group = client.get_group(group_id)
        except ResourceNotFoundError:
            group = None
        if group is None:
            logger.info("Drain parent missing, treating as drained | group=%s", group_id)
            return None
        return group.members

    return drain_refresh(list_members, description="scaling group members")


def wait_for_drain(
    refresh: Refresh[tuple[T, ...]],
    timing: PollTiming,
    *,
    cancel: CancelToken | None = None,
    clock: Clock = time.monotonic,
    observer: Observer | None = None,
    resource_id: str = "",
) -> tuple[T, ...]:
    """Block until the dependent list observed by *refresh* is empty."""
    return wait_for(
        timing.spec(DRAIN_PENDING, DRAIN_TARGET),
        refresh,
        cancel=cancel,
        clock=clock,
        observer=observer,
        resource_id=resource_id,
    )


# ---------------------------------------------------------------------------
# Delete until accepted
# ---------------------------------------------------------------------------


def delete_until_accepted_refresh(
    delete: Callable[[], R],
    policy: ErrorPolicy,
    description: str = "resource deletion",
    resource_id: str = "",
) -> Refresh[R | None]:
    """Refresh step that re-issues *delete* on every call.

    - Success → ``DELETED``.
    - "Not found" → ``DELETED`` (an earlier attempt already removed it).
    - Failure classified ``RETRY_AS_PENDING`` → ``BLOCKED``; the error is
      swallowed for this attempt.
    - Any other failure propagates and aborts the wait.

    *delete* must be idempotent: cancellation can land after a delete was
    issued but before its outcome was observed.
    """

    def refresh(_cancel: CancelToken) -> PollOutcome[R | None]:
        try:
            response = delete()
        except Exception as exc:
            if policy.is_not_found(exc):
                logger.info(
                    "Delete target already gone | resource=%s | code=%s",
                    resource_id,
                    error_code(exc),
                )
                return PollOutcome(snapshot=None, label=DeleteLabel.DELETED)
            if policy.classify(exc) is Disposition.RETRY_AS_PENDING:
                logger.warning(
                    "Delete rejected, retrying as pending | resource=%s | code=%s | error=%s",
                    resource_id,
                    error_code(exc),
                    exc,
                )
                return PollOutcome(snapshot=None, label=DeleteLabel.BLOCKED)
            raise
        return PollOutcome(snapshot=response, label=DeleteLabel.DELETED)

    return Refresh.act(refresh, description=description)


def wait_for_deletion(
    client: AutoScalingClient,
    group_id: str,
    timing: PollTiming,
    policy: ErrorPolicy,
    *,
    cancel: CancelToken | None = None,
    clock: Clock = time.monotonic,
    observer: Observer | None = None,
) -> object:
    """Retry deleting *group_id* until the control plane accepts it."""
    return wait_for(
        timing.spec(DELETE_PENDING, DELETE_TARGET),
        delete_until_accepted_refresh(
            lambda: client.delete_group(group_id),
            policy,
            description="scaling group deletion",
            resource_id=group_id,
        ),
        cancel=cancel,
        clock=clock,
        observer=observer,
        resource_id=group_id,
    )
