"""Shared pytest fixtures for the convergence test suite."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable
from unittest.mock import MagicMock

import pytest

from infra_convergence.clients.base import AutoScalingClient
from infra_convergence.models.polling import PollOutcome
from infra_convergence.models.scaling import AutoScalingGroup, GroupMember

# ---------------------------------------------------------------------------
# Virtual time
# ---------------------------------------------------------------------------


class FakeClock:
    """Monotonic clock that only moves when a ``FakeCancel`` sleeps."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


class FakeCancel:
    """Cancellation token whose ``wait`` advances a ``FakeClock``.

    ``cancel_at`` sets the token once virtual time reaches that instant,
    interrupting any sleep that spans it.
    """

    def __init__(self, clock: FakeClock, cancel_at: float | None = None) -> None:
        self.clock = clock
        self.cancel_at = cancel_at
        self.sleeps: list[float] = []
        self._set = False

    def set(self) -> None:
        self._set = True

    def is_set(self) -> bool:
        return self._set

    def wait(self, timeout: float | None = None) -> bool:
        assert timeout is not None
        self.sleeps.append(timeout)
        if self._set:
            return True
        wake_at = self.clock.now + timeout
        if self.cancel_at is not None and self.cancel_at <= wake_at:
            self.clock.now = max(self.clock.now, self.cancel_at)
            self._set = True
            return True
        self.clock.now = wake_at
        return False


@pytest.fixture()
def clock() -> FakeClock:
    """Virtual clock starting at t=0."""
    return FakeClock()


@pytest.fixture()
def cancel(clock: FakeClock) -> FakeCancel:
    """Cancellation token bound to the virtual clock (never set by itself)."""
    return FakeCancel(clock)


# ---------------------------------------------------------------------------
# Refresh helpers
# ---------------------------------------------------------------------------


def _scripted_refresh(
    outcomes: Iterable[PollOutcome[object] | Exception],
    clock: FakeClock,
) -> tuple[Callable[[object], PollOutcome[object]], list[float]]:
    script = list(outcomes)
    calls: list[float] = []

    def refresh(_cancel: object) -> PollOutcome[object]:
        calls.append(clock.now)
        item = script[min(len(calls), len(script)) - 1]
        if isinstance(item, Exception):
            raise item
        return item

    return refresh, calls


# ---------------------------------------------------------------------------
# Scaling-group fixtures
# ---------------------------------------------------------------------------


def healthy_members(count: int, *, prefix: str = "srv") -> list[GroupMember]:
    """Return *count* healthy, in-service members."""
    return [
        GroupMember(instance_id=f"{prefix}-{i}", health_status="HLTHY", lifecycle_state="INSVC")
        for i in range(count)
    ]


@pytest.fixture()
def group() -> AutoScalingGroup:
    """Group with min_size=2 and no desired capacity."""
    return AutoScalingGroup(group_id="asg-100", name="web", min_size=2, max_size=4)


@pytest.fixture()
def client(group: AutoScalingGroup) -> MagicMock:
    """MagicMock implementing ``AutoScalingClient``; returns ``group`` by default."""
    mock = MagicMock(spec=AutoScalingClient)
    mock.get_group.return_value = group
    mock.list_group_members.return_value = []
    return mock


@pytest.fixture()
def make_cancel(clock: FakeClock) -> Callable[[float | None], FakeCancel]:
    """Factory for tokens that cancel themselves at a virtual instant."""

    def factory(cancel_at: float | None = None) -> FakeCancel:
        return FakeCancel(clock, cancel_at)

    return factory


@pytest.fixture()
def scripted(
    clock: FakeClock,
) -> Callable[..., tuple[Callable[[object], PollOutcome[object]], list[float]]]:
    """Factory for refresh callables that replay a script of outcomes.

    The factory returns ``(refresh, calls)`` where ``calls`` records the
    virtual time of every invocation.  The last outcome repeats once the
    script is exhausted; exceptions in the script are raised.
    """

    def factory(
        outcomes: Iterable[PollOutcome[object] | Exception],
    ) -> tuple[Callable[[object], PollOutcome[object]], list[float]]:
        return _scripted_refresh(outcomes, clock)

    return factory


@pytest.fixture()
def group_with(group: AutoScalingGroup) -> Callable[[int], AutoScalingGroup]:
    """Factory returning ``group`` with *count* healthy members attached."""

    def factory(count: int) -> AutoScalingGroup:
        return dataclasses.replace(group, members=tuple(healthy_members(count)))

    return factory


@pytest.fixture()
def members() -> Callable[..., list[GroupMember]]:
    """Factory returning *count* healthy, in-service members."""
    return healthy_members
