"""Scaling-group descriptors read from the control plane.

These are the snapshots the capacity and drain recipes observe.  They
are produced by an ``AutoScalingClient`` implementation; translation
from wire payloads happens there, not here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from infra_convergence.core.constants import (
    HEALTH_STATUS_HEALTHY,
    LIFECYCLE_STATE_IN_SERVICE,
)
from infra_convergence.models.polling import ModelValidationError


@dataclass(frozen=True, slots=True)
class GroupMember:
    """A server instance attached to a scaling group.

    Attributes:
        instance_id: Control-plane server instance number.
        health_status: Health indicator code (``"HLTHY"`` when healthy).
        lifecycle_state: Lifecycle indicator code (``"INSVC"`` when in service).
    """

    instance_id: str
    health_status: str = ""
    lifecycle_state: str = ""

    @property
    def is_in_service(self) -> bool:
        """Healthy and in service (codes compared case-insensitively)."""
        return (
            self.health_status.casefold() == HEALTH_STATUS_HEALTHY.casefold()
            and self.lifecycle_state.casefold() == LIFECYCLE_STATE_IN_SERVICE.casefold()
        )


@dataclass(frozen=True, slots=True)
class AutoScalingGroup:
    """Current descriptor of a scaling group.

    Attributes:
        group_id: Control-plane group number.
        name: Group name.
        min_size: Minimum number of members.
        max_size: Maximum number of members.
        desired_capacity: Desired number of members, ``None`` when unset.
        members: Instances attached to the group when it was read.
    """

    group_id: str
    name: str = ""
    min_size: int = 0
    max_size: int = 0
    desired_capacity: int | None = None
    members: tuple[GroupMember, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.group_id or not self.group_id.strip():
            raise ModelValidationError("AutoScalingGroup", "group_id", self.group_id, "must not be empty")
        for field_name in ("min_size", "max_size"):
            value = getattr(self, field_name)
            if value < 0:
                raise ModelValidationError("AutoScalingGroup", field_name, value, "must be >= 0")
        if self.desired_capacity is not None and self.desired_capacity < 0:
            raise ModelValidationError(
                "AutoScalingGroup", "desired_capacity", self.desired_capacity, "must be >= 0"
            )

    @property
    def required_capacity(self) -> int:
        """Desired capacity, falling back to ``min_size`` when unset."""
        if self.desired_capacity is not None:
            return self.desired_capacity
        return self.min_size


@dataclass(frozen=True, slots=True)
class CapacitySnapshot:
    """What one capacity refresh observed.

    Attributes:
        group: The group descriptor as read on this refresh.
        healthy_count: Members both healthy and in service.
        required_count: Capacity the group must reach.
    """

    group: AutoScalingGroup
    healthy_count: int
    required_count: int

    @property
    def is_satisfied(self) -> bool:
        return self.healthy_count >= self.required_count

    def to_summary(self) -> dict[str, Any]:
        """Return a JSON-serialisable summary for diagnostics."""
        return {
            "group_id": self.group.group_id,
            "healthy_count": self.healthy_count,
            "required_count": self.required_count,
            "desired_capacity": self.group.desired_capacity,
            "min_size": self.group.min_size,
        }
