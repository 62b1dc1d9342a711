"""AutoScalingClient abstract base class.

Defines the contract the convergence recipes use to observe and mutate a
scaling group.  The recipes interact exclusively with this interface;
request signing, transport and payload translation live in concrete
implementations outside this package.

Lifecycle of a group as seen through the client:
    1. ``update_group(...)``        — change sizes (scale out, or to zero).
    2. ``get_group(group_id)``      — read the descriptor (``None`` when gone).
    3. ``list_group_members(...)``  — read attached server instances.
    4. ``delete_group(group_id)``   — request deletion; rejected while
       dependents still reference the group.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from infra_convergence.core.exceptions import ConvergenceError

if TYPE_CHECKING:
    from infra_convergence.models.scaling import AutoScalingGroup, GroupMember


class AutoScalingClient(abc.ABC):
    """Abstract base class for scaling-group control-plane clients.

    Every method may raise ``ControlPlaneError`` (or let an
    ``httpx.HTTPStatusError`` escape); the error policy knows how to
    extract a return code from either.
    """

    @abc.abstractmethod
    def get_group(self, group_id: str) -> AutoScalingGroup | None:
        """Return the group descriptor, or ``None`` if it does not exist.

        The descriptor's ``members`` lists the instances attached at the
        time of the read; the drain recipe relies on it.
        """

    @abc.abstractmethod
    def list_group_members(self, group_id: str) -> list[GroupMember]:
        """Return the server instances currently attached to the group."""

    @abc.abstractmethod
    def update_group(
        self,
        group_id: str,
        *,
        desired_capacity: int | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
    ) -> AutoScalingGroup | None:
        """Change the group's sizes.  ``None`` leaves a size unchanged."""

    @abc.abstractmethod
    def delete_group(self, group_id: str) -> object:
        """Request deletion of the group.

        Implementations may return the raw response; the delete recipe
        only uses it as a diagnostic snapshot.
        """


# ---------------------------------------------------------------------------
# Control-plane exceptions
# ---------------------------------------------------------------------------


class ControlPlaneError(ConvergenceError):
    """Error response from the control-plane API.

    Attributes:
        code: Service return code (e.g. the "in use" code for a rejected delete).
        status: HTTP status of the response, ``0`` if unknown.
    """

    default_stage = "control_plane"
    default_code = "CONTROL_PLANE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        status: int = 0,
        retryable: bool = False,
        resource_id: str = "",
    ) -> None:
        self.status = status
        super().__init__(message, code=code, retryable=retryable, resource_id=resource_id)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ResourceNotFoundError(ControlPlaneError):
    """The addressed resource does not exist (or no longer exists)."""

    default_code = "RESOURCE_NOT_FOUND"
