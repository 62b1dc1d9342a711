"""Control-plane collaborator interfaces.

Concrete clients (request signing, transport, payload translation) live
outside this package and implement ``AutoScalingClient``.
"""

from infra_convergence.clients.base import (
    AutoScalingClient,
    ControlPlaneError,
    ResourceNotFoundError,
)

__all__ = [
    "AutoScalingClient",
    "ControlPlaneError",
    "ResourceNotFoundError",
]
