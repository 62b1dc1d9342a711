"""Named constants for the convergence engine.

Default timings mirror the control plane's documented behaviour: the
first observation is delayed briefly after a mutating call, and then
the resource is re-read on a fixed interval.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Timing defaults (seconds)
# ---------------------------------------------------------------------------

DEFAULT_INITIAL_DELAY_SECONDS: float = 2.0
DEFAULT_MIN_INTERVAL_SECONDS: float = 3.0

#: Budget for long-running operations such as deletion (90 minutes).
DEFAULT_TIMEOUT_SECONDS: float = 90 * 60.0

#: Budget for stopping a single server instance (5 minutes).
DEFAULT_STOP_TIMEOUT_SECONDS: float = 5 * 60.0

#: Draining a group waits for every member to stop, so it gets a multiple
#: of the single-instance stop budget.
DEFAULT_DRAIN_TIMEOUT_FACTOR: int = 3

#: Default ``wait_for_capacity_timeout``; ``"0"`` disables the wait.
DEFAULT_WAIT_FOR_CAPACITY_TIMEOUT = "10m"

# ---------------------------------------------------------------------------
# Scaling-group member indicators
# ---------------------------------------------------------------------------

HEALTH_STATUS_HEALTHY = "HLTHY"
LIFECYCLE_STATE_IN_SERVICE = "INSVC"

# ---------------------------------------------------------------------------
# Control-plane return codes
# ---------------------------------------------------------------------------

#: Delete rejected because a scaling policy or launch configuration still
#: references the group.  Benign while the dependents are being released.
RETURN_CODE_GROUP_IN_USE = "ASG_IN_USE_BY_POLICY_OR_LAUNCH_CONFIGURATION"

DEFAULT_RETRY_AS_PENDING_CODES: tuple[str, ...] = (RETURN_CODE_GROUP_IN_USE,)

HTTP_STATUS_NOT_FOUND = 404

# ---------------------------------------------------------------------------
# Environment variable names
# ---------------------------------------------------------------------------

ENV_INITIAL_DELAY = "CONVERGENCE_INITIAL_DELAY_S"
ENV_MIN_INTERVAL = "CONVERGENCE_MIN_INTERVAL_S"
ENV_DEFAULT_TIMEOUT = "CONVERGENCE_DEFAULT_TIMEOUT_S"
ENV_STOP_TIMEOUT = "CONVERGENCE_STOP_TIMEOUT_S"
ENV_DRAIN_TIMEOUT_FACTOR = "CONVERGENCE_DRAIN_TIMEOUT_FACTOR"
ENV_WAIT_FOR_CAPACITY_TIMEOUT = "CONVERGENCE_WAIT_FOR_CAPACITY_TIMEOUT"
ENV_RETRY_AS_PENDING_CODES = "CONVERGENCE_RETRY_AS_PENDING_CODES"
