"""Convergence poller, error policy and recipes.

- wait_for: Generic bounded-time polling loop
- ErrorPolicy: Classifies mutating-call failures as fatal or retry-as-pending
- Recipes: capacity, dependent-drain and delete-until-accepted waits
"""

from infra_convergence.polling.error_policy import Disposition, ErrorPolicy, error_code
from infra_convergence.polling.poller import wait_for
from infra_convergence.polling.recipes import (
    capacity_refresh,
    delete_until_accepted_refresh,
    drain_refresh,
    group_members_drain_refresh,
    wait_for_capacity,
    wait_for_deletion,
    wait_for_drain,
)

__all__ = [
    "Disposition",
    "ErrorPolicy",
    "capacity_refresh",
    "delete_until_accepted_refresh",
    "drain_refresh",
    "error_code",
    "group_members_drain_refresh",
    "wait_for",
    "wait_for_capacity",
    "wait_for_deletion",
    "wait_for_drain",
]
