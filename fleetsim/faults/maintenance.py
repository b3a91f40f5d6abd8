"""Maintenance cost/duration estimates and condition restoration.

Group semantics:
    Group 1: baseline cost (2% of price), 1 day
    Group 2: ~1.6x cost, 1-2 days
    Group 3: 2x cost, 2-4 days
"""

from typing import Optional

import numpy as np

from fleetsim.config.constants import (
    DEFAULT_DURABILITY,
    DEFAULT_PRICE,
    MAINTENANCE_BASE_COST_FACTOR,
    MAINTENANCE_DURABILITY_SCALE,
    MAINTENANCE_GROUPS,
    MAINTENANCE_RESTORE_BASE,
    MAX_CONDITION,
)
from fleetsim.config.schema import MaintenanceEstimate
from fleetsim.faults.rounding import round_half_up


def _group_params(group: Optional[int]) -> tuple:
    """Resolve a maintenance group, falling back to group 1 for unknown values."""
    if group not in MAINTENANCE_GROUPS:
        group = 1
    return group, MAINTENANCE_GROUPS[group]


class MaintenanceEstimator:
    """Estimates maintenance jobs. The rng only drives cosmetic duration variance."""

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def estimate(self, price: Optional[float], group: Optional[int]) -> MaintenanceEstimate:
        if price is None:
            price = DEFAULT_PRICE
        group, params = _group_params(group)

        cost = round_half_up(price * MAINTENANCE_BASE_COST_FACTOR * params["cost_multiplier"])

        lo, hi = params["duration_days"]
        if lo == hi:
            duration = lo
        else:
            duration = int(self.rng.integers(lo, hi + 1))

        return MaintenanceEstimate(cost=int(cost), duration_days=duration, group=group)

    @staticmethod
    def restore_amount(group: Optional[int], durability: Optional[float]) -> int:
        """Condition points restored by one maintenance job."""
        if durability is None:
            durability = DEFAULT_DURABILITY
        _, params = _group_params(group)
        amount = round_half_up(
            MAINTENANCE_RESTORE_BASE
            * params["restore_multiplier"]
            * (durability / MAINTENANCE_DURABILITY_SCALE)
        )
        return int(min(MAX_CONDITION, amount))

    def apply(self, condition: float, group: Optional[int], durability: Optional[float]) -> float:
        """Return the restored condition, clamped to 100."""
        restored = condition + self.restore_amount(group, durability)
        return float(min(MAX_CONDITION, max(0.0, restored)))
