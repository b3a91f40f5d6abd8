"""Daily driver fitness progression.

Fitness drops while a driver is bound to a vehicle and recovers while
unassigned. Drivers below ``UNFIT_THRESHOLD`` count as unfit for the
incident model.
"""

from fleetsim.config.constants import (
    FIT_DECAY_ASSIGNED,
    FIT_RECOVERY_IDLE,
    UNFIT_THRESHOLD,
)
from fleetsim.config.schema import DriverRuntimeState


def is_fit(driver: DriverRuntimeState) -> bool:
    return driver.fit >= UNFIT_THRESHOLD


class DriverConditionModel:
    def __init__(
        self,
        decay_assigned: float = FIT_DECAY_ASSIGNED,
        recovery_idle: float = FIT_RECOVERY_IDLE,
    ):
        self.decay_assigned = decay_assigned
        self.recovery_idle = recovery_idle

    def apply_day(self, driver: DriverRuntimeState) -> float:
        """Advance one driver-day. Returns the new fitness (0-100)."""
        if driver.vehicle_id is not None:
            fit = driver.fit - self.decay_assigned
        else:
            fit = driver.fit + self.recovery_idle
        driver.fit = round(max(0.0, min(100.0, fit)), 2)
        return driver.fit
