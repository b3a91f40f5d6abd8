"""Per-vehicle driving state machine.

    idle --start--> driving --route done / stop--> idle
                      |  ^
       pause_for_handoff  resume
                      v  |
              resting-for-handoff --stop--> idle

``resting-for-handoff`` only occurs with two drivers bound: the active
driver is resting and the co-driver cannot take over yet. The route is
kept but nothing advances.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from fleetsim.config.constants import (
    CONDITION_DEGRADATION_PER_KM,
    MAX_CONDITION,
    MAX_DRIVING_HOURS,
    ROUTE_COMPLETION_EPSILON_KM,
)
from fleetsim.config.schema import (
    MODE_DRIVING,
    MODE_IDLE,
    MODE_RESTING_FOR_HANDOFF,
    DriverRuntimeState,
    Route,
    TransitionResult,
    VehicleRuntimeState,
    VehicleSpecs,
)

logger = logging.getLogger(__name__)

REASON_ALREADY_DRIVING = "vehicle already driving"
REASON_INVALID_DISTANCE = "route distance must be positive"
REASON_SAME_DRIVER = "primary and co-driver must differ"
REASON_DRIVER_RESTING = "driver resting"
REASON_DRIVER_OVER_HOURS = "driver over hours"
REASON_DRIVER_BUSY = "driver assigned to another vehicle"
REASON_NOT_PAUSED = "vehicle not waiting for handoff"

DriverLookup = Callable[[Optional[str]], Optional[DriverRuntimeState]]


@dataclass
class AdvanceResult:
    """Changes applied by one ``advance`` call."""

    distance_km: float
    condition_delta: float
    fuel_delta: float
    completed: bool = False
    route: Optional[Route] = None


class DrivingStateMachine:
    """Runtime state of one vehicle plus the transitions allowed on it."""

    def __init__(
        self,
        specs: VehicleSpecs,
        state: VehicleRuntimeState,
        lookup: DriverLookup,
        max_driving_hours: float = MAX_DRIVING_HOURS,
        degradation_per_km: float = CONDITION_DEGRADATION_PER_KM,
    ):
        self.specs = specs
        self.state = state
        self._lookup = lookup
        self.max_driving_hours = max_driving_hours
        self.degradation_per_km = degradation_per_km

    @property
    def vehicle_id(self) -> str:
        return self.specs.vehicle_id

    @property
    def mode(self) -> str:
        return self.state.mode

    @property
    def is_driving(self) -> bool:
        return self.state.driving

    # -- Transitions --------------------------------------------------------

    def check_driver(self, driver: DriverRuntimeState) -> Optional[str]:
        """Reason the driver cannot take this vehicle, or None."""
        if driver.resting:
            return REASON_DRIVER_RESTING
        if driver.hours_driven_today >= self.max_driving_hours:
            return REASON_DRIVER_OVER_HOURS
        if driver.vehicle_id is not None and driver.vehicle_id != self.vehicle_id:
            return REASON_DRIVER_BUSY
        return None

    def start(
        self,
        primary: DriverRuntimeState,
        co_driver: Optional[DriverRuntimeState],
        origin: str,
        destination: str,
        distance_km: float,
        now: float,
    ) -> TransitionResult:
        if self.state.route is not None:
            return TransitionResult.failure(REASON_ALREADY_DRIVING)
        if not math.isfinite(distance_km) or distance_km <= 0:
            return TransitionResult.failure(REASON_INVALID_DISTANCE)
        if co_driver is not None and co_driver.driver_id == primary.driver_id:
            return TransitionResult.failure(REASON_SAME_DRIVER)

        for driver in (primary, co_driver):
            if driver is None:
                continue
            reason = self.check_driver(driver)
            if reason is not None:
                return TransitionResult.failure(reason)

        s = self.state
        s.route = Route(
            origin=origin,
            destination=destination,
            distance_km=float(distance_km),
            start_time=now,
        )
        s.driving = True
        s.mode = MODE_DRIVING
        s.current_speed = self.specs.cruising_speed
        s.last_update = now
        s.primary_driver_id = primary.driver_id
        s.co_driver_id = co_driver.driver_id if co_driver is not None else None

        primary.vehicle_id = self.vehicle_id
        if co_driver is not None:
            co_driver.vehicle_id = self.vehicle_id
        return TransitionResult.success()

    def stop(self) -> bool:
        """Force idle. Returns False if the vehicle was already idle."""
        s = self.state
        if s.mode == MODE_IDLE and s.route is None and not s.driving:
            return False

        s.driving = False
        s.mode = MODE_IDLE
        s.current_speed = 0.0
        s.route = None
        for driver_id in (s.primary_driver_id, s.co_driver_id):
            driver = self._lookup(driver_id)
            if driver is not None and driver.vehicle_id == self.vehicle_id:
                driver.vehicle_id = None
        s.primary_driver_id = None
        s.co_driver_id = None
        return True

    def hand_off(self) -> bool:
        """Swap to the co-driver if they can drive. Returns True on swap."""
        s = self.state
        co = self._lookup(s.co_driver_id)
        if co is None or self.check_driver(co) is not None:
            return False
        s.primary_driver_id, s.co_driver_id = s.co_driver_id, s.primary_driver_id
        return True

    def pause_for_handoff(self) -> None:
        s = self.state
        s.driving = False
        s.mode = MODE_RESTING_FOR_HANDOFF
        s.current_speed = 0.0

    def resume(self, driver_id: str, now: float) -> TransitionResult:
        """Continue a paused route with ``driver_id`` behind the wheel."""
        s = self.state
        if s.mode != MODE_RESTING_FOR_HANDOFF or s.route is None:
            return TransitionResult.failure(REASON_NOT_PAUSED)
        driver = self._lookup(driver_id)
        if driver is None or driver_id not in (s.primary_driver_id, s.co_driver_id):
            return TransitionResult.failure(REASON_DRIVER_BUSY)
        reason = self.check_driver(driver)
        if reason is not None:
            return TransitionResult.failure(reason)

        if driver_id == s.co_driver_id:
            s.primary_driver_id, s.co_driver_id = s.co_driver_id, s.primary_driver_id
        s.driving = True
        s.mode = MODE_DRIVING
        s.current_speed = self.specs.cruising_speed
        s.last_update = now
        return TransitionResult.success()

    # -- Progression --------------------------------------------------------

    def advance(self, distance_delta: float, elapsed_seconds: float) -> AdvanceResult:
        """Apply wear, fuel burn and progress for ``distance_delta`` km.

        The last step of a route is clipped to the remaining distance. On
        arrival the vehicle returns to idle and drivers are released; the
        finished route is returned in the result.
        """
        s = self.state
        if not s.driving or s.route is None:
            return AdvanceResult(distance_km=0.0, condition_delta=0.0, fuel_delta=0.0)

        distance = min(max(0.0, distance_delta), s.route.remaining_km)

        prev_condition = s.condition
        prev_fuel = s.fuel
        s.odometer += distance
        s.condition = _clamp(s.condition - distance * self.degradation_per_km, 0.0, MAX_CONDITION)
        s.fuel = _clamp(
            s.fuel - distance / 100.0 * self.specs.fuel_consumption, 0.0, self.specs.max_fuel,
        )
        s.route.distance_accumulated += distance

        result = AdvanceResult(
            distance_km=distance,
            condition_delta=s.condition - prev_condition,
            fuel_delta=s.fuel - prev_fuel,
            route=s.route,
        )

        if s.route.distance_accumulated >= s.route.distance_km - ROUTE_COMPLETION_EPSILON_KM:
            s.location = s.route.destination
            logger.debug(
                f"Vehicle {self.vehicle_id} arrived at {s.location} "
                f"({s.route.distance_accumulated:.2f} km, {elapsed_seconds:.1f}s step)"
            )
            self.stop()
            result.completed = True
        return result

    def apply_damage(self, amount: float) -> float:
        """Reduce condition by ``amount``. Returns the applied change."""
        prev = self.state.condition
        self.state.condition = _clamp(prev - max(0.0, amount), 0.0, MAX_CONDITION)
        return self.state.condition - prev


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
