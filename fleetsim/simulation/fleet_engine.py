"""Fleet registry: owns every vehicle and driver and advances them per tick.

The engine is constructed explicitly by the application and passed to the
clock and to callers. All mutation goes through the public methods below,
which serialize on a re-entrant lock, so a tick never interleaves with
start/stop/rest requests or with a snapshot. Events raised under the lock are
published once it is released, so subscribers run on the ticking thread
without holding it and may call back into the engine.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from fleetsim.config.constants import (
    DEFAULT_LOCATION,
    DEFAULT_START_FUEL,
    EVENT_DRIVER_REST,
    EVENT_INCIDENT,
    EVENT_LIVE_UPDATE,
    EVENT_LOCATION_UPDATE,
    EVENT_MAINTENANCE,
    EVENT_ROUTE_COMPLETED,
    INCIDENT_DAMAGE_DIVISOR,
    MAX_CONDITION,
    SNAPSHOT_VERSION,
)
from fleetsim.config.schema import (
    MODE_RESTING_FOR_HANDOFF,
    DriverRuntimeState,
    EngineSettings,
    MaintenanceEstimate,
    TransitionResult,
    VehicleRuntimeState,
    VehicleSpecs,
)
from fleetsim.events.event_bus import EventBus
from fleetsim.faults.incident_model import IncidentEvaluator
from fleetsim.faults.maintenance import MaintenanceEstimator
from fleetsim.faults.rounding import round_half_up
from fleetsim.simulation.driver_condition import DriverConditionModel
from fleetsim.simulation.driving_state import DrivingStateMachine
from fleetsim.simulation.hours_of_service import (
    REASON_UNKNOWN_DRIVER,
    HoursOfServiceTracker,
)

logger = logging.getLogger(__name__)

REASON_UNKNOWN_VEHICLE = "unknown vehicle"
REASON_ROUTE_ACTIVE = "vehicle has an active route"
REASON_BAD_SNAPSHOT = "unsupported snapshot"


class FleetEngine:
    """Vehicle/driver registry and per-tick simulation step."""

    def __init__(
        self,
        bus: Optional[EventBus] = None,
        rng: Optional[np.random.Generator] = None,
        settings: Optional[EngineSettings] = None,
        time_source: Callable[[], float] = time.time,
        incident_evaluator: Optional[IncidentEvaluator] = None,
        maintenance_estimator: Optional[MaintenanceEstimator] = None,
    ):
        self.settings = settings or EngineSettings()
        self.bus = bus if bus is not None else EventBus()
        rng = rng if rng is not None else np.random.default_rng()
        self.incidents = incident_evaluator or IncidentEvaluator(
            rng, max_driving_hours=self.settings.max_driving_hours,
        )
        self.maintenance = maintenance_estimator or MaintenanceEstimator(rng)
        self.hos = HoursOfServiceTracker(
            max_driving_hours=self.settings.max_driving_hours,
            min_rest_sec=self.settings.min_rest_sec,
            daily_reset_sec=self.settings.daily_reset_sec,
        )
        self.driver_condition = DriverConditionModel()
        self._time = time_source
        self._lock = threading.RLock()
        self._vehicles: Dict[str, DrivingStateMachine] = {}
        self._pending: List[Tuple[str, Dict[str, Any]]] = []

    # -- Registration -------------------------------------------------------

    def register_vehicle(
        self,
        vehicle_id: str,
        specs: VehicleSpecs,
        fuel: Optional[float] = None,
        condition: float = MAX_CONDITION,
        odometer: float = 0.0,
        location: str = DEFAULT_LOCATION,
    ) -> TransitionResult:
        """Create (or re-initialize an idle) vehicle."""
        if specs.vehicle_id != vehicle_id:
            specs = dataclasses.replace(specs, vehicle_id=vehicle_id)
        if fuel is None:
            fuel = DEFAULT_START_FUEL

        with self._lock:
            existing = self._vehicles.get(vehicle_id)
            if existing is not None and existing.state.route is not None:
                return TransitionResult.failure(REASON_ROUTE_ACTIVE)

            state = VehicleRuntimeState(
                fuel=max(0.0, min(specs.max_fuel, fuel)),
                condition=max(0.0, min(MAX_CONDITION, condition)),
                odometer=max(0.0, odometer),
                location=location,
                last_update=self._time(),
            )
            self._vehicles[vehicle_id] = self._machine(specs, state)
        logger.debug(f"Registered vehicle {vehicle_id} ({specs.vehicle_class})")
        return TransitionResult.success()

    def register_driver(
        self, driver_id: str, name: str = "Driver", fit: Optional[float] = None,
    ) -> DriverRuntimeState:
        with self._lock:
            driver = self.hos.ensure(driver_id, name=name)
            driver.name = name
            if fit is not None:
                driver.fit = max(0.0, min(100.0, fit))
            return copy.deepcopy(driver)

    def set_driver_fitness(self, driver_id: str, fit: float) -> TransitionResult:
        """Fitness hint from the staff subsystem."""
        with self._lock:
            driver = self.hos.get(driver_id)
            if driver is None:
                return TransitionResult.failure(REASON_UNKNOWN_DRIVER)
            driver.fit = max(0.0, min(100.0, fit))
        return TransitionResult.success()

    # -- Driving ------------------------------------------------------------

    def start_driving(
        self,
        vehicle_id: str,
        primary_driver_id: str,
        co_driver_id: Optional[str],
        origin: str,
        destination: str,
        distance_km: float,
    ) -> TransitionResult:
        with self._lock:
            machine = self._vehicles.get(vehicle_id)
            if machine is None:
                result = TransitionResult.failure(REASON_UNKNOWN_VEHICLE)
            else:
                # Unseen drivers are only registered once the start succeeds
                primary = self.hos.get(primary_driver_id) or DriverRuntimeState(primary_driver_id)
                co_driver = None
                if co_driver_id:
                    co_driver = self.hos.get(co_driver_id) or DriverRuntimeState(co_driver_id)
                result = machine.start(
                    primary, co_driver, origin, destination, distance_km, self._time(),
                )
                if result:
                    for driver in (primary, co_driver):
                        if driver is not None and self.hos.get(driver.driver_id) is None:
                            self.hos.add(driver)

        if result:
            logger.info(
                f"Vehicle {vehicle_id} started {origin} -> {destination} "
                f"({distance_km:.1f} km, driver {primary_driver_id})"
            )
        else:
            logger.info(f"Cannot start vehicle {vehicle_id}: {result.reason}")
        return result

    def stop_driving(self, vehicle_id: str) -> TransitionResult:
        with self._lock:
            machine = self._vehicles.get(vehicle_id)
            if machine is None:
                return TransitionResult.failure(REASON_UNKNOWN_VEHICLE)
            if machine.stop():
                logger.info(f"Vehicle {vehicle_id} stopped")
        return TransitionResult.success()

    def request_rest(self, driver_id: str) -> TransitionResult:
        with self._lock:
            now = self._time()
            result = self.hos.request_rest(driver_id, now)
            if result:
                action = self._after_rest_started(driver_id, now)
                self._publish_rest(driver_id, forced=False, action=action, now=now)
        self._flush()
        return result

    def end_rest(self, driver_id: str) -> TransitionResult:
        with self._lock:
            now = self._time()
            result = self.hos.end_rest(driver_id, now)
            if result:
                driver = self.hos.get(driver_id)
                machine = self._vehicles.get(driver.vehicle_id) if driver.vehicle_id else None
                if machine is not None and machine.mode == MODE_RESTING_FOR_HANDOFF:
                    if machine.resume(driver_id, now):
                        logger.info(f"Vehicle {machine.vehicle_id} resumed with driver {driver_id}")
        return result

    # -- Maintenance --------------------------------------------------------

    def estimate_maintenance(self, vehicle_id: str) -> Optional[MaintenanceEstimate]:
        with self._lock:
            machine = self._vehicles.get(vehicle_id)
            if machine is None:
                return None
            return self.maintenance.estimate(machine.specs.price, machine.specs.maintenance_group)

    def apply_maintenance(self, vehicle_id: str) -> TransitionResult:
        """Service an idle vehicle, restoring condition."""
        with self._lock:
            machine = self._vehicles.get(vehicle_id)
            if machine is None:
                return TransitionResult.failure(REASON_UNKNOWN_VEHICLE)
            if machine.state.route is not None:
                return TransitionResult.failure(REASON_ROUTE_ACTIVE)

            specs = machine.specs
            estimate = self.maintenance.estimate(specs.price, specs.maintenance_group)
            before = machine.state.condition
            machine.state.condition = self.maintenance.apply(
                before, specs.maintenance_group, specs.durability,
            )
            self._emit(EVENT_MAINTENANCE, {
                "vehicle_id": vehicle_id,
                "cost": estimate.cost,
                "duration_days": estimate.duration_days,
                "group": estimate.group,
                "condition_before": before,
                "condition_after": machine.state.condition,
                "timestamp": self._time(),
            })
        self._flush()
        logger.info(
            f"Vehicle {vehicle_id} serviced: {before:.1f} -> {machine.state.condition:.1f} "
            f"(cost {estimate.cost}, {estimate.duration_days}d)"
        )
        return TransitionResult.success()

    # -- Queries ------------------------------------------------------------

    def get_vehicle_state(self, vehicle_id: str) -> Optional[VehicleRuntimeState]:
        with self._lock:
            machine = self._vehicles.get(vehicle_id)
            return copy.deepcopy(machine.state) if machine else None

    def get_vehicle_specs(self, vehicle_id: str) -> Optional[VehicleSpecs]:
        with self._lock:
            machine = self._vehicles.get(vehicle_id)
            return machine.specs if machine else None

    def get_driver_state(self, driver_id: str) -> Optional[DriverRuntimeState]:
        with self._lock:
            driver = self.hos.get(driver_id)
            return copy.deepcopy(driver) if driver else None

    def vehicle_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._vehicles)

    def driver_ids(self) -> List[str]:
        with self._lock:
            return sorted(d.driver_id for d in self.hos)

    def fuel_status(self, vehicle_id: str) -> Optional[Dict[str, float]]:
        with self._lock:
            machine = self._vehicles.get(vehicle_id)
            if machine is None:
                return None
            rate = machine.specs.fuel_consumption
            fuel = machine.state.fuel
            return {
                "current_fuel": fuel,
                "max_fuel": machine.specs.max_fuel,
                "consumption_rate": rate,
                "estimated_range_km": fuel / rate * 100.0 if rate > 0 else 0.0,
            }

    def engine_stats(self) -> Dict[str, int]:
        with self._lock:
            states = [m.state for m in self._vehicles.values()]
            drivers = list(self.hos)
            return {
                "total_vehicles": len(states),
                "driving_vehicles": sum(1 for s in states if s.driving),
                "paused_vehicles": sum(1 for s in states if s.mode == MODE_RESTING_FOR_HANDOFF),
                "total_drivers": len(drivers),
                "resting_drivers": sum(1 for d in drivers if d.resting),
            }

    # -- Tick ---------------------------------------------------------------

    def tick(self, now: Optional[float] = None) -> int:
        """Advance every driving vehicle to ``now``. Returns how many advanced."""
        if now is None:
            now = self._time()

        with self._lock:
            if self.hos.daily_reset(now):
                self._resume_paused(now)

            advanced = 0
            for vehicle_id in sorted(self._vehicles):
                machine = self._vehicles[vehicle_id]
                if not machine.is_driving:
                    continue
                try:
                    self._tick_vehicle(machine, now)
                    advanced += 1
                except Exception:
                    logger.exception(f"Vehicle {vehicle_id} skipped this tick")
        self._flush()
        return advanced

    def advance_driver_day(self) -> None:
        """Apply one driver-day of fitness change to every driver."""
        with self._lock:
            for driver in self.hos:
                self.driver_condition.apply_day(driver)

    def _tick_vehicle(self, machine: DrivingStateMachine, now: float) -> None:
        s = machine.state
        elapsed = max(0.0, now - s.last_update)
        s.last_update = now
        speed = s.current_speed
        distance = speed * elapsed / 3600.0
        odometer_before = s.odometer

        driver_id = s.primary_driver_id
        driver = self.hos.get(driver_id)

        step = machine.advance(distance, elapsed)

        rest_required = False
        if driver is not None:
            rest_required = self.hos.record_driving(driver.driver_id, elapsed / 3600.0)

        outcome = self.incidents.evaluate(
            machine.specs, s.condition, driver, step.distance_km, now,
        )
        condition_delta = step.condition_delta
        if outcome.triggered:
            condition_delta += machine.apply_damage(
                round_half_up(outcome.record.severity / INCIDENT_DAMAGE_DIVISOR)
            )

        route = step.route
        self._emit(EVENT_LIVE_UPDATE, {
            "vehicle_id": machine.vehicle_id,
            "distance_delta": step.distance_km,
            "condition_delta": condition_delta,
            "mileage_delta": s.odometer - odometer_before,
            "fuel_delta": step.fuel_delta,
            "current_speed": speed,
            "fuel": s.fuel,
            "condition": s.condition,
            "odometer": s.odometer,
            "route": dataclasses.asdict(route) if route is not None else None,
            "incident_probability": outcome.probability,
            "timestamp": now,
        })

        if outcome.triggered:
            logger.warning(
                f"Incident on {machine.vehicle_id}: {outcome.record.incident_type} "
                f"severity {outcome.record.severity} ({outcome.record.cause})"
            )
            self._emit(EVENT_INCIDENT, outcome.record.to_dict())

        if step.completed:
            self._emit(EVENT_LOCATION_UPDATE, {
                "vehicle_id": machine.vehicle_id,
                "location": s.location,
                "distance": route.distance_accumulated,
                "timestamp": now,
            })
            self._emit(EVENT_ROUTE_COMPLETED, {
                "vehicle_id": machine.vehicle_id,
                "route": dataclasses.asdict(route),
                "odometer": s.odometer,
                "timestamp": now,
            })
            logger.info(f"Vehicle {machine.vehicle_id} completed route to {s.location}")

        if rest_required:
            if self.hos.force_rest(driver.driver_id, now):
                action = self._after_rest_started(driver.driver_id, now)
                self._publish_rest(driver.driver_id, forced=True, action=action, now=now)

    # -- Rest handling ------------------------------------------------------

    def _after_rest_started(self, driver_id: str, now: float) -> Optional[str]:
        """React to a driver starting a rest while bound to a vehicle.

        Returns the action taken on the vehicle: "handoff", "paused",
        "stopped", or None if the vehicle was unaffected.
        """
        driver = self.hos.get(driver_id)
        machine = self._vehicles.get(driver.vehicle_id) if driver.vehicle_id else None
        if machine is None or not machine.is_driving:
            return None
        if machine.state.primary_driver_id != driver_id:
            return None

        if machine.hand_off():
            logger.info(
                f"Vehicle {machine.vehicle_id}: co-driver "
                f"{machine.state.primary_driver_id} took over from {driver_id}"
            )
            return "handoff"
        if machine.state.co_driver_id is not None:
            machine.pause_for_handoff()
            logger.info(f"Vehicle {machine.vehicle_id} paused, waiting for a rested driver")
            return "paused"
        machine.stop()
        logger.info(f"Vehicle {machine.vehicle_id} stopped, driver {driver_id} resting")
        return "stopped"

    def _publish_rest(self, driver_id: str, forced: bool, action: Optional[str], now: float) -> None:
        driver = self.hos.get(driver_id)
        self._emit(EVENT_DRIVER_REST, {
            "driver_id": driver_id,
            "vehicle_id": driver.vehicle_id,
            "hours_driven_today": driver.hours_driven_today,
            "forced": forced,
            "action": action,
            "timestamp": now,
        })

    def _emit(self, event_type: str, data: Dict[str, Any]) -> None:
        """Queue an event while the lock is held. Sent by ``_flush``."""
        self._pending.append((event_type, data))

    def _flush(self) -> None:
        """Publish queued events with the engine lock released."""
        with self._lock:
            pending, self._pending = self._pending, []
        for event_type, data in pending:
            self.bus.publish(event_type, data)

    def _resume_paused(self, now: float) -> None:
        for machine in self._vehicles.values():
            if machine.mode == MODE_RESTING_FOR_HANDOFF:
                machine.resume(machine.state.primary_driver_id, now)

    # -- Snapshot -----------------------------------------------------------

    def snapshot(self, now: Optional[float] = None) -> Dict[str, Any]:
        """JSON-compatible copy of the whole registry."""
        if now is None:
            now = self._time()
        with self._lock:
            return {
                "version": SNAPSHOT_VERSION,
                "saved_at": now,
                "last_daily_reset": self.hos.last_daily_reset,
                "vehicles": {
                    vid: {
                        "specs": dataclasses.asdict(m.specs),
                        "runtime": m.state.to_dict(),
                    }
                    for vid, m in sorted(self._vehicles.items())
                },
                "drivers": {d.driver_id: d.to_dict() for d in self.hos},
            }

    def restore(self, snapshot: Dict[str, Any]) -> TransitionResult:
        """Replace the registry with a snapshot's contents."""
        if not snapshot or snapshot.get("version") != SNAPSHOT_VERSION:
            return TransitionResult.failure(REASON_BAD_SNAPSHOT)

        with self._lock:
            self.hos.clear()
            for data in snapshot.get("drivers", {}).values():
                self.hos.add(DriverRuntimeState.from_dict(data))
            self.hos.last_daily_reset = snapshot.get("last_daily_reset")

            self._vehicles = {}
            for vid, entry in snapshot.get("vehicles", {}).items():
                specs = VehicleSpecs.from_dict(entry["specs"])
                state = VehicleRuntimeState.from_dict(entry["runtime"])
                self._vehicles[vid] = self._machine(specs, state)

        logger.info(
            f"Restored {len(self._vehicles)} vehicles and {len(self.hos)} drivers "
            f"(saved_at={snapshot.get('saved_at')})"
        )
        return TransitionResult.success()

    def _machine(self, specs: VehicleSpecs, state: VehicleRuntimeState) -> DrivingStateMachine:
        return DrivingStateMachine(
            specs,
            state,
            self.hos.get,
            max_driving_hours=self.settings.max_driving_hours,
            degradation_per_km=self.settings.degradation_per_km,
        )
