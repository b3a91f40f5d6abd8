"""Accelerated headless run over a demo fleet.

Simulated time replaces the wall clock: the engine reads ``SimulatedTime``
and the clock is stepped with ``run_once`` as fast as the CPU allows.
Between steps idle vehicles are dispatched on random routes, rested
drivers are brought back and worn vehicles are serviced.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import numpy as np

from fleetsim.config.constants import DAILY_RESET_SEC, DEFAULT_START_FUEL, EVENT_ROUTE_COMPLETED
from fleetsim.config.schema import MODE_RESTING_FOR_HANDOFF, EngineSettings
from fleetsim.events.event_bus import EventBus
from fleetsim.fleet.fleet_factory import DemoFleet, random_route
from fleetsim.simulation.clock import SimulationClock
from fleetsim.simulation.fleet_engine import FleetEngine
from fleetsim.storage.incident_log import IncidentLog
from fleetsim.storage.snapshot_store import SnapshotStore
from fleetsim.validation.range_checks import ValidationReport, check_snapshot

logger = logging.getLogger(__name__)

START_TIMESTAMP = datetime(2025, 1, 1, tzinfo=timezone.utc).timestamp()
SERVICE_CONDITION = 40.0    # service vehicles below this condition before dispatch


class SimulatedTime:
    """Manually advanced time source."""

    def __init__(self, start: float = START_TIMESTAMP):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@dataclass
class RunSummary:
    ticks: int
    routes_started: int
    routes_completed: int
    incidents: int
    services: int
    validation: ValidationReport


class HeadlessRun:
    """Drives one FleetEngine over a demo fleet without a background thread."""

    def __init__(
        self,
        fleet: DemoFleet,
        store: Optional[SnapshotStore] = None,
        tick_interval: float = 60.0,
        snapshot_interval: float = 3600.0,
        start_time: float = START_TIMESTAMP,
    ):
        self.fleet = fleet
        self.time = SimulatedTime(start_time)
        self.rng = np.random.default_rng(fleet.seed)
        settings = EngineSettings(
            tick_interval=tick_interval,
            snapshot_interval=snapshot_interval,
            driver_day_interval=DAILY_RESET_SEC,
        )
        self.engine = FleetEngine(
            bus=EventBus(), rng=self.rng, settings=settings, time_source=self.time,
        )
        self.clock = SimulationClock(self.engine, store=store, time_source=self.time)
        self.incident_log = IncidentLog(self.engine.bus)

        self.routes_started = 0
        self.routes_completed = 0
        self.services = 0
        self.engine.bus.subscribe(self._on_route_completed, EVENT_ROUTE_COMPLETED)

    def _on_route_completed(self, event) -> None:
        self.routes_completed += 1

    # -- Setup --------------------------------------------------------------

    def register_fleet(self) -> None:
        for driver_id, name in self.fleet.drivers.items():
            self.engine.register_driver(driver_id, name=name)
        for specs in self.fleet.vehicles:
            self.engine.register_vehicle(
                specs.vehicle_id, specs, fuel=min(specs.max_fuel, DEFAULT_START_FUEL),
            )
        logger.info(
            f"Registered {len(self.fleet.vehicles)} vehicles, {len(self.fleet.drivers)} drivers"
        )

    def resume_from(self, snapshot: Dict) -> bool:
        """Restore engine state and continue from the snapshot's timestamp."""
        result = self.engine.restore(snapshot)
        if not result:
            logger.warning(f"Cannot resume: {result.reason}")
            return False
        self.time.now = float(snapshot["saved_at"])
        return True

    # -- Run ----------------------------------------------------------------

    def run(self, hours: float) -> RunSummary:
        end = self.time.now + hours * 3600.0
        step = self.clock.tick_interval

        self.clock.run_once(self.time.now)
        while self.time.now < end:
            self.dispatch()
            self.time.advance(step)
            self.clock.run_once(self.time.now)

        self.clock.stop()
        report = check_snapshot(self.engine.snapshot(self.time.now))

        return RunSummary(
            ticks=self.clock.ticks,
            routes_started=self.routes_started,
            routes_completed=self.routes_completed,
            incidents=len(self.incident_log),
            services=self.services,
            validation=report,
        )

    def write_incidents(self, output_dir: Path) -> Path:
        return self.incident_log.write(Path(output_dir) / "incidents.parquet")

    def dispatch(self) -> None:
        """Bring rested drivers back and put idle vehicles on the road."""
        engine = self.engine
        for vehicle_id in engine.vehicle_ids():
            crew = self.fleet.crews.get(vehicle_id)
            if crew is None:
                continue
            state = engine.get_vehicle_state(vehicle_id)

            for driver_id in crew:
                if driver_id is None:
                    continue
                driver = engine.get_driver_state(driver_id)
                if driver is None or not driver.resting:
                    continue
                started = driver.last_rest_start
                if started is not None and self.time.now - started >= engine.settings.min_rest_sec:
                    engine.end_rest(driver_id)

            if state.route is not None or state.mode == MODE_RESTING_FOR_HANDOFF:
                continue

            if state.condition < SERVICE_CONDITION:
                if engine.apply_maintenance(vehicle_id):
                    self.services += 1

            destination, distance = random_route(self.rng, state.location)
            primary, co_driver = crew
            if engine.start_driving(
                vehicle_id, primary, co_driver, state.location, destination, distance,
            ):
                self.routes_started += 1
