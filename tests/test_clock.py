"""Tests for the simulation clock: tick cadence, snapshots, background loop."""

import logging
import time

import pytest

from fleetsim.config.constants import EVENT_SNAPSHOT
from fleetsim.config.schema import EngineSettings
from fleetsim.events.event_bus import EventBus
from fleetsim.simulation.clock import SimulationClock
from fleetsim.simulation.fleet_engine import FleetEngine
from fleetsim.storage.snapshot_store import MemorySnapshotStore, SnapshotStore

from conftest import FakeRandom


class BrokenStore(SnapshotStore):
    def __init__(self):
        self.attempts = 0

    def save(self, snapshot):
        self.attempts += 1
        raise OSError("disk full")

    def load(self):
        return None


@pytest.fixture
def store():
    return MemorySnapshotStore()


@pytest.fixture
def clock(engine, store, sim_time):
    return SimulationClock(engine, store=store, time_source=sim_time)


def step(clock, sim_time, seconds, n):
    for _ in range(n):
        sim_time.advance(seconds)
        clock.run_once(sim_time.now)


class TestRunOnce:
    def test_defaults_from_settings(self, clock):
        assert clock.tick_interval == 2.0
        assert clock.snapshot_interval == 60.0
        assert clock.driver_day_interval == 60.0

    def test_ticks_engine(self, clock, engine, specs_a, sim_time):
        engine.register_vehicle("V1", specs_a)
        engine.start_driving("V1", "D1", None, "Hub", "Berlin", 100.0)
        step(clock, sim_time, 2.0, 45)
        assert clock.ticks == 45
        assert engine.get_vehicle_state("V1").odometer == pytest.approx(2.0)

    def test_snapshot_cadence(self, clock, store, sim_time):
        clock.run_once(sim_time.now)
        assert store.saves == 0

        step(clock, sim_time, 2.0, 29)
        assert store.saves == 0
        step(clock, sim_time, 2.0, 1)
        assert store.saves == 1
        step(clock, sim_time, 2.0, 60)
        assert store.saves == 3

    def test_snapshot_published(self, clock, sim_time, events):
        clock.run_once(sim_time.now)
        step(clock, sim_time, 60.0, 1)
        snapshots = [e for e in events if e.type == EVENT_SNAPSHOT]
        assert len(snapshots) == 1
        assert snapshots[0].data["saved_at"] == sim_time.now

    def test_store_failure_keeps_running(self, engine, sim_time, caplog):
        broken = BrokenStore()
        clock = SimulationClock(engine, store=broken, time_source=sim_time)
        clock.run_once(sim_time.now)

        with caplog.at_level(logging.ERROR):
            step(clock, sim_time, 60.0, 3)

        assert broken.attempts == 3
        assert clock.ticks == 4
        assert "Snapshot store failed" in caplog.text

    def test_persist_without_store(self, engine, sim_time):
        clock = SimulationClock(engine, time_source=sim_time)
        assert clock.persist()

    def test_driver_day_cadence(self, clock, engine, sim_time):
        engine.register_driver("D1", fit=50.0)
        clock.run_once(sim_time.now)
        step(clock, sim_time, 30.0, 1)
        assert engine.get_driver_state("D1").fit == 50.0
        step(clock, sim_time, 30.0, 1)
        assert engine.get_driver_state("D1").fit == 51.5

    def test_snapshot_restores_into_fresh_engine(self, clock, engine, store, specs_a, sim_time):
        engine.register_vehicle("V1", specs_a)
        engine.start_driving("V1", "D1", None, "Hub", "Berlin", 100.0)
        clock.run_once(sim_time.now)
        step(clock, sim_time, 60.0, 1)

        fresh = FleetEngine(bus=EventBus(), rng=FakeRandom(0.999999), time_source=sim_time)
        assert fresh.restore(store.load())
        assert fresh.get_vehicle_state("V1").odometer == pytest.approx(
            engine.get_vehicle_state("V1").odometer
        )


class TestBackgroundLoop:
    def test_start_and_stop(self, specs_a):
        bus = EventBus()
        settings = EngineSettings(tick_interval=0.01, snapshot_interval=0.05)
        engine = FleetEngine(bus=bus, rng=FakeRandom(0.999999), settings=settings)
        engine.register_vehicle("V1", specs_a)
        engine.start_driving("V1", "D1", None, "Hub", "Berlin", 100.0)
        store = MemorySnapshotStore()
        clock = SimulationClock(engine, store=store)

        clock.start()
        assert clock.running
        time.sleep(0.2)
        clock.stop()

        assert not clock.running
        assert clock.ticks > 1
        assert store.saves >= 1
        assert store.load()["vehicles"]["V1"]["runtime"]["odometer"] > 0
        assert bus.closed

    def test_stop_without_start(self, clock, engine, store, sim_time):
        clock.run_once(sim_time.now)
        clock.stop()
        assert engine.bus.closed
        assert store.saves == 1
        assert store.load()["saved_at"] == sim_time.now

    def test_second_stop_is_noop(self, clock, store):
        clock.stop()
        clock.stop()
        assert store.saves == 1
