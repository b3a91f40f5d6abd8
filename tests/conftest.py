"""Shared test fixtures."""

import numpy as np
import pytest

from fleetsim.config.schema import VehicleSpecs
from fleetsim.events.event_bus import EventBus
from fleetsim.generator.headless_run import SimulatedTime
from fleetsim.simulation.fleet_engine import FleetEngine

START = 1_000_000.0


class FakeRandom:
    """Stand-in for np.random.Generator returning scripted values.

    ``random()`` walks through ``values`` and then repeats the last one;
    ``integers(low, high)`` always returns ``low``.
    """

    def __init__(self, *values: float):
        self.values = list(values) or [0.5]
        self.calls = 0

    def random(self) -> float:
        idx = min(self.calls, len(self.values) - 1)
        self.calls += 1
        return self.values[idx]

    def integers(self, low, high=None):
        return low


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def quiet_random():
    """Rolls that never trigger an incident for any probability below 1."""
    return FakeRandom(0.999999)


@pytest.fixture
def specs_a():
    return VehicleSpecs(
        vehicle_id="V1",
        vehicle_class="heavy",
        fuel_consumption=30.0,
        cruising_speed=80.0,
        max_fuel=400.0,
        reliability="A",
        durability=9,
        maintenance_group=1,
        price=30_000.0,
    )


@pytest.fixture
def specs_c():
    return VehicleSpecs(
        vehicle_id="V2",
        vehicle_class="medium",
        fuel_consumption=28.0,
        cruising_speed=70.0,
        max_fuel=200.0,
        reliability="C",
        durability=2,
        maintenance_group=2,
        price=50_000.0,
    )


@pytest.fixture
def sim_time():
    return SimulatedTime(START)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def events(bus):
    """Every event published on ``bus``, in order."""
    received = []
    bus.subscribe(received.append)
    return received


@pytest.fixture
def engine(bus, sim_time, quiet_random):
    return FleetEngine(bus=bus, rng=quiet_random, time_source=sim_time)
