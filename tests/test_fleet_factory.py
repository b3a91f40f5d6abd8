"""Tests for vehicle profiles and the demo fleet."""

import numpy as np
import pytest

from fleetsim.config.constants import AVERAGE_SPEEDS, FUEL_CONSUMPTION_RANGES
from fleetsim.fleet.fleet_factory import CITIES, create_demo_fleet, random_route
from fleetsim.fleet.vehicle_profile import (
    classify_vehicle,
    create_vehicle_specs,
    sample_fuel_consumption,
)


class TestVehicleProfile:
    @pytest.mark.parametrize("capacity,expected", [
        (3.5, "light"),
        (10.0, "light"),
        (10.1, "medium"),
        (20.0, "medium"),
        (40.0, "heavy"),
    ])
    def test_classify(self, capacity, expected):
        assert classify_vehicle(capacity) == expected

    def test_fuel_consumption_in_class_range(self, rng):
        for vehicle_class, (lo, hi) in FUEL_CONSUMPTION_RANGES.items():
            for _ in range(20):
                assert lo <= sample_fuel_consumption(vehicle_class, rng) <= hi

    def test_unknown_class_uses_default(self, rng):
        assert sample_fuel_consumption("bus", rng) == 25.0

    def test_create_specs(self, rng):
        specs = create_vehicle_specs("V7", 15.0, rng, reliability="C", durability=3)
        assert specs.vehicle_id == "V7"
        assert specs.vehicle_class == "medium"
        assert specs.cruising_speed == AVERAGE_SPEEDS["medium"]
        assert specs.reliability == "C"
        assert specs.durability == 3

    def test_explicit_class_wins(self, rng):
        specs = create_vehicle_specs("V8", 35.0, rng, vehicle_class="light")
        assert specs.vehicle_class == "light"
        assert specs.cruising_speed == 75.0


class TestDemoFleet:
    def test_size_and_ids(self):
        fleet = create_demo_fleet(n_vehicles=12, seed=1)
        ids = [v.vehicle_id for v in fleet.vehicles]
        assert ids == [f"V{i:03d}" for i in range(1, 13)]
        assert set(fleet.crews) == set(ids)

    def test_crews_reference_known_drivers(self):
        fleet = create_demo_fleet(n_vehicles=30, seed=2)
        seen = set()
        for primary, co_driver in fleet.crews.values():
            assert primary in fleet.drivers
            assert primary not in seen
            seen.add(primary)
            if co_driver is not None:
                assert co_driver in fleet.drivers
                assert co_driver not in seen
                seen.add(co_driver)
        assert any(co is not None for _, co in fleet.crews.values())

    def test_specs_valid(self):
        fleet = create_demo_fleet(n_vehicles=20, seed=3)
        for specs in fleet.vehicles:
            assert specs.reliability in ("A", "B", "C")
            assert 1 <= specs.durability <= 10
            assert specs.maintenance_group in (1, 2, 3)
            assert specs.max_fuel > 0
            assert specs.price > 0

    def test_deterministic(self):
        assert create_demo_fleet(5, seed=9) == create_demo_fleet(5, seed=9)


class TestRandomRoute:
    def test_destination_differs_from_origin(self):
        rng = np.random.default_rng(0)
        for _ in range(50):
            destination, distance = random_route(rng, "Berlin")
            assert destination != "Berlin"
            assert destination in CITIES
            assert 80.0 <= distance <= 650.0
