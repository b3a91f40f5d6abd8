"""Demo fleet factory: vehicles, drivers and city routes for headless runs."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from fleetsim.config.schema import VehicleSpecs
from fleetsim.fleet.vehicle_profile import classify_vehicle, create_vehicle_specs

RELIABILITY_GRADES = ["A", "B", "C"]
RELIABILITY_PROBS = [0.3, 0.5, 0.2]

CAPACITY_RANGE = (3.5, 40.0)        # tonnes
PRICE_PER_TONNE = (1_800.0, 3_200.0)
MAX_FUEL_BY_CLASS = {"light": 80.0, "medium": 300.0, "heavy": 600.0}

CITIES = [
    "Berlin", "Hamburg", "Munich", "Cologne", "Frankfurt",
    "Stuttgart", "Leipzig", "Dresden", "Hanover", "Nuremberg",
]
ROUTE_DISTANCE_RANGE = (80.0, 650.0)  # km


@dataclass
class DemoFleet:
    vehicles: List[VehicleSpecs]
    drivers: Dict[str, str]                                  # driver_id -> name
    crews: Dict[str, Tuple[str, Optional[str]]]             # vehicle_id -> (primary, co-driver)
    seed: int


def create_demo_fleet(n_vehicles: int = 10, seed: int = 42) -> DemoFleet:
    """Create ``n_vehicles`` vehicles with one or two drivers each.

    Roughly a third of the vehicles get a co-driver, so dual-driver handoffs
    show up in longer runs.
    """
    rng = np.random.default_rng(seed)
    vehicles = []
    drivers: Dict[str, str] = {}
    crews: Dict[str, Tuple[str, Optional[str]]] = {}

    for i in range(1, n_vehicles + 1):
        capacity = float(rng.uniform(*CAPACITY_RANGE))
        vehicle_class = classify_vehicle(capacity)
        vehicles.append(create_vehicle_specs(
            vehicle_id=f"V{i:03d}",
            capacity_tonnes=capacity,
            rng=np.random.default_rng(seed + i),
            max_fuel=MAX_FUEL_BY_CLASS[vehicle_class],
            reliability=str(rng.choice(RELIABILITY_GRADES, p=RELIABILITY_PROBS)),
            durability=int(rng.integers(1, 11)),
            maintenance_group=int(rng.integers(1, 4)),
            price=round(capacity * float(rng.uniform(*PRICE_PER_TONNE)), -2),
        ))

        primary = f"D{i:03d}"
        co_driver = None
        drivers[primary] = f"Driver {i}"
        if rng.random() < 1 / 3:
            co_driver = f"D{i:03d}B"
            drivers[co_driver] = f"Driver {i}B"
        crews[f"V{i:03d}"] = (primary, co_driver)

    return DemoFleet(vehicles=vehicles, drivers=drivers, crews=crews, seed=seed)


def random_route(rng: np.random.Generator, origin: str) -> Tuple[str, float]:
    """Pick a destination different from ``origin`` and a route length."""
    choices = [c for c in CITIES if c != origin]
    destination = str(rng.choice(choices))
    distance = round(float(rng.uniform(*ROUTE_DISTANCE_RANGE)), 1)
    return destination, distance
