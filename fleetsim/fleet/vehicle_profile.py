"""Vehicle class inference and building vehicle specs."""

import numpy as np

from fleetsim.config.constants import (
    AVERAGE_SPEEDS,
    CLASS_CAPACITY_LIMITS,
    DEFAULT_FUEL_CONSUMPTION,
    FUEL_CONSUMPTION_RANGES,
)
from fleetsim.config.schema import VehicleSpecs


def classify_vehicle(capacity_tonnes: float) -> str:
    """Map payload capacity to a vehicle class."""
    if capacity_tonnes <= CLASS_CAPACITY_LIMITS["light"]:
        return "light"
    if capacity_tonnes <= CLASS_CAPACITY_LIMITS["medium"]:
        return "medium"
    return "heavy"


def sample_fuel_consumption(vehicle_class: str, rng: np.random.Generator) -> float:
    """Sample L/100km from the class range."""
    bounds = FUEL_CONSUMPTION_RANGES.get(vehicle_class)
    if bounds is None:
        return DEFAULT_FUEL_CONSUMPTION
    return round(float(rng.uniform(*bounds)), 2)


def create_vehicle_specs(
    vehicle_id: str,
    capacity_tonnes: float,
    rng: np.random.Generator,
    **overrides,
) -> VehicleSpecs:
    """Build specs for a vehicle, filling class defaults for anything not given."""
    vehicle_class = overrides.pop("vehicle_class", None) or classify_vehicle(capacity_tonnes)
    params = {
        "vehicle_id": vehicle_id,
        "vehicle_class": vehicle_class,
        "fuel_consumption": sample_fuel_consumption(vehicle_class, rng),
        "cruising_speed": AVERAGE_SPEEDS[vehicle_class],
    }
    params.update(overrides)
    return VehicleSpecs(**params)
