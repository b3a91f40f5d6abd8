"""Dataclasses for vehicle, driver, route and engine configuration."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from fleetsim.config.constants import (
    DAILY_RESET_SEC,
    DEFAULT_DURABILITY,
    DEFAULT_MAX_FUEL,
    DEFAULT_PRICE,
    MAX_DRIVING_HOURS,
    MIN_REST_SEC,
    SNAPSHOT_INTERVAL_SEC,
    TICK_INTERVAL_SEC,
    DRIVER_DAY_INTERVAL_SEC,
    CONDITION_DEGRADATION_PER_KM,
)

MODE_IDLE = "idle"
MODE_DRIVING = "driving"
MODE_RESTING_FOR_HANDOFF = "resting-for-handoff"


@dataclass(frozen=True)
class VehicleSpecs:
    """Static vehicle parameters captured at registration."""

    vehicle_id: str
    vehicle_class: str              # "light", "medium" or "heavy"
    fuel_consumption: float         # L/100km
    cruising_speed: float           # km/h
    max_fuel: float = DEFAULT_MAX_FUEL
    reliability: str = "B"          # "A" (best) .. "C" (worst)
    durability: int = DEFAULT_DURABILITY   # 1-10
    maintenance_group: int = 1      # 1-3
    price: float = DEFAULT_PRICE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> VehicleSpecs:
        return cls(**data)


@dataclass
class Route:
    """An active route. ``start_time`` is an absolute epoch timestamp."""

    origin: str
    destination: str
    distance_km: float
    start_time: float
    distance_accumulated: float = 0.0

    @property
    def remaining_km(self) -> float:
        return max(0.0, self.distance_km - self.distance_accumulated)


@dataclass
class VehicleRuntimeState:
    """Mutable per-vehicle state, owned by the engine."""

    fuel: float
    condition: float = 100.0
    odometer: float = 0.0
    location: str = "Hub"
    route: Optional[Route] = None
    current_speed: float = 0.0
    driving: bool = False
    mode: str = MODE_IDLE
    primary_driver_id: Optional[str] = None
    co_driver_id: Optional[str] = None
    last_update: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> VehicleRuntimeState:
        data = dict(data)
        route = data.pop("route", None)
        return cls(route=Route(**route) if route else None, **data)


@dataclass
class DriverRuntimeState:
    """Mutable per-driver state, owned by the engine."""

    driver_id: str
    name: str = "Driver"
    hours_driven_today: float = 0.0
    resting: bool = False
    last_rest_start: Optional[float] = None
    vehicle_id: Optional[str] = None
    fit: float = 100.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DriverRuntimeState:
        return cls(**data)


@dataclass(frozen=True)
class IncidentRecord:
    """A triggered incident. Emitted once, never stored by the engine."""

    vehicle_id: str
    incident_type: str    # minor | breakdown | tire | engine | brake
    severity: int         # 10-100
    distance_km: float    # distance covered in the tick that triggered it
    timestamp: float
    cause: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MaintenanceEstimate:
    cost: int
    duration_days: int
    group: int


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a state-changing request. Falsy on failure."""

    ok: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls) -> TransitionResult:
        return cls(True)

    @classmethod
    def failure(cls, reason: str) -> TransitionResult:
        return cls(False, reason)


@dataclass
class EngineSettings:
    """Tunable engine parameters (defaults from constants)."""

    tick_interval: float = TICK_INTERVAL_SEC
    snapshot_interval: float = SNAPSHOT_INTERVAL_SEC
    driver_day_interval: float = DRIVER_DAY_INTERVAL_SEC
    max_driving_hours: float = MAX_DRIVING_HOURS
    min_rest_sec: float = MIN_REST_SEC
    daily_reset_sec: float = DAILY_RESET_SEC
    degradation_per_km: float = CONDITION_DEGRADATION_PER_KM
