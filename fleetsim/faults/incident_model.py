"""Per-tick breakdown probability and incident generation.

probability = clamp(base_per_km * d * R * D * C * F, 0, 1)

    R  reliability grade multiplier (A 0.6, B 1.0, C 1.6)
    D  1 + max(0, (5 - durability) * 0.08)
    C  1 + (50 - condition) / 50 below 50% condition, else 1
    F  1 + additive driver risk terms (unfit, hours driven, resting)

All randomness goes through the injected generator, so tests can force or
suppress triggers with a seeded ``np.random.Generator`` or any object that
provides ``random()``.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from fleetsim.config.constants import (
    CONDITION_RISK_PIVOT,
    DEFAULT_DURABILITY,
    DRIVER_LONG_HOURS,
    DRIVER_LONG_HOURS_RISK,
    DRIVER_OVER_HOURS_RISK,
    DRIVER_RESTING_RISK,
    DRIVER_UNFIT_RISK,
    DURABILITY_PIVOT,
    DURABILITY_STEP,
    INCIDENT_BASE_PER_KM,
    INCIDENT_TYPE_WEIGHTS,
    MAX_DRIVING_HOURS,
    RELIABILITY_MULTIPLIERS,
    SEVERITY_BASE_CAP,
    SEVERITY_GRADE_C_BONUS,
    SEVERITY_JITTER,
    SEVERITY_MAX,
    SEVERITY_MIN,
)
from fleetsim.config.schema import DriverRuntimeState, IncidentRecord, VehicleSpecs
from fleetsim.faults.rounding import round_half_up
from fleetsim.simulation.driver_condition import is_fit

INCIDENT_TYPES = list(INCIDENT_TYPE_WEIGHTS)
_CUMULATIVE_WEIGHTS = np.cumsum(list(INCIDENT_TYPE_WEIGHTS.values()), dtype=np.float64)


@dataclass
class IncidentOutcome:
    probability: float
    triggered: bool
    record: Optional[IncidentRecord] = None


def reliability_multiplier(grade: Optional[str]) -> float:
    return RELIABILITY_MULTIPLIERS.get(grade, 1.0)


def durability_multiplier(durability: Optional[float]) -> float:
    if durability is None:
        durability = DEFAULT_DURABILITY
    return 1.0 + max(0.0, (DURABILITY_PIVOT - durability) * DURABILITY_STEP)


def condition_multiplier(condition: float) -> float:
    if condition < CONDITION_RISK_PIVOT:
        return 1.0 + (CONDITION_RISK_PIVOT - condition) / CONDITION_RISK_PIVOT
    return 1.0


def driver_multiplier(
    driver: Optional[DriverRuntimeState],
    max_driving_hours: float = MAX_DRIVING_HOURS,
) -> float:
    """Fatigue factor. A missing driver contributes no extra risk."""
    if driver is None:
        return 1.0

    multiplier = 1.0
    if not is_fit(driver):
        multiplier += DRIVER_UNFIT_RISK

    hours = driver.hours_driven_today
    if hours >= max_driving_hours:
        multiplier += DRIVER_OVER_HOURS_RISK
    elif hours >= DRIVER_LONG_HOURS:
        multiplier += DRIVER_LONG_HOURS_RISK

    if driver.resting:
        # Resting driver behind the wheel of a moving vehicle
        multiplier += DRIVER_RESTING_RISK
    return multiplier


class IncidentEvaluator:
    """Stateless incident model. Holds only the random source and limits."""

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        base_per_km: float = INCIDENT_BASE_PER_KM,
        max_driving_hours: float = MAX_DRIVING_HOURS,
    ):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.base_per_km = base_per_km
        self.max_driving_hours = max_driving_hours

    def probability(
        self,
        specs: VehicleSpecs,
        condition: float,
        driver: Optional[DriverRuntimeState],
        distance_km: float,
    ) -> float:
        """Incident probability for one distance segment, in [0, 1]."""
        if distance_km <= 0:
            return 0.0

        p = (
            self.base_per_km
            * distance_km
            * reliability_multiplier(specs.reliability)
            * durability_multiplier(specs.durability)
            * condition_multiplier(condition)
            * driver_multiplier(driver, self.max_driving_hours)
        )
        return float(np.clip(p, 0.0, 1.0))

    def evaluate(
        self,
        specs: VehicleSpecs,
        condition: float,
        driver: Optional[DriverRuntimeState],
        distance_km: float,
        timestamp: float,
    ) -> IncidentOutcome:
        """Roll for an incident over ``distance_km``.

        Args:
            specs: Vehicle specs (reliability, durability).
            condition: Current condition 0-100.
            driver: Active driver state, or None.
            distance_km: Distance covered in this tick.
            timestamp: Absolute time stamped on the record.

        Returns:
            IncidentOutcome with the probability and, if triggered, the record.
        """
        p = self.probability(specs, condition, driver, distance_km)
        if p <= 0.0:
            return IncidentOutcome(probability=p, triggered=False)

        roll = float(self.rng.random())
        if roll >= p:
            return IncidentOutcome(probability=p, triggered=False)

        record = IncidentRecord(
            vehicle_id=specs.vehicle_id,
            incident_type=self.pick_type(),
            severity=self.severity(specs, condition),
            distance_km=distance_km,
            timestamp=timestamp,
            cause=_cause_summary(specs, condition, driver),
        )
        return IncidentOutcome(probability=p, triggered=True, record=record)

    def severity(self, specs: VehicleSpecs, condition: float) -> int:
        durability = specs.durability if specs.durability is not None else DEFAULT_DURABILITY
        grade_bonus = SEVERITY_GRADE_C_BONUS if specs.reliability == "C" else 0
        base = min(
            SEVERITY_BASE_CAP,
            round_half_up((100.0 - condition) * 0.8 + (11 - durability) * 2 + grade_bonus),
        )
        jitter = round_half_up(float(self.rng.random()) * 2 * SEVERITY_JITTER - SEVERITY_JITTER)
        return int(min(SEVERITY_MAX, max(SEVERITY_MIN, base + jitter)))

    def pick_type(self) -> str:
        """Weighted draw over the incident type table."""
        pick = float(self.rng.random()) * _CUMULATIVE_WEIGHTS[-1]
        idx = int(np.searchsorted(_CUMULATIVE_WEIGHTS, pick, side="left"))
        return INCIDENT_TYPES[min(idx, len(INCIDENT_TYPES) - 1)]


def _cause_summary(
    specs: VehicleSpecs,
    condition: float,
    driver: Optional[DriverRuntimeState],
) -> str:
    parts = [
        f"Reliability={specs.reliability or 'N/A'}",
        f"Durability={specs.durability}",
        f"Condition={condition:.1f}",
    ]
    if driver is not None:
        parts.append(f"DriverHours={driver.hours_driven_today:.2f}")
        if not is_fit(driver):
            parts.append(f"DriverFit={driver.fit:.0f}")
    return " | ".join(parts)
