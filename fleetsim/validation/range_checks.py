"""Consistency checks over an engine snapshot.

Used by the CLI after a run and by tests to assert the registry invariants
hold on whatever the engine persisted.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from fleetsim.config.constants import MAX_CONDITION
from fleetsim.config.schema import MODE_DRIVING

logger = logging.getLogger(__name__)

FLOAT_TOLERANCE = 1e-6


@dataclass
class ValidationResult:
    check: str
    subject: str
    passed: bool
    message: str = ""


@dataclass
class ValidationReport:
    results: List[ValidationResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results)

    @property
    def n_passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def n_failed(self) -> int:
        return sum(1 for r in self.results if not r.passed)

    @property
    def failures(self) -> List[ValidationResult]:
        return [r for r in self.results if not r.passed]

    def add(self, check: str, subject: str, passed: bool, message: str = "") -> None:
        self.results.append(ValidationResult(check, subject, passed, "" if passed else message))

    def summary(self) -> str:
        lines = [f"Validation: {self.n_passed} passed, {self.n_failed} failed"]
        for r in self.failures:
            lines.append(f"  [FAIL] {r.check}/{r.subject}: {r.message}")
        return "\n".join(lines)


def check_snapshot(snapshot: Dict[str, Any]) -> ValidationReport:
    """Validate vehicle ranges, driving flags and driver bindings.

    Args:
        snapshot: Dict produced by ``FleetEngine.snapshot``.

    Returns:
        ValidationReport with one result per check and subject.
    """
    report = ValidationReport()
    vehicles = snapshot.get("vehicles", {})
    drivers = snapshot.get("drivers", {})

    bound_to: Dict[str, str] = {}

    for vid, entry in sorted(vehicles.items()):
        specs = entry["specs"]
        rt = entry["runtime"]

        condition = rt["condition"]
        report.add(
            "condition", vid,
            -FLOAT_TOLERANCE <= condition <= MAX_CONDITION + FLOAT_TOLERANCE,
            f"condition {condition:.3f} outside [0, {MAX_CONDITION:.0f}]",
        )

        fuel = rt["fuel"]
        report.add(
            "fuel", vid,
            -FLOAT_TOLERANCE <= fuel <= specs["max_fuel"] + FLOAT_TOLERANCE,
            f"fuel {fuel:.3f} outside [0, {specs['max_fuel']}]",
        )

        route = rt.get("route")
        if route is not None:
            report.add(
                "route_progress", vid,
                route["distance_accumulated"] <= route["distance_km"] + FLOAT_TOLERANCE,
                f"accumulated {route['distance_accumulated']:.3f} > {route['distance_km']:.3f}",
            )

        if rt["driving"]:
            primary = drivers.get(rt.get("primary_driver_id") or "")
            ok = (
                route is not None
                and rt["mode"] == MODE_DRIVING
                and primary is not None
                and not primary["resting"]
            )
            report.add(
                "driving", vid, ok,
                "driving without a route or a non-resting primary driver",
            )

        for driver_id in (rt.get("primary_driver_id"), rt.get("co_driver_id")):
            if driver_id is None:
                continue
            other = bound_to.get(driver_id)
            report.add(
                "driver_exclusive", driver_id,
                other is None,
                f"bound to both {other} and {vid}",
            )
            bound_to[driver_id] = vid

    n_checks = len(report.results)
    logger.debug(f"Checked {len(vehicles)} vehicles ({n_checks} checks)")
    return report
