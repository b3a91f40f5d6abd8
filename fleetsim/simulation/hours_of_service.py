"""Simplified hours-of-service regime for drivers.

Rules:
    - A driver may drive at most ``max_driving_hours`` before a mandatory rest.
    - A rest must last at least ``min_rest_sec`` before the driver may resume,
      and a new rest may not start within ``min_rest_sec`` of the previous one.
    - A completed rest resets the driver's hour counter.
    - All counters and resting flags are reset together once per
      ``daily_reset_sec`` measured from the previous reset (global, not per driver).
      The window opens on the first ``daily_reset`` call.
"""

import logging
from typing import Dict, Iterator, Optional

from fleetsim.config.constants import DAILY_RESET_SEC, MAX_DRIVING_HOURS, MIN_REST_SEC
from fleetsim.config.schema import DriverRuntimeState, TransitionResult

logger = logging.getLogger(__name__)

REASON_UNKNOWN_DRIVER = "unknown driver"
REASON_ALREADY_RESTING = "driver already resting"
REASON_NOT_RESTING = "driver not resting"
REASON_REST_COOLDOWN = "rest taken too recently"
REASON_REST_TOO_SHORT = "minimum rest duration not reached"


class HoursOfServiceTracker:
    """Per-driver hour accumulator. Owns every DriverRuntimeState."""

    def __init__(
        self,
        max_driving_hours: float = MAX_DRIVING_HOURS,
        min_rest_sec: float = MIN_REST_SEC,
        daily_reset_sec: float = DAILY_RESET_SEC,
    ):
        self.max_driving_hours = max_driving_hours
        self.min_rest_sec = min_rest_sec
        self.daily_reset_sec = daily_reset_sec
        self.last_daily_reset: Optional[float] = None
        self._drivers: Dict[str, DriverRuntimeState] = {}

    # -- Registry -----------------------------------------------------------

    def ensure(self, driver_id: str, name: str = "Driver") -> DriverRuntimeState:
        """Return the driver's state, creating a fresh one if unseen."""
        driver = self._drivers.get(driver_id)
        if driver is None:
            driver = DriverRuntimeState(driver_id=driver_id, name=name)
            self._drivers[driver_id] = driver
        return driver

    def add(self, driver: DriverRuntimeState) -> None:
        self._drivers[driver.driver_id] = driver

    def get(self, driver_id: Optional[str]) -> Optional[DriverRuntimeState]:
        if driver_id is None:
            return None
        return self._drivers.get(driver_id)

    def __iter__(self) -> Iterator[DriverRuntimeState]:
        return iter(self._drivers.values())

    def __len__(self) -> int:
        return len(self._drivers)

    def clear(self) -> None:
        self._drivers.clear()
        self.last_daily_reset = None

    # -- Rules --------------------------------------------------------------

    def can_drive(self, driver: DriverRuntimeState) -> bool:
        return not driver.resting and driver.hours_driven_today < self.max_driving_hours

    def record_driving(self, driver_id: str, hours: float) -> bool:
        """Add driven hours. Returns True once the driver must rest."""
        driver = self._drivers.get(driver_id)
        if driver is None or driver.resting:
            return False
        driver.hours_driven_today += max(0.0, hours)
        return driver.hours_driven_today >= self.max_driving_hours

    def request_rest(self, driver_id: str, now: float) -> TransitionResult:
        driver = self._drivers.get(driver_id)
        if driver is None:
            return TransitionResult.failure(REASON_UNKNOWN_DRIVER)
        if driver.resting:
            return TransitionResult.failure(REASON_ALREADY_RESTING)
        if (
            driver.last_rest_start is not None
            and now - driver.last_rest_start < self.min_rest_sec
        ):
            logger.info(f"Driver {driver_id} must wait before next rest")
            return TransitionResult.failure(REASON_REST_COOLDOWN)

        self._begin_rest(driver, now)
        return TransitionResult.success()

    def force_rest(self, driver_id: str, now: float) -> TransitionResult:
        """Mandatory rest once the hour limit is hit. Ignores the rest cooldown."""
        driver = self._drivers.get(driver_id)
        if driver is None:
            return TransitionResult.failure(REASON_UNKNOWN_DRIVER)
        if driver.resting:
            return TransitionResult.failure(REASON_ALREADY_RESTING)
        self._begin_rest(driver, now)
        logger.info(
            f"Driver {driver_id} reached {driver.hours_driven_today:.2f}h, mandatory rest"
        )
        return TransitionResult.success()

    def end_rest(self, driver_id: str, now: float) -> TransitionResult:
        driver = self._drivers.get(driver_id)
        if driver is None:
            return TransitionResult.failure(REASON_UNKNOWN_DRIVER)
        if not driver.resting:
            return TransitionResult.failure(REASON_NOT_RESTING)
        started = driver.last_rest_start if driver.last_rest_start is not None else now
        if now - started < self.min_rest_sec:
            logger.info(f"Driver {driver_id} must rest at least {self.min_rest_sec:.0f}s")
            return TransitionResult.failure(REASON_REST_TOO_SHORT)

        driver.resting = False
        driver.hours_driven_today = 0.0
        logger.debug(f"Driver {driver_id} completed rest")
        return TransitionResult.success()

    def daily_reset(self, now: float) -> bool:
        """Reset every driver once per window. Returns True if a reset happened.

        The first call only opens the window.
        """
        if self.last_daily_reset is None:
            self.last_daily_reset = now
            return False
        if now - self.last_daily_reset <= self.daily_reset_sec:
            return False

        for driver in self._drivers.values():
            driver.hours_driven_today = 0.0
            driver.resting = False
        self.last_daily_reset = now
        logger.info("Daily driver hours reset")
        return True

    @staticmethod
    def _begin_rest(driver: DriverRuntimeState, now: float) -> None:
        driver.resting = True
        driver.last_rest_start = now
