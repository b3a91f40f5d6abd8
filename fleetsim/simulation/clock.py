"""Global simulation clock.

Fires ``FleetEngine.tick`` every ``tick_interval`` seconds, persists a
snapshot every ``snapshot_interval`` seconds and advances driver fitness once
per ``driver_day_interval``. ``run_once`` executes one iteration with an
explicit timestamp, which is how tests and the headless CLI drive the clock
without a background thread.
"""

import logging
import threading
import time
from typing import Callable, Optional

from fleetsim.config.constants import EVENT_SNAPSHOT
from fleetsim.simulation.fleet_engine import FleetEngine
from fleetsim.storage.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


class SimulationClock:
    """Periodic scheduler for one FleetEngine."""

    def __init__(
        self,
        engine: FleetEngine,
        store: Optional[SnapshotStore] = None,
        tick_interval: Optional[float] = None,
        snapshot_interval: Optional[float] = None,
        driver_day_interval: Optional[float] = None,
        time_source: Callable[[], float] = time.time,
    ):
        settings = engine.settings
        self.engine = engine
        self.store = store
        self.tick_interval = tick_interval if tick_interval is not None else settings.tick_interval
        self.snapshot_interval = (
            snapshot_interval if snapshot_interval is not None else settings.snapshot_interval
        )
        self.driver_day_interval = (
            driver_day_interval if driver_day_interval is not None
            else settings.driver_day_interval
        )
        self._time = time_source

        self.last_snapshot: Optional[float] = None
        self.last_driver_day: Optional[float] = None
        self.ticks = 0

        self._running = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._running

    # -- Single iteration ---------------------------------------------------

    def run_once(self, now: Optional[float] = None) -> None:
        if now is None:
            now = self._time()

        self.engine.tick(now)
        self.ticks += 1

        if self.last_driver_day is None:
            self.last_driver_day = now
        elif now - self.last_driver_day >= self.driver_day_interval:
            self.engine.advance_driver_day()
            self.last_driver_day = now

        if self.last_snapshot is None:
            self.last_snapshot = now
        elif now - self.last_snapshot >= self.snapshot_interval:
            self.persist(now)

    def persist(self, now: Optional[float] = None) -> bool:
        """Snapshot the engine and hand it to the store. Never raises."""
        if now is None:
            now = self._time()
        self.last_snapshot = now

        try:
            snapshot = self.engine.snapshot(now)
        except Exception:
            logger.exception("Snapshot serialization failed, keeping previous snapshot")
            return False

        self.engine.bus.publish(EVENT_SNAPSHOT, snapshot)

        if self.store is None:
            return True
        try:
            self.store.save(snapshot)
        except Exception:
            logger.exception("Snapshot store failed, keeping previous snapshot")
            return False
        logger.debug(f"Snapshot saved ({len(snapshot['vehicles'])} vehicles)")
        return True

    # -- Background loop ----------------------------------------------------

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._tick_loop, name="fleet-clock", daemon=True)
        self._thread.start()
        logger.info(f"Clock started (tick every {self.tick_interval}s)")

    def stop(self, final_snapshot: bool = True) -> None:
        """Stop the loop, save a last snapshot and close the event bus.

        Also valid for a clock only driven through ``run_once``. A second
        call does nothing.
        """
        if self._running:
            self._running = False
            self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=max(2.0, self.tick_interval * 2))
            self._thread = None
        if self.engine.bus.closed:
            return
        if final_snapshot:
            self.persist()
        self.engine.bus.close()
        logger.info("Clock stopped")

    def _tick_loop(self) -> None:
        while self._running:
            try:
                self.run_once()
            except Exception:
                logger.exception("Clock iteration failed")
            if self._stop_event.wait(self.tick_interval):
                break
