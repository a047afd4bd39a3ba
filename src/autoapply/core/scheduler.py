from __future__ import annotations

import logging
import threading

from autoapply.core.coordinator import RunCoordinator

logger = logging.getLogger(__name__)


class IntervalScheduler:
    def __init__(self, coordinator: RunCoordinator, interval_min: int, run_on_start: bool = True):
        self.coordinator = coordinator
        self.interval_sec = interval_min * 60
        self.run_on_start = run_on_start
        self._stop = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run_forever(self) -> int:
        """Fire the coordinator every interval until stopped. Returns the number of runs fired."""
        fired = 0
        logger.info("Scheduler started interval=%ss", self.interval_sec)
        if self.run_on_start and not self.stopped:
            self._fire()
            fired += 1
        while not self._stop.wait(self.interval_sec):
            self._fire()
            fired += 1
        logger.info("Scheduler stopped after %s runs", fired)
        return fired

    def stop(self) -> None:
        if self._stop.is_set():
            return
        logger.info("Stop requested; finishing the active run")
        self._stop.set()
        self.coordinator.cancel()

    def _fire(self) -> None:
        try:
            summary = self.coordinator.run_once()
        except Exception:
            logger.exception("Scheduled run failed")
            return
        if summary is None:
            logger.info("Previous run still active; interval skipped")
