"""
EscalationScheduler: periodic reconciliation of stalled adoptions.

Runs AdoptionService.reconcile() once at start and then every interval on a
single daemon thread. Ticks never overlap. Sweeps are cutoff based, so ticks
missed while the process was down are absorbed by the next run.
"""

import logging
import threading
from typing import Optional

from adopet.config import config


class EscalationScheduler:
    """Background timer driving AdoptionService.reconcile()."""

    def __init__(self, service, interval_seconds: Optional[float] = None):
        self.service = service
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else config.ESCALATION_INTERVAL_SECONDS
        )
        self.last_processed: Optional[int] = None
        self._tick_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self.logger = logging.getLogger("job.EscalationScheduler")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the timer thread; the first tick runs immediately."""
        if self.running and not self._stop_event.is_set():
            return
        # Each run owns its stop event; a stopped thread never sees a later run's.
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._thread = threading.Thread(
            target=self._run, args=(stop_event,), name="escalation-scheduler", daemon=True
        )
        self._thread.start()
        self.logger.info(f"Started (interval={self.interval_seconds}s)")

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the thread to exit and wait up to timeout for the current tick."""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                self.logger.warning("Tick still running at stop; thread exits when it finishes")
        self._thread = None

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            self.tick()
            if stop_event.wait(self.interval_seconds):
                break

    def tick(self) -> Optional[int]:
        """
        Run one reconciliation.

        Returns the number of adoptions advanced, or None if the tick was
        skipped (another tick in progress) or failed as a whole.
        """
        if not self._tick_lock.acquire(blocking=False):
            self.logger.warning("Previous tick still running; skipping")
            return None

        try:
            processed = self.service.reconcile()
            self.last_processed = processed
            if processed > 0:
                self.logger.info(f"{processed} adoption(s) advanced")
            return processed
        except Exception:
            self.logger.exception("Reconcile run failed")
            return None
        finally:
            self._tick_lock.release()
