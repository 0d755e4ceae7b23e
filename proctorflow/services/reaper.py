"""Service for aborting abandoned attempts."""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from proctorflow.models.db.attempt import AttemptStatus
from proctorflow.services.attempt_store import AttemptStore
from proctorflow.services.fetch_scheduler import ResultFetchScheduler
from proctorflow.utils import utc_now

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepReport:
    threshold: datetime
    considered: int
    aborted: int


class AbandonmentReaper:
    """
    Aborts attempts that stayed started or pending_results for longer than
    the inactivity window, and drops their queued fetch jobs.
    """

    def __init__(
        self,
        store: AttemptStore,
        scheduler: ResultFetchScheduler,
        inactivity_window: timedelta,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.scheduler = scheduler
        self.inactivity_window = inactivity_window
        self.clock = clock

    def sweep(self) -> SweepReport:
        """Abort every overdue attempt. Fails only if candidates can't be read."""
        now = self.clock()
        threshold = now - self.inactivity_window
        log.info("Looking for overdue exam attempts (not modified since %s)", threshold)

        overdue = self.store.find_overdue(threshold)
        log.info("Considering %d attempts for aborting", len(overdue))

        aborted = 0
        for attempt in overdue:
            try:
                updated = self.store.transition(attempt.id, AttemptStatus.ABORTED, now)
            except SQLAlchemyError:
                log.exception("Failed to abort attempt %s", attempt.id)
                continue
            if not updated:
                log.debug("Attempt %s changed before it could be aborted", attempt.id)
                continue

            aborted += 1
            try:
                self.scheduler.cancel(attempt.id, attempt.user_id)
            except SQLAlchemyError:
                log.exception("Failed to unschedule results fetch for attempt %s", attempt.id)

        log.info("Aborted %d exam attempts", aborted)
        return SweepReport(threshold=threshold, considered=len(overdue), aborted=aborted)


def schedule_sweeps(
    reaper: AbandonmentReaper,
    interval_seconds: int,
    stop_event: threading.Event,
    initial_delay_seconds: int = 60,
) -> threading.Thread:
    """Run the reaper periodically in a background thread."""

    def _worker() -> None:
        # Initial delay before first sweep
        if stop_event.wait(initial_delay_seconds):
            return
        while True:
            try:
                reaper.sweep()
            except Exception:
                log.exception("Abandoned attempts sweep failed")
            if stop_event.wait(interval_seconds):
                return

    thread = threading.Thread(
        target=_worker,
        name="attempts_reaper",
        daemon=True,
    )
    thread.start()
    return thread
