"""Exam session hooks that feed attempts into results fetching."""
import logging
from datetime import timedelta

from proctorflow.models.db.attempt import AttemptStatus
from proctorflow.services.attempt_store import AttemptStore
from proctorflow.services.fetch_scheduler import ResultFetchScheduler

log = logging.getLogger(__name__)


def complete_attempt(
    store: AttemptStore,
    scheduler: ResultFetchScheduler,
    attempt_id: int,
) -> AttemptStatus | None:
    """
    Finish the proctored session of a started attempt.

    Finishing after the exam closed aborts the attempt when the exam's
    overdue handling does not allow it. Otherwise the attempt moves to
    pending_results and a results fetch due immediately is queued.

    Returns the new status, or None if the attempt is not in started.
    """
    attempt = store.get(attempt_id)
    if attempt is None or attempt.status != AttemptStatus.STARTED.value:
        return None

    now = scheduler.clock()
    if not attempt.get_exam().allows_finish_at(now):
        if not store.transition(
            attempt_id, AttemptStatus.ABORTED, now, expected=AttemptStatus.STARTED
        ):
            return None
        log.info("Attempt %s finished after the exam closed, aborted", attempt_id)
        return AttemptStatus.ABORTED

    moved = store.transition(
        attempt_id,
        AttemptStatus.PENDING_RESULTS,
        now,
        expected=AttemptStatus.STARTED,
    )
    if not moved:
        return None

    log.info("Attempt %s is awaiting results", attempt_id)
    scheduler.schedule(attempt.id, attempt.user_id, delay=timedelta(0))
    return AttemptStatus.PENDING_RESULTS
