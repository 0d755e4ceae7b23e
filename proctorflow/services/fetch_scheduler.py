"""Scheduling and execution of per-attempt result fetching."""
import logging
from datetime import datetime, timedelta
from typing import Callable

from proctorflow.exceptions import ProctoringError
from proctorflow.models.db.attempt import AttemptStatus
from proctorflow.services.attempt_store import AttemptStore
from proctorflow.services.credentials import CredentialStore
from proctorflow.services.job_queue import JobQueue
from proctorflow.services.results_client import FetchOutcomeKind, ResultsClient
from proctorflow.utils import utc_now

log = logging.getLogger(__name__)


class ResultFetchScheduler:
    """
    Polls the proctoring service for one attempt until results are in.

    Jobs live in the JobQueue keyed by attempt id, so repeated scheduling
    collapses into one queued job and only one worker executes an attempt
    at a time.
    """

    def __init__(
        self,
        store: AttemptStore,
        queue: JobQueue,
        credential_store: CredentialStore,
        results_client: ResultsClient,
        retry_delay_seconds: int,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.queue = queue
        self.credential_store = credential_store
        self.results_client = results_client
        self.retry_delay = timedelta(seconds=retry_delay_seconds)
        self.clock = clock

    def schedule(self, attempt_id: int, user_id: int, delay: timedelta | None = None) -> bool:
        """
        Queue a fetch for the attempt.

        Args:
            attempt_id: Attempt to poll results for
            user_id: Owner of the attempt
            delay: Time until the job is due, defaults to the retry delay

        Returns False without queueing when the attempt is gone or terminal.
        """
        attempt = self.store.get(attempt_id)
        if attempt is None or attempt.is_terminal:
            log.info("Not scheduling results fetch for attempt %s: not active", attempt_id)
            return False

        run_at = self.clock() + (self.retry_delay if delay is None else delay)
        self.queue.submit(attempt_id, user_id, run_at)
        log.debug("Scheduled results fetch for attempt %s at %s", attempt_id, run_at)
        return True

    def cancel(self, attempt_id: int, user_id: int) -> bool:
        """Remove a queued fetch for the attempt. No-op if none exists."""
        removed = self.queue.cancel(attempt_id)
        if removed:
            log.debug("Unscheduled results fetch for attempt %s (user %s)", attempt_id, user_id)
        return removed

    def execute(self, attempt_id: int | None) -> FetchOutcomeKind | None:
        """
        Run one fetch for the attempt.

        Returns the outcome kind, or None when there was nothing to poll.
        Domain errors are logged here and never raised; store failures
        propagate to the worker.
        """
        if not attempt_id:
            log.warning("fetch_results job called without attempt id")
            return None

        attempt = self.store.get(attempt_id)
        if attempt is None:
            log.info("fetch_results job called for non-existing attempt: %s", attempt_id)
            return None

        if attempt.status != AttemptStatus.PENDING_RESULTS.value:
            log.info(
                "fetch_results job skipped attempt %s with status %s",
                attempt_id,
                attempt.status,
            )
            return None

        try:
            credentials = self.credential_store.for_attempt(attempt)
        except ProctoringError as exc:
            exc.add_debug_info(attemptid=attempt.id)
            log.error("Fetching results failed: %s", exc)
            return FetchOutcomeKind.ERROR

        outcome = self.results_client.fetch_results(attempt, credentials)

        if outcome.kind is FetchOutcomeKind.PENDING:
            self.schedule(attempt.id, attempt.user_id)
            return outcome.kind

        if outcome.kind is FetchOutcomeKind.ERROR:
            log.error("Fetching results failed: %s", outcome.error)
            return outcome.kind

        if self.store.record_results(attempt.id, outcome.results, self.clock()):
            log.info("Stored results for attempt %s", attempt.id)
        else:
            log.info("Results for attempt %s arrived after it left pending_results", attempt.id)
        self.cancel(attempt.id, attempt.user_id)
        return outcome.kind
