"""Background worker executing due result-fetch jobs."""
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable

from proctorflow.services.fetch_scheduler import ResultFetchScheduler
from proctorflow.services.job_queue import ClaimedJob, JobQueue
from proctorflow.utils import utc_now

log = logging.getLogger(__name__)


class JobWorker:
    """Claims due jobs from the queue and hands them to the scheduler."""

    def __init__(
        self,
        queue: JobQueue,
        scheduler: ResultFetchScheduler,
        poll_seconds: int,
        batch_size: int,
        retry_delay_seconds: int,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.queue = queue
        self.scheduler = scheduler
        self.poll_seconds = poll_seconds
        self.batch_size = batch_size
        self.retry_delay = timedelta(seconds=retry_delay_seconds)
        self.clock = clock
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def run_pending(self) -> int:
        """Execute every job due now. Returns the number of jobs run."""
        jobs = self.queue.claim_due(self.clock(), self.batch_size)
        for job in jobs:
            try:
                self._run(job)
            except Exception:
                # The claim lapses after the lease; keep going with the batch
                log.exception("Failed to settle fetch job for attempt %s", job.attempt_id)
        return len(jobs)

    def _run(self, job: ClaimedJob) -> None:
        try:
            self.scheduler.execute(job.attempt_id)
        except Exception:
            log.exception("fetch_results job for attempt %s crashed", job.attempt_id)
            self.queue.fail(job, self.clock() + self.retry_delay)
        else:
            self.queue.complete(job)

    def start(self) -> None:
        if self._thread is not None:
            return

        def _worker() -> None:
            while not self._stop.is_set():
                try:
                    ran = self.run_pending()
                except Exception:
                    log.exception("Failed to poll fetch jobs")
                    ran = 0
                # Drain the queue before sleeping again
                if ran < self.batch_size and self._stop.wait(self.poll_seconds):
                    return

        self._thread = threading.Thread(
            target=_worker,
            name="fetch_results_worker",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
