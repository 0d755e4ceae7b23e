"""Database-backed queue of result-fetch jobs, keyed by attempt."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from proctorflow.models.db.fetch_job import FetchJob

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaimedJob:
    """A job a worker won the claim for and must complete or fail."""

    id: int
    attempt_id: int
    user_id: int
    claimed_at: datetime


class JobQueue:
    """
    At most one job row per attempt.

    Workers claim due rows with a conditional UPDATE, so only one worker
    executes a given attempt at a time. A claim older than the lease is
    considered dead and can be taken over.
    """

    def __init__(self, session_factory: sessionmaker, lease_seconds: int):
        self._session_factory = session_factory
        self.lease = timedelta(seconds=lease_seconds)

    def submit(self, attempt_id: int, user_id: int, run_at: datetime) -> None:
        """Queue a job for the attempt, or reschedule the one already queued."""
        with self._session_factory() as db:
            if self._reschedule(db, attempt_id, run_at):
                db.commit()
                return

            db.add(
                FetchJob(
                    attempt_id=attempt_id,
                    user_id=user_id,
                    enqueued_at=run_at,
                    next_run_at=run_at,
                )
            )
            try:
                db.commit()
            except IntegrityError:
                # Lost an insert race; the winner's row gets rescheduled instead
                db.rollback()
                self._reschedule(db, attempt_id, run_at)
                db.commit()

    def cancel(self, attempt_id: int) -> bool:
        """Drop the attempt's job. Returns False if none was queued."""
        with self._session_factory() as db:
            result = db.execute(delete(FetchJob).where(FetchJob.attempt_id == attempt_id))
            db.commit()
        return result.rowcount > 0

    def get(self, attempt_id: int) -> FetchJob | None:
        with self._session_factory() as db:
            return db.execute(
                select(FetchJob).where(FetchJob.attempt_id == attempt_id)
            ).scalar_one_or_none()

    def count(self) -> int:
        with self._session_factory() as db:
            return db.execute(select(func.count(FetchJob.id))).scalar() or 0

    def claim_due(self, now: datetime, limit: int = 10) -> list[ClaimedJob]:
        """Claim up to ``limit`` due jobs for execution."""
        stale = now - self.lease
        claimable = or_(FetchJob.claimed_at.is_(None), FetchJob.claimed_at <= stale)
        claimed = []
        with self._session_factory() as db:
            candidates = db.execute(
                select(FetchJob.id, FetchJob.attempt_id, FetchJob.user_id)
                .where(FetchJob.next_run_at <= now, claimable)
                .order_by(FetchJob.next_run_at)
                .limit(limit)
            ).all()
            for row in candidates:
                result = db.execute(
                    update(FetchJob)
                    .where(FetchJob.id == row.id, claimable)
                    .values(claimed_at=now, rerun=False)
                )
                db.commit()
                if result.rowcount == 1:
                    claimed.append(
                        ClaimedJob(
                            id=row.id,
                            attempt_id=row.attempt_id,
                            user_id=row.user_id,
                            claimed_at=now,
                        )
                    )
        return claimed

    def complete(self, job: ClaimedJob) -> None:
        """Finish a claimed job: drop it, or keep it queued if resubmitted meanwhile."""
        with self._session_factory() as db:
            owned = (FetchJob.id == job.id, FetchJob.claimed_at == job.claimed_at)
            released = db.execute(
                update(FetchJob)
                .where(*owned, FetchJob.rerun)
                .values(claimed_at=None, rerun=False)
            )
            if released.rowcount == 0:
                deleted = db.execute(delete(FetchJob).where(*owned))
                if deleted.rowcount == 0:
                    log.debug("Fetch job for attempt %s was cancelled or taken over", job.attempt_id)
            db.commit()

    def fail(self, job: ClaimedJob, retry_at: datetime) -> None:
        """Release a job whose execution crashed so it runs again later."""
        with self._session_factory() as db:
            db.execute(
                update(FetchJob)
                .where(FetchJob.id == job.id, FetchJob.claimed_at == job.claimed_at)
                .values(claimed_at=None, rerun=False, next_run_at=retry_at)
            )
            db.commit()

    @staticmethod
    def _reschedule(db, attempt_id: int, run_at: datetime) -> bool:
        # rerun is set when a worker holds the claim
        result = db.execute(
            update(FetchJob)
            .where(FetchJob.attempt_id == attempt_id)
            .values(next_run_at=run_at, rerun=FetchJob.claimed_at.isnot(None))
        )
        return result.rowcount > 0
