"""Persistence layer for exam attempts."""
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import joinedload, sessionmaker

from proctorflow.models.db.attempt import Attempt, AttemptResults, AttemptStatus
from proctorflow.utils import utc_now

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverdueAttempt:
    """Identity of an attempt that is due for aborting."""

    id: int
    user_id: int


class AttemptStore:
    """
    Row-per-attempt state shared by the scheduler and the reaper.

    Every status change goes through a conditional UPDATE that only matches
    non-terminal rows, so concurrent callers can never move an attempt out of
    ``finished`` or ``aborted``.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def add(
        self,
        exam_id: int,
        user_id: int,
        participant_id: str | None = None,
        booking_id: str | None = None,
        status: AttemptStatus = AttemptStatus.STARTED,
        timestamp: datetime | None = None,
    ) -> Attempt:
        """Create a new attempt record."""
        now = timestamp or utc_now()
        with self._session_factory() as db:
            attempt = Attempt(
                exam_id=exam_id,
                user_id=user_id,
                participant_id=participant_id,
                booking_id=booking_id,
                status=status.value,
                time_created=now,
                time_modified=now,
            )
            db.add(attempt)
            db.commit()
            return self._load(db, attempt.id)

    def get(self, attempt_id: int) -> Attempt | None:
        """Get attempt by ID with its exam and results loaded."""
        with self._session_factory() as db:
            return self._load(db, attempt_id)

    def find_overdue(self, threshold: datetime) -> list[OverdueAttempt]:
        """
        Get all non-terminal attempts not modified since ``threshold``.

        Args:
            threshold: Attempts with ``time_modified <= threshold`` match.
        """
        with self._session_factory() as db:
            rows = db.execute(
                select(Attempt.id, Attempt.user_id).where(
                    Attempt.time_modified <= threshold,
                    Attempt.status.in_(AttemptStatus.active()),
                )
            ).all()
        return [OverdueAttempt(id=row.id, user_id=row.user_id) for row in rows]

    def transition(
        self,
        attempt_id: int,
        new_status: AttemptStatus,
        timestamp: datetime,
        expected: AttemptStatus | None = None,
    ) -> bool:
        """
        Move a non-terminal attempt to ``new_status``.

        Returns False when the attempt is gone, already terminal, or not in
        ``expected`` (when given).
        """
        allowed = (expected.value,) if expected else AttemptStatus.active()
        with self._session_factory() as db:
            result = db.execute(
                update(Attempt)
                .where(Attempt.id == attempt_id, Attempt.status.in_(allowed))
                .values(status=new_status.value, time_modified=timestamp)
            )
            db.commit()
        return result.rowcount == 1

    def record_results(
        self, attempt_id: int, results: AttemptResults, timestamp: datetime
    ) -> bool:
        """
        Store results and finish a ``pending_results`` attempt in one commit.

        Nothing is written when the attempt has left ``pending_results``.
        """
        with self._session_factory() as db:
            result = db.execute(
                update(Attempt)
                .where(
                    Attempt.id == attempt_id,
                    Attempt.status == AttemptStatus.PENDING_RESULTS.value,
                )
                .values(status=AttemptStatus.FINISHED.value, time_modified=timestamp)
            )
            if result.rowcount != 1:
                db.rollback()
                return False

            results.attempt_id = attempt_id
            db.add(results)
            db.flush()
            db.execute(
                update(Attempt)
                .where(Attempt.id == attempt_id)
                .values(result_id=results.id)
            )
            db.commit()
        return True

    @staticmethod
    def _load(db, attempt_id: int) -> Attempt | None:
        attempt = db.execute(
            select(Attempt)
            .options(joinedload(Attempt.exam), joinedload(Attempt.results))
            .where(Attempt.id == attempt_id)
        ).unique().scalar_one_or_none()
        if attempt is not None:
            db.expunge(attempt)
        return attempt
