"""
FetchJob model: queued result-fetch work, one row per attempt.
"""

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from proctorflow.database import Base


class FetchJob(Base):
    """
    A queued result-fetch job.

    The unique attempt_id collapses repeated submissions into a single row.
    A claimed row is being executed by a worker; ``rerun`` is set when the
    job was resubmitted while running so it stays queued afterwards.
    """

    __tablename__ = "fetch_jobs"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    attempt_id: Mapped[int] = mapped_column(nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(nullable=False)

    enqueued_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    next_run_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, index=True
    )
    claimed_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    rerun: Mapped[bool] = mapped_column(default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("attempt_id", name="uq_fetch_job_attempt"),
    )
