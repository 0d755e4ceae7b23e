"""
Attempt and AttemptResults database models for proctored exam attempts.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from proctorflow.database import Base

if TYPE_CHECKING:
    from proctorflow.models.db.exam import Exam


class AttemptStatus(str, enum.Enum):
    """Status of a proctored exam attempt."""

    STARTED = "started"
    PENDING_RESULTS = "pending_results"
    FINISHED = "finished"
    ABORTED = "aborted"

    @classmethod
    def active(cls) -> tuple[str, str]:
        """Statuses that can still be polled or reaped."""
        return (cls.STARTED.value, cls.PENDING_RESULTS.value)

    @classmethod
    def terminal(cls) -> tuple[str, str]:
        """Statuses that are never left again."""
        return (cls.FINISHED.value, cls.ABORTED.value)


class Attempt(Base):
    """
    Exam attempt record.
    One learner's instance of taking a proctored exam.
    """

    __tablename__ = "attempts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # References
    exam_id: Mapped[int] = mapped_column(
        ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(nullable=False, index=True)

    # Remote side identifiers
    participant_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    booking_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Stored results record, set once the remote side has issued results
    result_id: Mapped[int | None] = mapped_column(nullable=True)

    # Status and timing
    status: Mapped[str] = mapped_column(
        String(20), default=AttemptStatus.STARTED.value, nullable=False, index=True
    )
    time_created: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    time_modified: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    # Relationships
    exam: Mapped["Exam"] = relationship("Exam", back_populates="attempts")
    results: Mapped["AttemptResults | None"] = relationship(
        "AttemptResults", back_populates="attempt", uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def is_terminal(self) -> bool:
        """Check if the attempt reached finished or aborted."""
        return self.status in AttemptStatus.terminal()

    def get_exam(self) -> "Exam":
        return self.exam


class AttemptResults(Base):
    """
    Results of a finished attempt as reported by the proctoring service.
    """

    __tablename__ = "attempt_results"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    attempt_id: Mapped[int] = mapped_column(
        ForeignKey("attempts.id", ondelete="CASCADE"), nullable=False, index=True
    )

    when_finished: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    time_taken: Mapped[int] = mapped_column(default=0, nullable=False)  # seconds
    result: Mapped[float] = mapped_column(default=0.0, nullable=False)  # percent
    passed: Mapped[bool] = mapped_column(default=False, nullable=False)
    achieved_score: Mapped[int] = mapped_column(default=0, nullable=False)
    max_score: Mapped[int] = mapped_column(default=0, nullable=False)
    questions_count: Mapped[int] = mapped_column(default=0, nullable=False)
    questions_correct_count: Mapped[int] = mapped_column(default=0, nullable=False)
    certificate_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # Relationships
    attempt: Mapped["Attempt"] = relationship("Attempt", back_populates="results")
