"""
Exam model: the exam definition an attempt belongs to.
"""

from __future__ import annotations

import enum
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from proctorflow.database import Base
from proctorflow.utils import as_utc

if TYPE_CHECKING:
    from proctorflow.models.db.attempt import Attempt


class OverdueHandling(str, enum.Enum):
    """What happens to attempts finished after the exam closed."""

    GRACE_PERIOD = "graceperiod"
    CANCEL = "cancel"


class Exam(Base):
    """
    Exam definition.
    References the named API credential set used for the remote service.
    """

    __tablename__ = "exams"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    credentials_name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Access restrictions
    time_close: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    overdue_handling: Mapped[str] = mapped_column(
        String(20), default=OverdueHandling.CANCEL.value, nullable=False
    )
    grace_period: Mapped[int | None] = mapped_column(nullable=True)  # seconds

    # Relationships
    attempts: Mapped[list["Attempt"]] = relationship(
        "Attempt", back_populates="exam", cascade="all, delete-orphan"
    )

    def get_api_credentials(self) -> str:
        """Name of the credential set this exam talks to the API with."""
        return self.credentials_name

    def allows_finish_at(self, now: datetime) -> bool:
        """
        Whether an attempt may still be finished at ``now``.

        After ``time_close`` this depends on the overdue handling: ``cancel``
        refuses, ``graceperiod`` allows until the grace period ran out.
        """
        if self.time_close is None:
            return True
        closed_at = as_utc(self.time_close)
        if now <= closed_at:
            return True
        if self.overdue_handling == OverdueHandling.GRACE_PERIOD.value:
            if not self.grace_period:
                return False
            return now <= closed_at + timedelta(seconds=self.grace_period)
        return self.overdue_handling != OverdueHandling.CANCEL.value
