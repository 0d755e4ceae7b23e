"""Database models."""
from proctorflow.models.db.exam import Exam, OverdueHandling
from proctorflow.models.db.attempt import Attempt, AttemptResults, AttemptStatus
from proctorflow.models.db.fetch_job import FetchJob

__all__ = [
    "Exam",
    "Attempt",
    "AttemptResults",
    "AttemptStatus",
    "FetchJob",
    "OverdueHandling",
]
