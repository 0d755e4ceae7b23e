"""Attempt-related Pydantic models."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class AttemptResultsResponse(BaseModel):
    """Results reported by the proctoring service."""

    model_config = ConfigDict(from_attributes=True)

    when_finished: datetime | None = None
    time_taken: int
    result: float
    passed: bool
    achieved_score: int
    max_score: int
    questions_count: int
    questions_correct_count: int
    certificate_url: str | None = None


class AttemptResponse(BaseModel):
    """Model for attempt state."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    exam_id: int
    user_id: int
    status: str
    time_created: datetime
    time_modified: datetime
    result_id: int | None = None
    results: AttemptResultsResponse | None = None
    fetch_scheduled: bool = False


class ScheduleResponse(BaseModel):
    """Model for scheduling/completion responses."""

    status: str
    attempt_id: int


class SweepResponse(BaseModel):
    """Model for an abandoned attempts sweep report."""

    threshold: datetime
    considered: int
    aborted: int


class CredentialCheckResponse(BaseModel):
    """Model for one credential set health check."""

    credentials_name: str
    success: bool
