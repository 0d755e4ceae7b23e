"""Pydantic models."""
from proctorflow.models.attempts import (
    AttemptResponse,
    AttemptResultsResponse,
    CredentialCheckResponse,
    ScheduleResponse,
    SweepResponse,
)

__all__ = [
    "AttemptResponse",
    "AttemptResultsResponse",
    "CredentialCheckResponse",
    "ScheduleResponse",
    "SweepResponse",
]
