"""Attempt lifecycle endpoints."""
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from proctorflow.dependencies import Services, get_services
from proctorflow.models import AttemptResponse, ScheduleResponse
from proctorflow.models.db.attempt import Attempt
from proctorflow.services import exam_service

router = APIRouter(prefix="/api/attempts/{attempt_id}", tags=["attempts"])


def _get_attempt_or_404(services: Services, attempt_id: int) -> Attempt:
    attempt = services.store.get(attempt_id)
    if attempt is None:
        raise HTTPException(status_code=404, detail="Attempt not found")
    return attempt


@router.get("", response_model=AttemptResponse)
def get_attempt(
    attempt_id: int,
    services: Annotated[Services, Depends(get_services)],
) -> AttemptResponse:
    """Get attempt status and results."""
    attempt = _get_attempt_or_404(services, attempt_id)
    response = AttemptResponse.model_validate(attempt)
    response.fetch_scheduled = services.queue.get(attempt_id) is not None
    return response


@router.post("/complete", response_model=ScheduleResponse)
def complete_attempt(
    attempt_id: int,
    services: Annotated[Services, Depends(get_services)],
) -> ScheduleResponse:
    """Called when the proctored session ended; starts waiting for results."""
    attempt = _get_attempt_or_404(services, attempt_id)
    status = exam_service.complete_attempt(services.store, services.scheduler, attempt.id)
    if status is None:
        raise HTTPException(
            status_code=409, detail=f"Attempt is {attempt.status}, not started"
        )
    return ScheduleResponse(status=status.value, attempt_id=attempt.id)


@router.post("/fetch-results", response_model=ScheduleResponse)
def fetch_results(
    attempt_id: int,
    services: Annotated[Services, Depends(get_services)],
) -> ScheduleResponse:
    """Queue an on-demand results fetch."""
    attempt = _get_attempt_or_404(services, attempt_id)
    if not services.scheduler.schedule(attempt.id, attempt.user_id, delay=timedelta(0)):
        raise HTTPException(status_code=409, detail=f"Attempt is {attempt.status}")
    return ScheduleResponse(status="scheduled", attempt_id=attempt.id)
