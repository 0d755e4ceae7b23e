"""Maintenance and diagnostics endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends

from proctorflow.dependencies import Services, get_services
from proctorflow.models import CredentialCheckResponse, SweepResponse

router = APIRouter(prefix="/api", tags=["maintenance"])


@router.post("/maintenance/reap", response_model=SweepResponse)
def reap_abandoned_attempts(
    services: Annotated[Services, Depends(get_services)],
) -> SweepResponse:
    """Abort overdue attempts now instead of waiting for the periodic sweep."""
    report = services.reaper.sweep()
    return SweepResponse(
        threshold=report.threshold,
        considered=report.considered,
        aborted=report.aborted,
    )


@router.get("/health/credentials", response_model=list[CredentialCheckResponse])
def check_credentials(
    services: Annotated[Services, Depends(get_services)],
) -> list[CredentialCheckResponse]:
    """Test the configured API credentials."""
    return [
        CredentialCheckResponse(credentials_name=check.credentials_name, success=check.success)
        for check in services.credentials.test_credentials()
    ]
