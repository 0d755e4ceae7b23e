"""FastAPI dependencies."""
from proctorflow.dependencies.services import Services, build_services, get_services

__all__ = ["Services", "build_services", "get_services"]
