"""API route modules."""
from proctorflow.routes import attempts, maintenance

__all__ = ["attempts", "maintenance"]
