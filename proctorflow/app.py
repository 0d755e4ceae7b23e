"""Main FastAPI application with modularized routes."""
import threading

from fastapi import FastAPI

from proctorflow.config import REAPER_INTERVAL_SECONDS
from proctorflow.database import SessionLocal, init_db
from proctorflow.dependencies import Services, build_services
from proctorflow.logging_setup import setup_console_logging
from proctorflow.routes import attempts, maintenance
from proctorflow.services.reaper import schedule_sweeps


def create_app(services: Services | None = None, background_jobs: bool = True) -> FastAPI:
    """Build the app around explicitly constructed services."""
    app = FastAPI(title="Proctored Attempts API")
    app.state.services = services or build_services(SessionLocal)
    stop_event = threading.Event()

    # Startup events
    @app.on_event("startup")
    def startup_events() -> None:
        """Initialize database and start the fetch worker and reaper on startup."""
        if not background_jobs:
            return
        init_db()
        app.state.services.worker.start()
        schedule_sweeps(app.state.services.reaper, REAPER_INTERVAL_SECONDS, stop_event)

    @app.on_event("shutdown")
    def shutdown_events() -> None:
        stop_event.set()
        app.state.services.worker.stop(timeout=5)

    # Include routers
    app.include_router(attempts.router)
    app.include_router(maintenance.router)
    return app


setup_console_logging()

app = create_app()
