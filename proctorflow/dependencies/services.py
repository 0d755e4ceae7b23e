"""Wiring of the attempt lifecycle services."""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from fastapi import Request
from sqlalchemy.orm import sessionmaker

from proctorflow import config
from proctorflow.services.attempt_store import AttemptStore
from proctorflow.services.credentials import ClientFactory, CredentialStore
from proctorflow.services.fetch_scheduler import ResultFetchScheduler
from proctorflow.services.job_queue import JobQueue
from proctorflow.services.proctoring_api import ProctoringApiClient
from proctorflow.services.reaper import AbandonmentReaper
from proctorflow.services.results_client import ResultsClient
from proctorflow.services.worker import JobWorker
from proctorflow.utils import utc_now


@dataclass
class Services:
    store: AttemptStore
    queue: JobQueue
    credentials: CredentialStore
    scheduler: ResultFetchScheduler
    reaper: AbandonmentReaper
    worker: JobWorker


def build_services(
    session_factory: sessionmaker,
    credentials: list[dict[str, Any]] | None = None,
    client_factory: ClientFactory = ProctoringApiClient,
    clock: Callable[[], datetime] = utc_now,
) -> Services:
    """Construct every service with explicit references to its collaborators."""
    store = AttemptStore(session_factory)
    queue = JobQueue(session_factory, lease_seconds=config.JOB_LEASE_SECONDS)
    credential_store = CredentialStore.from_config(
        config.API_CREDENTIALS if credentials is None else credentials,
        client_factory,
    )
    scheduler = ResultFetchScheduler(
        store,
        queue,
        credential_store,
        ResultsClient(client_factory),
        retry_delay_seconds=config.RESULTS_RETRY_DELAY_SECONDS,
        clock=clock,
    )
    reaper = AbandonmentReaper(
        store,
        scheduler,
        inactivity_window=timedelta(days=config.ABANDONED_AFTER_DAYS),
        clock=clock,
    )
    worker = JobWorker(
        queue,
        scheduler,
        poll_seconds=config.WORKER_POLL_SECONDS,
        batch_size=config.WORKER_BATCH_SIZE,
        retry_delay_seconds=config.RESULTS_RETRY_DELAY_SECONDS,
        clock=clock,
    )
    return Services(
        store=store,
        queue=queue,
        credentials=credential_store,
        scheduler=scheduler,
        reaper=reaper,
        worker=worker,
    )


def get_services(request: Request) -> Services:
    """Dependency to get the services built at startup."""
    return request.app.state.services
