from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from proctorflow.database import init_db
from proctorflow.dependencies import build_services
from proctorflow.models.db import Attempt, AttemptStatus, Exam
from proctorflow.services.proctoring_api import ApiCredentials

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

CREDENTIALS = [
    {
        "name": "main",
        "instance": "exams.example.com",
        "owner_key": "owner",
        "organisation_key": "org",
    }
]

RESOLVED_ROW = {
    "result": 85.5,
    "passed": "Pass",
    "whenFinished": "2026-01-02T10:00:00Z",
    "timeTaken": "1800",
    "achievedScore": "17",
    "maxScore": "20",
    "certDownloadUrl": "https://exams.example.com/cert/1.pdf",
    "questionDetails": {
        "blocks": [
            {"questions": [{"points_reached": 1}, {"points_reached": 0}]},
            {"questions": [{"points_reached": 2}]},
        ]
    },
}


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeRemote:
    """Client factory handing out fakes that share queued replies."""

    def __init__(self):
        self.replies: list = []
        self.calls: list[tuple[str, str, str]] = []
        self.invalid: set[str] = set()

    def __call__(self, credentials: ApiCredentials) -> "FakeApiClient":
        return FakeApiClient(self, credentials)


class FakeApiClient:
    def __init__(self, remote: FakeRemote, credentials: ApiCredentials):
        self.remote = remote
        self.credentials = credentials

    def get_participant_overview_with_details(self, participant_id, booking_id):
        self.remote.calls.append((self.credentials.name, participant_id, booking_id))
        reply = self.remote.replies.pop(0) if self.remote.replies else []
        if callable(reply):
            reply = reply()
        return reply

    def test_credentials(self) -> bool:
        return self.credentials.name not in self.remote.invalid


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def services(session_factory, clock, remote):
    return build_services(
        session_factory,
        credentials=CREDENTIALS,
        client_factory=remote,
        clock=clock,
    )


@pytest.fixture
def exam_id(session_factory) -> int:
    with session_factory() as db:
        exam = Exam(name="Final exam", credentials_name="main")
        db.add(exam)
        db.commit()
        return exam.id


@pytest.fixture
def make_attempt(session_factory, exam_id):
    def _make(
        status: AttemptStatus = AttemptStatus.PENDING_RESULTS,
        modified: datetime = T0,
        attempt_id: int | None = None,
        user_id: int = 3,
        exam: int | None = None,
    ) -> int:
        with session_factory() as db:
            attempt = Attempt(
                id=attempt_id,
                exam_id=exam or exam_id,
                user_id=user_id,
                participant_id="p-1",
                booking_id="b-1",
                status=status.value,
                time_created=modified,
                time_modified=modified,
            )
            db.add(attempt)
            db.commit()
            return attempt.id

    return _make
