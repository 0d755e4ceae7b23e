import logging
from datetime import timedelta

from sqlalchemy import func, select

from proctorflow.models.db import AttemptResults, AttemptStatus, Exam
from proctorflow.services.proctoring_api import ApiError
from proctorflow.services.results_client import FetchOutcomeKind
from proctorflow.utils import as_utc
from tests.conftest import RESOLVED_ROW, T0


def _results_count(session_factory) -> int:
    with session_factory() as db:
        return db.execute(select(func.count(AttemptResults.id))).scalar()


def test_pending_then_resolved(services, make_attempt, remote, clock) -> None:
    attempt_id = make_attempt(AttemptStatus.PENDING_RESULTS, attempt_id=7)
    scheduler = services.scheduler
    assert scheduler.schedule(attempt_id, 3)

    remote.replies.append([{"result": None}])
    assert scheduler.execute(attempt_id) is FetchOutcomeKind.PENDING

    attempt = services.store.get(attempt_id)
    assert attempt.status == AttemptStatus.PENDING_RESULTS.value
    assert as_utc(attempt.time_modified) == T0
    job = services.queue.get(attempt_id)
    assert as_utc(job.next_run_at) == T0 + scheduler.retry_delay

    clock.advance(minutes=5)
    remote.replies.append([RESOLVED_ROW])
    assert scheduler.execute(attempt_id) is FetchOutcomeKind.RESOLVED

    attempt = services.store.get(attempt_id)
    assert attempt.status == AttemptStatus.FINISHED.value
    assert attempt.results.result == 85.5
    assert attempt.results.questions_count == 3
    assert attempt.results.questions_correct_count == 2
    assert services.queue.get(attempt_id) is None
    assert remote.calls == [("main", "p-1", "b-1"), ("main", "p-1", "b-1")]


def test_empty_overview_counts_as_pending(services, make_attempt, remote) -> None:
    attempt_id = make_attempt(AttemptStatus.PENDING_RESULTS)
    remote.replies.append([])

    assert services.scheduler.execute(attempt_id) is FetchOutcomeKind.PENDING
    assert services.queue.get(attempt_id) is not None


def test_duplicate_schedule_finishes_once(services, make_attempt, remote, session_factory, clock) -> None:
    attempt_id = make_attempt(AttemptStatus.PENDING_RESULTS)
    services.scheduler.schedule(attempt_id, 3, delay=timedelta(0))
    services.scheduler.schedule(attempt_id, 3, delay=timedelta(0))
    remote.replies.extend([[RESOLVED_ROW], [RESOLVED_ROW]])

    assert services.worker.run_pending() == 1
    clock.advance(hours=1)
    assert services.worker.run_pending() == 0

    assert len(remote.calls) == 1
    assert _results_count(session_factory) == 1
    assert services.store.get(attempt_id).status == AttemptStatus.FINISHED.value


def test_execute_on_terminal_attempt_does_nothing(services, make_attempt, remote) -> None:
    finished = make_attempt(AttemptStatus.FINISHED)
    aborted = make_attempt(AttemptStatus.ABORTED)

    assert services.scheduler.execute(finished) is None
    assert services.scheduler.execute(aborted) is None

    assert remote.calls == []
    assert as_utc(services.store.get(finished).time_modified) == T0
    assert services.store.get(aborted).status == AttemptStatus.ABORTED.value


def test_execute_on_started_attempt_waits_for_completion(services, make_attempt, remote) -> None:
    attempt_id = make_attempt(AttemptStatus.STARTED)

    assert services.scheduler.execute(attempt_id) is None
    assert remote.calls == []
    assert services.queue.get(attempt_id) is None


def test_execute_without_attempt_exits_early(services, remote) -> None:
    assert services.scheduler.execute(None) is None
    assert services.scheduler.execute(404) is None
    assert remote.calls == []


def test_remote_error_is_logged_not_retried(services, make_attempt, remote, caplog) -> None:
    attempt_id = make_attempt(AttemptStatus.PENDING_RESULTS)
    remote.replies.append(ApiError("api-not-allowed", "Api returned not allowed"))

    with caplog.at_level(logging.ERROR):
        assert services.scheduler.execute(attempt_id) is FetchOutcomeKind.ERROR

    assert services.store.get(attempt_id).status == AttemptStatus.PENDING_RESULTS.value
    assert services.queue.get(attempt_id) is None
    assert f"attemptid={attempt_id}" in caplog.text
    assert "api-not-allowed" in caplog.text


def test_unknown_credentials_is_a_domain_error(services, make_attempt, session_factory, remote, caplog) -> None:
    with session_factory() as db:
        exam = Exam(name="Legacy exam", credentials_name="gone")
        db.add(exam)
        db.commit()
        exam_id = exam.id
    attempt_id = make_attempt(AttemptStatus.PENDING_RESULTS, exam=exam_id)

    with caplog.at_level(logging.ERROR):
        assert services.scheduler.execute(attempt_id) is FetchOutcomeKind.ERROR

    assert remote.calls == []
    assert "Unknown API credentials: gone" in caplog.text
    assert services.store.get(attempt_id).status == AttemptStatus.PENDING_RESULTS.value


def test_abort_during_fetch_wins(services, make_attempt, remote, session_factory) -> None:
    attempt_id = make_attempt(AttemptStatus.PENDING_RESULTS)

    def abort_then_resolve():
        services.store.transition(attempt_id, AttemptStatus.ABORTED, T0)
        return [RESOLVED_ROW]

    remote.replies.append(abort_then_resolve)

    assert services.scheduler.execute(attempt_id) is FetchOutcomeKind.RESOLVED
    assert services.store.get(attempt_id).status == AttemptStatus.ABORTED.value
    assert _results_count(session_factory) == 0


def test_schedule_refuses_terminal_and_missing_attempts(services, make_attempt) -> None:
    aborted = make_attempt(AttemptStatus.ABORTED)

    assert services.scheduler.schedule(aborted, 3) is False
    assert services.scheduler.schedule(404, 3) is False
    assert services.queue.count() == 0


def test_cancel_without_job_is_noop(services) -> None:
    assert services.scheduler.cancel(7, 3) is False
