import pytest

from proctorflow.exceptions import ProctoringError
from proctorflow.models.db import AttemptStatus
from proctorflow.services.credentials import CredentialCheck, CredentialStore
from tests.conftest import CREDENTIALS


def test_from_config_skips_incomplete_entries(remote) -> None:
    store = CredentialStore.from_config(
        CREDENTIALS + [{"name": "broken"}, {"instance": "nameless.example.com"}],
        remote,
    )

    assert store.names() == ["main"]
    assert store.get("main").url == "https://exams.example.com/api/exmservice"


def test_unknown_name_raises_domain_error(services) -> None:
    with pytest.raises(ProctoringError, match="Unknown API credentials: other"):
        services.credentials.get("other")


def test_for_attempt_resolves_exam_credentials(services, make_attempt) -> None:
    attempt = services.store.get(make_attempt(AttemptStatus.PENDING_RESULTS))

    assert services.credentials.for_attempt(attempt).name == "main"


def test_test_credentials_reports_each_set(remote) -> None:
    store = CredentialStore.from_config(
        CREDENTIALS + [dict(CREDENTIALS[0], name="backup")],
        remote,
    )
    remote.invalid.add("backup")

    assert store.test_credentials() == [
        CredentialCheck(credentials_name="backup", success=False),
        CredentialCheck(credentials_name="main", success=True),
    ]


def test_proctoring_error_debug_info() -> None:
    error = ProctoringError("Api returned not allowed")
    error.add_debug_info(attemptid=42)

    assert str(error) == "Api returned not allowed (attemptid=42)"
