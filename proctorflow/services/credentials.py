"""Configured API credential sets and their health check."""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from proctorflow.exceptions import ProctoringError
from proctorflow.models.db.attempt import Attempt
from proctorflow.services.proctoring_api import ApiCredentials, ProctoringApiClient

log = logging.getLogger(__name__)

ClientFactory = Callable[[ApiCredentials], ProctoringApiClient]


@dataclass(frozen=True)
class CredentialCheck:
    """Outcome of testing one credential set against the API."""

    credentials_name: str
    success: bool


class CredentialStore:
    """Lookup of credential sets by the name an exam references."""

    def __init__(
        self,
        credentials: Iterable[ApiCredentials],
        client_factory: ClientFactory = ProctoringApiClient,
    ):
        self._credentials = {item.name: item for item in credentials}
        self._client_factory = client_factory

    @classmethod
    def from_config(
        cls,
        raw: list[dict[str, Any]],
        client_factory: ClientFactory = ProctoringApiClient,
    ) -> "CredentialStore":
        credentials = []
        for item in raw:
            entry = ApiCredentials.from_dict(item)
            if not entry.name or not entry.instance:
                log.warning("Skipping incomplete API credentials entry %r", entry.name)
                continue
            credentials.append(entry)
        return cls(credentials, client_factory)

    def names(self) -> list[str]:
        return sorted(self._credentials)

    def get(self, name: str) -> ApiCredentials:
        try:
            return self._credentials[name]
        except KeyError:
            raise ProctoringError(f"Unknown API credentials: {name}") from None

    def for_attempt(self, attempt: Attempt) -> ApiCredentials:
        """Resolve the credential set needed to poll results for an attempt."""
        exam = attempt.get_exam()
        if exam is None:
            raise ProctoringError("Attempt has no exam")
        return self.get(exam.get_api_credentials())

    def client(self, credentials: ApiCredentials) -> ProctoringApiClient:
        return self._client_factory(credentials)

    def test_credentials(self) -> list[CredentialCheck]:
        """Test every configured credential set against the API."""
        checks = []
        for name in self.names():
            success = self.client(self._credentials[name]).test_credentials()
            if not success:
                log.warning("API credentials %s failed the health check", name)
            checks.append(CredentialCheck(credentials_name=name, success=success))
        return checks
