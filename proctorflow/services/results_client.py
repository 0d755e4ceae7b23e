"""Fetches attempt results from the proctoring service."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable

from proctorflow.exceptions import ProctoringError
from proctorflow.models.db.attempt import Attempt, AttemptResults
from proctorflow.services.proctoring_api import ApiCredentials, ApiError, ProctoringApiClient
from proctorflow.utils import as_utc, parse_iso_timestamp

log = logging.getLogger(__name__)


class FetchOutcomeKind(str, enum.Enum):
    """What polling the remote service produced."""

    RESOLVED = "resolved"
    PENDING = "pending"
    ERROR = "error"


@dataclass
class FetchOutcome:
    kind: FetchOutcomeKind
    results: AttemptResults | None = None
    error: ProctoringError | None = None

    @classmethod
    def resolved(cls, results: AttemptResults) -> "FetchOutcome":
        return cls(FetchOutcomeKind.RESOLVED, results=results)

    @classmethod
    def pending(cls) -> "FetchOutcome":
        return cls(FetchOutcomeKind.PENDING)

    @classmethod
    def failed(cls, error: ProctoringError) -> "FetchOutcome":
        return cls(FetchOutcomeKind.ERROR, error=error)


def build_results(raw: dict[str, Any]) -> AttemptResults:
    """Build an AttemptResults record from a raw result row of the API."""
    questions = 0
    questions_correct = 0
    details = raw.get("questionDetails") or {}
    for block in details.get("blocks", []):
        for question in block.get("questions", []):
            questions += 1
            if (question.get("points_reached") or 0) > 0:
                questions_correct += 1

    when_finished = parse_iso_timestamp(raw.get("whenFinished"))
    if when_finished is not None:
        when_finished = as_utc(when_finished)

    return AttemptResults(
        when_finished=when_finished,
        time_taken=int(raw.get("timeTaken") or 0),
        result=float(raw.get("result") or 0),
        passed=raw.get("passed") == "Pass",
        achieved_score=int(raw.get("achievedScore") or 0),
        max_score=int(raw.get("maxScore") or 0),
        certificate_url=raw.get("certDownloadUrl"),
        questions_count=questions,
        questions_correct_count=questions_correct,
    )


class ResultsClient:
    """
    Remote results collaborator.

    Never raises for domain failures: every call ends in exactly one
    FetchOutcome.
    """

    def __init__(
        self,
        client_factory: Callable[[ApiCredentials], ProctoringApiClient] = ProctoringApiClient,
    ):
        self._client_factory = client_factory

    def fetch_results(self, attempt: Attempt, credentials: ApiCredentials) -> FetchOutcome:
        try:
            return self._fetch(attempt, credentials)
        except ProctoringError as exc:
            exc.add_debug_info(attemptid=attempt.id)
            return FetchOutcome.failed(exc)

    def _fetch(self, attempt: Attempt, credentials: ApiCredentials) -> FetchOutcome:
        if not attempt.participant_id or not attempt.booking_id:
            raise ProctoringError("Attempt has no booking at the proctoring service")

        client = self._client_factory(credentials)
        rows = client.get_participant_overview_with_details(
            attempt.participant_id, attempt.booking_id
        )
        if isinstance(rows, ApiError):
            raise ProctoringError(rows.message, api_error=rows)

        if not rows or not isinstance(rows[0], dict) or rows[0].get("result") is None:
            return FetchOutcome.pending()

        try:
            results = build_results(rows[0])
        except (TypeError, ValueError, AttributeError) as exc:
            raise ProctoringError(f"Malformed results payload: {exc}") from exc
        return FetchOutcome.resolved(results)
