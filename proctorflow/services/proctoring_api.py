"""HTTP client for the remote proctoring exam service."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import requests

from proctorflow.config import API_TIMEOUT_SECONDS

log = logging.getLogger(__name__)

API_PATH = "/api/exmservice"
ACCEPT_HEADER = "application/vnd.bizexaminer.exmservice-v1+json"

STATUS_OK = 200
STATUS_BAD_REQUEST = 400
STATUS_UNAUTHORIZED = 401
STATUS_NOT_FOUND = 404
STATUS_ERROR = 500


@dataclass(frozen=True)
class ApiCredentials:
    """A named set of keys for one proctoring service instance."""

    name: str
    instance: str
    owner_key: str
    organisation_key: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApiCredentials":
        return cls(
            name=str(data.get("name", "")),
            instance=str(data.get("instance", "")),
            owner_key=str(data.get("owner_key", "")),
            organisation_key=str(data.get("organisation_key", "")),
        )

    @property
    def url(self) -> str:
        return f"https://{self.instance.strip('/')}{API_PATH}"


@dataclass(frozen=True)
class ApiError:
    """An error returned by (or while reaching) the API."""

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)


class ApiResult:
    """Parsed response of one API function call."""

    def __init__(self, function: str, response: requests.Response):
        self.function = function
        self.status_code = response.status_code

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {
                "success": False,
                "errorcode": "json-parsing-error",
                "errormessage": "Error parsing JSON response.",
            }
        self.body = body

        self.success = bool(body.get("success", False))
        if self.success:
            self.error_code = None
            self.error_message = None
            self.response = body.get("response")
        else:
            self.error_code = body.get("errorcode") or ""
            self.error_message = body.get("errormessage") or ""
            self.response = None


def check_result(result: ApiResult | ApiError) -> ApiError | None:
    """
    Map HTTP status codes and API error codes to an ApiError.
    Returns None when the call succeeded.
    """
    if isinstance(result, ApiError):
        log.debug("API: %s", result.message)
        return result

    if result.status_code == STATUS_OK and result.success:
        return None

    error = None
    if result.error_code == "keys_error":
        error = ApiError("api-not-allowed", "Api returned not allowed")
    elif result.error_code == "json-parsing-error":
        error = ApiError("api-error", "Api returned malformed JSON")

    if result.status_code == STATUS_UNAUTHORIZED:
        error = ApiError("api-not-allowed", "Api returned not allowed")
    elif result.status_code == STATUS_NOT_FOUND:
        error = ApiError("api-not-found", "Requested Api url was not found.")
    elif error is None:
        error = ApiError(
            "api-error",
            "Api returned another error",
            {"function": result.function, "errorcode": result.error_code},
        )

    log.debug("API: %s (%s)", error.message, result.function)
    return error


class ProctoringApiClient:
    """Stateless wrapper around the exam service functions this app needs."""

    def __init__(
        self,
        credentials: ApiCredentials,
        session: requests.Session | None = None,
        timeout: int = API_TIMEOUT_SECONDS,
    ):
        self.credentials = credentials
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": ACCEPT_HEADER,
                "User-Agent": "proctorflow",
            }
        )

    def make_call(self, function: str, data: dict[str, Any] | None = None) -> ApiResult | ApiError:
        """POST one API function; transport failures come back as ApiError."""
        body = dict(data or {})
        body.update(
            {
                "function": function,
                "key_owner": self.credentials.owner_key,
                "key_organisation": self.credentials.organisation_key,
            }
        )
        try:
            response = self.session.post(
                self.credentials.url, data=body, timeout=self.timeout
            )
        except requests.Timeout as exc:
            return ApiError("api-timeout", f"Api call {function} timed out: {exc}")
        except requests.RequestException as exc:
            return ApiError("api-unreachable", str(exc))
        return ApiResult(function, response)

    def get_participant_overview_with_details(
        self, participant_id: str, booking_id: str
    ) -> list[dict[str, Any]] | ApiError:
        """Get the result rows of a participant in a booking."""
        result = self.make_call(
            "getParticipantOverviewWithDetailsAndContent",
            {"participantID": participant_id, "exmBookingsId": booking_id},
        )
        error = check_result(result)
        if error:
            return error
        rows = result.response
        return rows if isinstance(rows, list) else []

    def test_credentials(self) -> bool:
        """Check the credentials by calling a cheap read-only function."""
        result = self.make_call("getProductParts")
        return check_result(result) is None
