"""Domain exceptions."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from proctorflow.services.proctoring_api import ApiError


class ProctoringError(Exception):
    """A business logic/flow error talking to the proctoring service."""

    def __init__(self, message: str, api_error: ApiError | None = None):
        super().__init__(message)
        self.api_error = api_error
        self.debug_info: dict[str, object] = {}
        if api_error is not None:
            self.add_debug_info(api_error=api_error.code)

    def add_debug_info(self, **context: object) -> None:
        """Attach contextual data for logging."""
        self.debug_info.update(context)

    def __str__(self) -> str:
        message = super().__str__()
        if not self.debug_info:
            return message
        details = ", ".join(f"{key}={value}" for key, value in self.debug_info.items())
        return f"{message} ({details})"
