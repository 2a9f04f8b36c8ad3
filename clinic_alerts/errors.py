"""Error types surfaced by the alert handlers and collaborator client."""

from __future__ import annotations

from typing import Any, List, Optional

GENERIC_REQUEST_FAILURE = "Request failed"


class ClinicAlertsError(Exception):
    """Base class for user-facing alert errors."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AlertValidationError(ClinicAlertsError):
    """Raised when required input is missing before any request is made."""

    kind = "validation"

    def __init__(self, message: str, errors: Optional[List[Any]] = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


class RequestFailedError(ClinicAlertsError):
    """Raised when the collaborator rejects a call or cannot be reached."""

    kind = "request"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message or GENERIC_REQUEST_FAILURE)
        self.status_code = status_code


def describe_validation_errors(errors: List[Any]) -> str:
    """Return a single readable message for a list of pydantic errors."""

    if not errors:
        return "Invalid input"
    error = errors[0]
    loc = [str(part) for part in error.get("loc", ()) if part != "body"]
    field = ".".join(loc) or "Request body"
    if error.get("type") == "missing":
        return f"{field} is required"
    message = str(error.get("msg") or "Invalid input")
    prefix = "Value error, "
    if message.startswith(prefix):
        message = message[len(prefix):]
    return message


__all__ = [
    "ClinicAlertsError",
    "AlertValidationError",
    "RequestFailedError",
    "GENERIC_REQUEST_FAILURE",
    "describe_validation_errors",
]
