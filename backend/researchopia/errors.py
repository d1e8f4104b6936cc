"""Error taxonomy for the evaluation API.

Every error carries a stable ``code`` string, a human-readable ``message``
and the HTTP status it maps to. The exception handlers in ``main`` turn
them into the response envelope.
"""

from __future__ import annotations


class ApiError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "InternalError"
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(ApiError):
    """Malformed request body or query."""

    code = "ValidationError"
    status_code = 400


class OutOfRange(ValidationError):
    """A well-formed value outside the accepted range (e.g. a score of 11)."""

    status_code = 422


class InvalidTarget(ValidationError):
    """The (targetType, targetId) pair cannot name a target."""

    code = "InvalidTarget"


class TargetNotFound(InvalidTarget):
    """The identifier is well-formed but no paper or webpage matches it."""

    code = "NotFound"
    status_code = 404


class Unauthenticated(ApiError):
    code = "Unauthenticated"
    status_code = 401


class Forbidden(ApiError):
    code = "Forbidden"
    status_code = 403


class NotFound(ApiError):
    code = "NotFound"
    status_code = 404


class UpstreamError(ApiError):
    """The auth provider or the data store failed."""

    code = "UpstreamError"
    status_code = 502
