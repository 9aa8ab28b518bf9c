from __future__ import annotations

from enum import Enum

from google.api_core import exceptions as gexc


class ErrorKind(str, Enum):
    AUTH = "auth"
    QUOTA = "quota"
    TRANSIENT = "transient"
    UNKNOWN = "unknown"


class ServiceError(RuntimeError):
    """Failure reported by an external generation service.

    ``kind`` lets a collaborator state the classification directly instead of
    leaving it to message matching.
    """

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.UNKNOWN) -> None:
        super().__init__(message)
        self.kind = kind


UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."

_AUTH_TYPES = (gexc.Unauthenticated, gexc.PermissionDenied)
_QUOTA_TYPES = (gexc.ResourceExhausted, gexc.TooManyRequests)
_TRANSIENT_TYPES = (gexc.ServiceUnavailable, gexc.DeadlineExceeded, gexc.InternalServerError)


def error_message(exc: BaseException) -> str:
    return str(exc) or UNKNOWN_ERROR_MESSAGE


def classify_error(exc: BaseException) -> ErrorKind:
    if isinstance(exc, ServiceError) and exc.kind is not ErrorKind.UNKNOWN:
        return exc.kind
    if isinstance(exc, _QUOTA_TYPES):
        return ErrorKind.QUOTA
    if isinstance(exc, _AUTH_TYPES):
        return ErrorKind.AUTH
    if isinstance(exc, _TRANSIENT_TYPES):
        return ErrorKind.TRANSIENT
    return _classify_message(exc)


def _classify_message(exc: BaseException) -> ErrorKind:
    # best-effort match on free-text messages, e.g. "API key not valid"
    msg = str(exc).lower()
    if "api key" in msg:
        return ErrorKind.AUTH
    if "quota" in msg:
        return ErrorKind.QUOTA
    return ErrorKind.UNKNOWN


def is_critical(exc: BaseException) -> bool:
    """AUTH or QUOTA by type, or a message naming an API key or quota problem."""
    critical = (ErrorKind.AUTH, ErrorKind.QUOTA)
    return classify_error(exc) in critical or _classify_message(exc) in critical
