"""
Custom exception classes for the progress monitor.

These exceptions never reach the host from the dispatch path. The monitor
catches them and turns them into MonitorState fields, so the UI observes
errors exclusively through its subscribe callbacks.

Usage:
    from syncwatch.exceptions import MissingAuthError, TransportError

    raise MissingAuthError()                      # "Authentication token not found"
    raise TransportError(status_code=401)         # auth failure banner text
    raise SnapshotParseError("missing 'status'")  # one bad message, recovered
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Error taxonomy surfaced on MonitorState."""
    MISSING_AUTH = "missing_auth"
    PARSE_ERROR = "parse_error"
    TRANSPORT_ERROR = "transport_error"
    JOB_FAILURE = "job_failure"


CONNECTION_FAILED_MESSAGE = "Connection to sync progress failed"
AUTH_FAILED_MESSAGE = "Authentication failed. Please refresh and try again."
MISSING_AUTH_MESSAGE = "Authentication token not found"


class MonitorError(Exception):
    """
    Base exception class for monitor-level errors.

    Attributes:
        message: Human-readable error message (shown to the user)
        kind: ErrorKind used when the error is surfaced on MonitorState
        error_code: Machine-readable error code
    """

    kind: ErrorKind = ErrorKind.TRANSPORT_ERROR

    def __init__(self, message: str, error_code: str | None = None):
        self.message = message
        self.error_code = error_code or self.kind.name
        super().__init__(message)


class MissingAuthError(MonitorError):
    """
    No token available at open() time.

    Fatal for that open() attempt; no connection is made.
    """

    kind = ErrorKind.MISSING_AUTH

    def __init__(self):
        super().__init__(MISSING_AUTH_MESSAGE, error_code="MISSING_AUTH")


class SnapshotParseError(MonitorError):
    """
    One inbound message could not be turned into a Snapshot.

    Recovered locally: the subscription stays open.
    """

    kind = ErrorKind.PARSE_ERROR

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__("Error parsing progress data", error_code="PARSE_ERROR")


class TransportError(MonitorError):
    """
    The streaming connection itself failed.

    Usage:
        raise TransportError()                    # network failure
        raise TransportError(status_code=401)     # rejected token
        raise TransportError(reason="stream ended")
    """

    kind = ErrorKind.TRANSPORT_ERROR

    def __init__(
        self,
        status_code: int | None = None,
        reason: str | None = None,
        is_auth_failure: bool | None = None,
    ):
        if is_auth_failure is None:
            is_auth_failure = status_code in (401, 403)
        self.status_code = status_code
        self.reason = reason
        self.is_auth_failure = is_auth_failure
        message = AUTH_FAILED_MESSAGE if is_auth_failure else CONNECTION_FAILED_MESSAGE
        super().__init__(
            message,
            error_code="AUTH_FAILED" if is_auth_failure else "CONNECTION_FAILED",
        )

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code:
            parts.append(f"[status={self.status_code}]")
        if self.reason:
            parts.append(f"[reason={self.reason}]")
        return " ".join(parts)
