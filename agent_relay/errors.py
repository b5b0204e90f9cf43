"""Typed error taxonomy shared by the gateway, workflow, and stream layers.

Every error carries a machine-checkable ``kind`` so callers decide between
retrying, aborting, and reporting without inspecting message text.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of relay failures."""

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    NETWORK = "network"
    BACKEND = "backend"
    MESSAGE_SUBMISSION_FAILED = "message_submission_failed"
    RUN_CREATION_FAILED = "run_creation_failed"
    RUN_FAILED = "run_failed"
    POLLING_TIMEOUT = "polling_timeout"
    INVALID_MESSAGE_FORMAT = "invalid_message_format"
    WORKFLOW_TIMEOUT = "workflow_timeout"
    RATE_LIMITED = "rate_limited"
    STREAM_ERROR = "stream_error"
    STREAM_TIMED_OUT = "stream_timed_out"


class RelayError(Exception):
    """Base class for all relay errors."""

    kind: ErrorKind = ErrorKind.BACKEND

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(RelayError):
    """Missing or malformed caller input. Not retried."""

    kind = ErrorKind.VALIDATION


class AuthenticationError(RelayError):
    """Bearer token could not be acquired."""

    kind = ErrorKind.AUTHENTICATION


class NetworkError(RelayError):
    """Transport failure that survived the gateway's retries."""

    kind = ErrorKind.NETWORK


class BackendError(RelayError):
    """Upstream answered with a non-2xx status or an unusable body."""

    kind = ErrorKind.BACKEND

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MessageSubmissionFailed(RelayError):
    kind = ErrorKind.MESSAGE_SUBMISSION_FAILED


class RunCreationFailed(RelayError):
    kind = ErrorKind.RUN_CREATION_FAILED


class RunFailed(RelayError):
    """Run reached a terminal failure status."""

    kind = ErrorKind.RUN_FAILED

    def __init__(self, run_id: str, status: str) -> None:
        super().__init__(f"Run {status}: {run_id}")
        self.run_id = run_id
        self.status = status


class PollingTimeout(RelayError):
    kind = ErrorKind.POLLING_TIMEOUT

    def __init__(self, message: str, run_id: str) -> None:
        super().__init__(message)
        self.run_id = run_id


class InvalidMessageFormat(RelayError):
    kind = ErrorKind.INVALID_MESSAGE_FORMAT


class WorkflowTimeout(RelayError):
    """Overall request deadline elapsed."""

    kind = ErrorKind.WORKFLOW_TIMEOUT


class RateLimitExceeded(RelayError):
    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str, key: str) -> None:
        super().__init__(message)
        self.key = key


class StreamError(RelayError):
    """Server sent an error frame or refused the stream request."""

    kind = ErrorKind.STREAM_ERROR


class StreamTimedOut(RelayError):
    """Stream was aborted, superseded, or hit its hard timeout."""

    kind = ErrorKind.STREAM_TIMED_OUT
