"""
Conversion error taxonomy and exceptions.
"""
import enum
from typing import Optional


class ErrorCode(str, enum.Enum):
    """Error codes recorded on failed conversion jobs."""
    QUOTA_EXCEEDED = 'QUOTA_EXCEEDED'
    TIMEOUT = 'TIMEOUT'
    INVALID_INPUT = 'INVALID_INPUT'
    NETWORK_ERROR = 'NETWORK_ERROR'
    PERMISSION_DENIED = 'PERMISSION_DENIED'
    UNKNOWN_ERROR = 'UNKNOWN_ERROR'


# Checked in order; the first matching keyword wins
_KEYWORDS = (
    (ErrorCode.QUOTA_EXCEEDED, ('quota', 'limit')),
    (ErrorCode.TIMEOUT, ('timeout',)),
    (ErrorCode.INVALID_INPUT, ('invalid',)),
    (ErrorCode.NETWORK_ERROR, ('network', 'connection')),
    (ErrorCode.PERMISSION_DENIED, ('permission', 'access')),
)


def classify_error(message: Optional[str]) -> ErrorCode:
    """
    Map a provider or storage error message to an error code.

    Matching is a case-insensitive substring search. This is the only place
    that knows about message wording; swap it for structured provider codes
    here when they become available.
    """
    if not message:
        return ErrorCode.UNKNOWN_ERROR

    lowered = message.lower()
    for code, keywords in _KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return code
    return ErrorCode.UNKNOWN_ERROR


def error_message_of(exc: BaseException) -> str:
    """Message recorded for an exception; falls back to the class name."""
    return str(exc) or exc.__class__.__name__


class NarratorError(Exception):
    """Base class for conversion errors."""


class JobNotFound(NarratorError):
    """No job matches the given id or article."""


class InvalidStatusTransition(NarratorError):
    """A status write would move a job backwards or out of a terminal state."""

    def __init__(self, job_id: str, current: str, target: str):
        super().__init__(f'Job {job_id} cannot move from {current} to {target}')
        self.job_id = job_id
        self.current = current
        self.target = target


class SynthesisError(NarratorError):
    """The speech provider reported a failure."""


class ConversionFailed(NarratorError):
    """
    A synchronous conversion failed and the job was marked failed.

    The original exception is chained as ``__cause__``.
    """

    def __init__(self, job_id: str, error_code: ErrorCode, message: str):
        super().__init__(f'Failed to convert article to audio: {message}')
        self.job_id = job_id
        self.error_code = error_code
        self.error_message = message
