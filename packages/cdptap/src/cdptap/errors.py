"""Error taxonomy for cdptap.

Every failure that crosses the command boundary is one of these exceptions.
The RPC layer turns them into ``{"code", "message"}`` results.

PUBLIC API:
  - ErrorCode: Stable error codes returned to controllers
  - CdptapError: Base exception carrying an ErrorCode
  - TargetNotFound, AlreadyObserving, NotObserving, SessionNotFound,
    SessionDetached, InvalidInput, ConnectionFailed, BrowserUnreachable,
    ExecutionFailed, BodyNotAvailable, InternalError
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes exposed on the command surface."""

    TARGET_NOT_FOUND = "TARGET_NOT_FOUND"
    ALREADY_OBSERVING = "ALREADY_OBSERVING"
    NOT_OBSERVING = "NOT_OBSERVING"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    SESSION_DETACHED = "SESSION_DETACHED"
    INVALID_INPUT = "INVALID_INPUT"
    CONNECTION_FAILED = "CONNECTION_FAILED"
    BROWSER_UNREACHABLE = "BROWSER_UNREACHABLE"
    EXECUTION_FAILED = "EXECUTION_FAILED"
    BODY_NOT_AVAILABLE = "BODY_NOT_AVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class CdptapError(Exception):
    """Base exception for all cdptap failures."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Structured form used in command results."""
        return {"code": self.code.value, "message": self.message}


class TargetNotFound(CdptapError):
    """No live target matched the selector."""

    code = ErrorCode.TARGET_NOT_FOUND


class AlreadyObserving(CdptapError):
    """The target already has a session."""

    code = ErrorCode.ALREADY_OBSERVING


class NotObserving(CdptapError):
    """stop_observe on a target without a live session."""

    code = ErrorCode.NOT_OBSERVING


class SessionNotFound(CdptapError):
    """No session (live or detached) exists for the target."""

    code = ErrorCode.SESSION_NOT_FOUND


class SessionDetached(CdptapError):
    """The session kept its buffer but has no live connection."""

    code = ErrorCode.SESSION_DETACHED


class InvalidInput(CdptapError):
    code = ErrorCode.INVALID_INPUT


class ConnectionFailed(CdptapError):
    code = ErrorCode.CONNECTION_FAILED


class BrowserUnreachable(CdptapError):
    code = ErrorCode.BROWSER_UNREACHABLE


class ExecutionFailed(CdptapError):
    code = ErrorCode.EXECUTION_FAILED


class BodyNotAvailable(CdptapError):
    code = ErrorCode.BODY_NOT_AVAILABLE


class InternalError(CdptapError):
    code = ErrorCode.INTERNAL_ERROR


__all__ = [
    "ErrorCode",
    "CdptapError",
    "TargetNotFound",
    "AlreadyObserving",
    "NotObserving",
    "SessionNotFound",
    "SessionDetached",
    "InvalidInput",
    "ConnectionFailed",
    "BrowserUnreachable",
    "ExecutionFailed",
    "BodyNotAvailable",
    "InternalError",
]
