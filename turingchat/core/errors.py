"""
Session error types. Each carries a stable code and maps to one HTTP status.
"""

from typing import Any, Optional


class SessionError(Exception):
    code: str = "session_error"
    status_code: int = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFound(SessionError):
    """User or session has no active mapping."""
    code = "not_found"
    status_code = 404


class ResourceExhausted(SessionError):
    """Session already has two participants."""
    code = "resource_exhausted"
    status_code = 409


class FailedPrecondition(SessionError):
    """Message sent before a second participant joined."""
    code = "failed_precondition"
    status_code = 400


class InvalidArgument(SessionError):
    """Rejected input (blank ids, reserved prefix, guardrail failure)."""
    code = "invalid_argument"
    status_code = 422


class Internal(SessionError):
    """Registry invariant violated."""
    code = "internal"
    status_code = 500
