"""
Typed failures raised by the exam-session workflow.

The workflow raises these semantic errors; the API boundary
(portal.core.error_handling) translates them into fixed HTTP responses.
Each class carries the machine-readable ``code`` clients switch on and the
HTTP status it maps to.
"""

from typing import Optional

from fastapi import status


class ErrorCode:
    """Machine-readable error codes returned in ``detail.code``."""

    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    SESSION_COMPLETED = "SESSION_COMPLETED"
    DUPLICATE = "DUPLICATE"
    SERVER_ERROR = "SERVER_ERROR"


class PortalError(Exception):
    """Base class for workflow errors that map onto an error code."""

    code: str = ErrorCode.SERVER_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInputError(PortalError):
    """Malformed input, such as a phone number that is not 10 digits."""

    code = ErrorCode.INVALID_INPUT
    status_code = status.HTTP_400_BAD_REQUEST


class SessionNotFoundError(PortalError):
    """No exam session matches the given session id."""

    code = ErrorCode.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__("Session not found")


class SessionCompletedError(PortalError):
    """Mutation attempted against a session that is already passed or failed."""

    code = ErrorCode.SESSION_COMPLETED
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, session_id: str, session_status: Optional[str] = None):
        self.session_id = session_id
        self.session_status = session_status
        super().__init__("Session already completed")


class DuplicateSessionError(PortalError):
    """Creation lost a uniqueness race and the winner could not be re-read."""

    code = ErrorCode.DUPLICATE
    status_code = status.HTTP_409_CONFLICT

    def __init__(self) -> None:
        super().__init__("Session already exists for this email and phone")


class InvalidTransitionError(PortalError):
    """A status change not permitted by the session state machine."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move session from {current} to {target}")


class SettingsUnavailableError(PortalError):
    """The settings store could not supply a value.

    Recovered inside portal.core.system_config with the configured default;
    never surfaced to clients.
    """

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Setting {key!r} unavailable: {reason}")
