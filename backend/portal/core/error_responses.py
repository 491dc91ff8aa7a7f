"""
Standardized error response messages and builders.

Every error response carries a machine-readable code next to the user-facing
message so the presentation layer can react to specific cases (for example
showing "already submitted" for SESSION_COMPLETED) instead of a generic
failure:

    {"detail": {"code": "SESSION_COMPLETED", "message": "Session already completed"}}

Usage:
    from portal.core.error_responses import ErrorMessages, raise_not_found

    if not session:
        raise_not_found(ErrorMessages.SESSION_NOT_FOUND)
"""

from typing import Any, Dict, NoReturn, Optional

from fastapi import HTTPException, status

from portal.core.exceptions import ErrorCode


class ErrorMessages:
    """Centralized error message constants and templates."""

    # ==========================================================================
    # Bad Request Errors (400)
    # ==========================================================================
    EMAIL_AND_PHONE_REQUIRED = "Email and phone are required"
    MCQ_SCORE_REQUIRED = "MCQ score is required"

    # ==========================================================================
    # Not Found Errors (404)
    # ==========================================================================
    SESSION_NOT_FOUND = "Session not found"

    # ==========================================================================
    # Server Errors (500)
    # ==========================================================================
    INTERNAL_ERROR = "Internal server error"

    @staticmethod
    def operation_failed(operation: str) -> str:
        """Generic message for a failed workflow operation."""
        return f"Failed to {operation}"


def error_detail(code: str, message: str, **extra: Any) -> Dict[str, Any]:
    """Build the ``detail`` payload for an error response."""
    detail: Dict[str, Any] = {"code": code, "message": message}
    detail.update(extra)
    return detail


def raise_error(status_code: int, code: str, message: str) -> NoReturn:
    """Raise an HTTPException carrying a coded detail payload.

    Args:
        status_code: HTTP status code
        code: Machine-readable error code (see ErrorCode)
        message: User-facing error message

    Raises:
        HTTPException: Always
    """
    raise HTTPException(status_code=status_code, detail=error_detail(code, message))


def raise_invalid_input(message: str) -> NoReturn:
    """Raise a 400 INVALID_INPUT error for malformed requests."""
    raise_error(status.HTTP_400_BAD_REQUEST, ErrorCode.INVALID_INPUT, message)


def raise_not_found(message: str) -> NoReturn:
    """Raise a 404 NOT_FOUND error for unknown resources."""
    raise_error(status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND, message)


def raise_server_error(message: str, error_id: Optional[str] = None) -> NoReturn:
    """Raise a 500 SERVER_ERROR with a generic, user-friendly message.

    Args:
        message: User-facing error message (never internal details)
        error_id: Optional tracking ID appended for support requests
    """
    if error_id:
        message = f"{message} (Error ID: {error_id})"
    raise_error(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.SERVER_ERROR, message)
