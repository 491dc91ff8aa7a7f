"""
Boundary error handling for workflow endpoints.

Centralizes the pattern every session endpoint follows:
1. Run the workflow operation
2. On a typed workflow failure: roll back and answer with its fixed code
3. On anything else: roll back, log with context, answer SERVER_ERROR

Usage:
    from portal.core.error_handling import handle_session_errors

    with handle_session_errors(db, "save progress"):
        session = workflow.save_progress(session_id, body.current_step, updates)
        return SaveProgressResponse.from_session(session)

The return statement belongs inside the block so that response construction
failures are logged with the same operation context.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.core.error_responses import (
    ErrorMessages,
    raise_error,
    raise_server_error,
)
from portal.core.exceptions import ErrorCode, PortalError

logger = logging.getLogger(__name__)


@contextmanager
def handle_session_errors(
    db: Session,
    operation_name: str,
) -> Generator[None, None, None]:
    """Translate workflow failures raised inside the block into HTTP errors.

    Args:
        db: The request's database session, rolled back on any failure.
        operation_name: Human-readable operation name used in logs and in
            the generic server error message (e.g. "submit exam").

    Raises:
        HTTPException: With the error's own status and code for PortalError
            subclasses that map to a client-facing code, or 500 SERVER_ERROR
            for everything else. HTTPExceptions pass through unchanged.
    """
    try:
        yield
    except HTTPException:
        raise
    except PortalError as e:
        db.rollback()
        if e.code == ErrorCode.SERVER_ERROR:
            logger.error(
                f"Workflow error during {operation_name}: {e}",
                exc_info=True,
                extra={"error_code": e.code},
            )
            raise_server_error(ErrorMessages.operation_failed(operation_name))
        logger.info(
            f"{operation_name} rejected: {e.message}",
            extra={"error_code": e.code},
        )
        raise_error(e.status_code, e.code, e.message)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            f"Database error during {operation_name}: {e}",
            exc_info=True,
            extra={"error_code": ErrorCode.SERVER_ERROR},
        )
        raise_server_error(ErrorMessages.operation_failed(operation_name))
    except Exception as e:
        db.rollback()
        logger.error(
            f"Unexpected error during {operation_name}: {e}",
            exc_info=True,
            extra={"error_code": ErrorCode.SERVER_ERROR},
        )
        raise_server_error(ErrorMessages.operation_failed(operation_name))
