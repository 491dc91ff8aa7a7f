"""
Sentry error tracking.

Initialization is skipped when SENTRY_DSN is empty, so development and tests
never talk to Sentry. ``capture_error`` is safe to call either way.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from portal.core.config import settings

logger = logging.getLogger(__name__)

_initialized = False


def _serialize_context(context: Dict[str, Any]) -> Dict[str, Any]:
    """Make context values JSON-compatible (datetimes as ISO strings, rest as str)."""
    serialized: Dict[str, Any] = {}
    for key, value in context.items():
        if value is None or isinstance(value, (bool, int, float, str, list, dict)):
            serialized[key] = value
        elif isinstance(value, (datetime, date)):
            serialized[key] = value.isoformat()
        else:
            serialized[key] = str(value)
    return serialized


def init_error_tracking() -> bool:
    """
    Initialize the Sentry SDK with the FastAPI/Starlette integrations.

    Returns:
        True if Sentry was initialized, False if skipped or failed.
        Never raises: failures are logged.
    """
    global _initialized

    if not settings.SENTRY_DSN:
        logger.debug("Sentry initialization skipped (DSN not configured)")
        return False

    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENV,
            release=settings.APP_VERSION,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            integrations=[
                LoggingIntegration(level=None, event_level=None),
                FastApiIntegration(transaction_style="endpoint"),
                StarletteIntegration(transaction_style="endpoint"),
            ],
            # Candidate emails and phones stay out of Sentry
            send_default_pii=False,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}", exc_info=True)
        return False

    _initialized = True
    logger.info(
        f"Sentry initialized for environment '{settings.ENV}' "
        f"with {settings.SENTRY_TRACES_SAMPLE_RATE * 100:.0f}% trace sampling"
    )
    return True


def capture_error(
    exception: BaseException,
    context: Optional[Dict[str, Any]] = None,
    tags: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    """
    Send an exception to Sentry with extra context.

    Returns:
        The Sentry event id, or None when tracking is not initialized
    """
    if not _initialized:
        return None

    with sentry_sdk.new_scope() as scope:
        if context:
            scope.set_context("additional", _serialize_context(context))
        for key, value in (tags or {}).items():
            scope.set_tag(key, value)
        return sentry_sdk.capture_exception(exception)


def shutdown_error_tracking() -> None:
    """Flush pending events before the process exits."""
    if _initialized:
        sentry_sdk.flush(timeout=2.0)
