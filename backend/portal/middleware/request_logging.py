"""
Request/response logging middleware for tracking API interactions.
"""
import logging
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from portal.core.logging_config import request_id_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log incoming requests and outgoing responses.

    Every request gets a request id (taken from the ``X-Request-ID`` header
    or generated) that is attached to all log lines emitted while serving it
    and echoed back in the response headers.

    Request bodies are never logged: they carry candidate emails and phones.
    """

    def __init__(self, app, skip_paths: tuple = ("/health", "/v1/health", "/v1/ping")):
        """
        Initialize request logging middleware.

        Args:
            app: FastAPI application
            skip_paths: Paths whose successful responses are logged at DEBUG
        """
        super().__init__(app)
        self.skip_paths = skip_paths

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = request_id_context.set(request_id)

        start_time = time.perf_counter()
        method = request.method
        path = str(request.url.path)
        client_host = request.client.host if request.client else "unknown"

        try:
            logger.debug(
                "Incoming request",
                extra={"method": method, "path": path, "client_host": client_host},
            )

            response = await call_next(request)

            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id

            extra_fields = {
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": duration_ms,
                "client_host": client_host,
            }

            if status_code >= 500:
                logger.error("Server error response", extra=extra_fields)
            elif status_code >= 400:
                logger.warning("Client error response", extra=extra_fields)
            elif path in self.skip_paths:
                logger.debug("Request completed", extra=extra_fields)
            else:
                logger.info("Request completed", extra=extra_fields)

            return response
        finally:
            request_id_context.reset(token)
