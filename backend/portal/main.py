"""
Main FastAPI application.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portal.api.v1.api import api_router
from portal.core.config import settings
from portal.core.error_responses import ErrorMessages, error_detail
from portal.core.error_tracking import (
    capture_error,
    init_error_tracking,
    shutdown_error_tracking,
)
from portal.core.exceptions import ErrorCode
from portal.core.logging_config import setup_logging
from portal.middleware import RequestLoggingMiddleware
from portal.models import Base, engine

# Initialize logging configuration at startup
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan event handler.

    - On startup: initializes error tracking and, when DB_AUTO_CREATE is set,
      creates missing tables
    - On shutdown: flushes pending error reports
    """
    init_error_tracking()

    if settings.DB_AUTO_CREATE:
        Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started ({settings.ENV})")

    yield

    shutdown_error_tracking()
    logger.info("Application shutting down")


tags_metadata = [
    {
        "name": "health",
        "description": "Health check endpoints for monitoring application status",
    },
    {
        "name": "session",
        "description": "Exam session lifecycle: start/resume, progress, submission and lock-out",
    },
    {
        "name": "questions",
        "description": "Assessment questions by category and server-side grading",
    },
    {
        "name": "settings",
        "description": "Public portal settings such as the passing threshold",
    },
]


def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
        description=(
            "**Project Submission Portal API**\n\n"
            "Candidates fill in a multi-step form, take a one-attempt "
            "multiple-choice assessment, and submit their project if they pass.\n\n"
            "Each (email, phone) pair gets exactly one exam session, ever."
        ),
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        openapi_tags=tags_metadata,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Render HTTP errors with a coded detail payload.

        Errors raised through portal.core.error_responses already carry one;
        framework errors (unknown routes, wrong methods) get a code here.
        """
        detail = exc.detail
        if not isinstance(detail, dict):
            if exc.status_code == status.HTTP_404_NOT_FOUND:
                code = ErrorCode.NOT_FOUND
            elif exc.status_code >= 500:
                code = ErrorCode.SERVER_ERROR
            else:
                code = ErrorCode.INVALID_INPUT
            detail = error_detail(code, str(detail))

        if exc.status_code >= 500:
            capture_error(
                exc,
                context={
                    "path": str(request.url.path),
                    "method": request.method,
                    "status_code": exc.status_code,
                },
                tags={"error_type": "HTTPException"},
            )

        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """
        Handle request validation errors as INVALID_INPUT.
        """
        errors = [
            {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
            for error in exc.errors()
        ]
        logger.info(
            f"Request validation failed for {request.method} {request.url.path}",
            extra={"error_code": ErrorCode.INVALID_INPUT},
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": error_detail(
                    ErrorCode.INVALID_INPUT, "Invalid request", errors=errors
                )
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """
        Handle unexpected exceptions.

        Generates a unique error_id for each exception so support can trace
        it in the logs. The error_id is returned to the client; internal
        details are not.
        """
        error_id = str(uuid.uuid4())

        logger.exception(
            f"Unhandled exception [error_id={error_id}]: {exc}",
            extra={"error_id": error_id},
        )

        capture_error(
            exc,
            context={
                "path": str(request.url.path),
                "method": request.method,
                "error_id": error_id,
            },
            tags={"error_type": exc.__class__.__name__},
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": error_detail(
                    ErrorCode.SERVER_ERROR, ErrorMessages.INTERNAL_ERROR
                ),
                "error_id": error_id,
            },
        )

    return app


app = create_application()


@app.get("/")
async def root():
    """
    Root endpoint.
    """
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": f"{settings.API_V1_PREFIX}/docs",
    }
