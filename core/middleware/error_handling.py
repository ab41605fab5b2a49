"""
Error handling with sanitised, structured error responses.

Every failure leaves the API as
``{"error": {"code", "message", "path", "method"}}``. Domain failures keep
their own code (``DUPLICATE_EMAIL``, ``INVALID_CREDENTIALS``, ...) so
clients can tell precondition failures apart.
"""

import logging
import re
from typing import Any, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import RecruitmentError

logger = logging.getLogger(__name__)

# Patterns for sensitive data that should never reach a client or a log
SENSITIVE_PATTERNS = [
    re.compile(r'password["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'password_hash["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'token["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'secret["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'authorization["\s:]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'\$2[aby]\$\d{2}\$[./A-Za-z0-9]{53}'),  # bcrypt hash
]


def sanitize_error_message(message: Any) -> str:
    """
    Remove sensitive information from error messages.

    Args:
        message: Original error message

    Returns:
        Sanitized error message
    """
    sanitized = str(message)
    for pattern in SENSITIVE_PATTERNS:
        sanitized = pattern.sub("[REDACTED]", sanitized)
    return sanitized


def error_body(
    request: Request,
    code: str,
    message: str,
    details: Optional[Any] = None,
) -> dict[str, Any]:
    body = {
        "error": {
            "code": code,
            "message": message,
            "path": str(request.url.path),
            "method": request.method,
        }
    }
    if details is not None:
        body["error"]["details"] = details

    request_id = getattr(request.state, "request_id", None)
    if request_id:
        body["error"]["request_id"] = request_id
    return body


def format_validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic errors into field / message / type entries."""
    return [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": sanitize_error_message(error["msg"]),
            "type": error["type"],
        }
        for error in exc.errors()
    ]


def setup_error_handlers(app):
    """
    Set up exception handlers for FastAPI application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(RecruitmentError)
    async def recruitment_error_handler(request: Request, exc: RecruitmentError):
        """Typed domain failures keep their own code and status."""
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            f"{exc.code}: {request.method} {request.url.path} - "
            f"{sanitize_error_message(exc.message)}"
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(
                request, exc.code, sanitize_error_message(exc.message)
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(
                request, "HTTP_EXCEPTION", sanitize_error_message(exc.detail)
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """Handle validation errors."""
        errors = format_validation_errors(exc)
        logger.warning(
            f"Validation error: {request.method} {request.url.path} - "
            f"Errors: {errors}"
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_body(
                request, "VALIDATION_ERROR", "Request validation failed", errors
            ),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        """Store failures that escaped a unit of work."""
        if isinstance(exc, OperationalError):
            status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            message = "Database service temporarily unavailable"
        else:
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
            message = "A database error occurred"
        logger.error(
            f"Database error: {request.method} {request.url.path}", exc_info=True
        )
        return JSONResponse(
            status_code=status_code,
            content=error_body(request, "DATABASE_ERROR", message),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions."""
        logger.error(
            f"Unhandled exception: {request.method} {request.url.path} - "
            f"{type(exc).__name__}: {sanitize_error_message(str(exc))}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(
                request, "INTERNAL_SERVER_ERROR", "An unexpected error occurred"
            ),
        )
