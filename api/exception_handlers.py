"""
Exception handlers for the FastAPI application.

Part of STR-102: Error taxonomy

Maps the ErrorKind of application exceptions onto HTTP status codes with a
consistent ``{"error": {"code", "message", "details"}}`` body.
"""

from typing import Any, Dict, Optional
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from application.exceptions import ErrorKind, ProgramStateError

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.INTERNAL: 500,
}


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """Create a standardized error response."""
    content: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
        }
    }
    if details:
        content["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=content)


async def program_state_error_handler(
    request: Request,
    exc: ProgramStateError,
) -> JSONResponse:
    """Handle all ProgramStateError exceptions."""
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        # Storage details stay in the logs
        return create_error_response(status_code, exc.code, "An internal error occurred")
    return create_error_response(
        status_code=status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details or None,
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    return create_error_response(
        status_code=500,
        code="INTERNAL_ERROR",
        message="An unexpected error occurred",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(ProgramStateError, program_state_error_handler)

    # Note: This should be last as it catches all Exception types
    app.add_exception_handler(Exception, generic_exception_handler)
