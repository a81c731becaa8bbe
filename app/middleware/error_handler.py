"""Exception handlers rendering every failure as ``{error, message, path}``."""

import structlog
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.core.exceptions import AppException

logger = structlog.get_logger(__name__)


def _error_body(request: Request, error: str, message: object) -> dict:
    return {"error": error, "message": message, "path": str(request.url)}


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle custom application exceptions.

    Args:
        request: Request object
        exc: Application exception

    Returns:
        JSON error response
    """
    if exc.status_code >= 500:
        logger.error("application_error", path=request.url.path, message=exc.message)

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.__class__.__name__, exc.message),
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle framework HTTP exceptions (unknown routes, wrong methods)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, "HTTPException", exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handle request validation errors as 400 Bad Request.

    Args:
        request: Request object
        exc: Validation exception

    Returns:
        JSON error response with validation details
    """
    body = _error_body(request, "ValidationError", "Missing or invalid fields")
    body["details"] = jsonable_encoder(exc.errors())
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    The error is logged with its traceback; clients get a generic message
    unless running in debug mode.
    """
    logger.exception(
        "unhandled_exception",
        method=request.method,
        path=request.url.path,
        error_type=exc.__class__.__name__,
    )
    message = str(exc) if settings.debug else "An unexpected error occurred"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "InternalServerError", message),
    )
