"""Error handlers for the notes API.

Domain errors render from their own attributes; request validation errors
become a per-field list; anything unexpected is logged in full and answered
with a generic 500.
"""

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException
from structlog import get_logger

from notes_api.exceptions import ErrorType, NotesAppError, ValidationFailedError


logger = get_logger(__name__)


def _build_error_response(
    status_code: int,
    error_type: str,
    message: str,
    extra: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """Build standardized error response."""
    error: dict[str, Any] = {"type": error_type, "message": message}
    if extra:
        error.update(extra)
    return JSONResponse(status_code=status_code, content={"error": error}, headers=headers)


def _field_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into {field, message} pairs."""
    fields = []
    for err in exc.errors():
        # Drop the leading "body"/"query"/"path" location segment.
        loc = [str(part) for part in err.get("loc", ())][1:]
        fields.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    return fields


# PUBLIC_INTERFACE
def setup_error_handlers(app: FastAPI) -> None:
    """Setup error handlers for the FastAPI application."""

    @app.exception_handler(NotesAppError)
    async def notes_app_error_handler(request: Request, exc: NotesAppError) -> JSONResponse:
        log_kwargs = {
            "error_type": exc.error_type.value,
            "error_message": exc.message,
            "status_code": exc.status_code,
            "request_method": request.method,
            "request_url": request.url.path,
        }
        if exc.status_code >= 500:
            logger.error(type(exc).__name__, exc_info=exc.__cause__ or exc, **log_kwargs)
        elif exc.status_code in (401, 403, 429):
            client_ip = request.client.host if request.client else "unknown"
            logger.warning(type(exc).__name__, client_ip=client_ip, **log_kwargs)
        else:
            logger.info(type(exc).__name__, **log_kwargs)

        return _build_error_response(
            exc.status_code, exc.error_type.value, exc.message, exc.details, exc.headers
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = _field_errors(exc)
        logger.info(
            "request_validation_failed",
            request_method=request.method,
            request_url=request.url.path,
            fields=[d["field"] for d in details],
        )
        error = ValidationFailedError(details={"details": details})
        return _build_error_response(
            error.status_code, error.error_type.value, error.message, error.details
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        if exc.status_code == 404:
            logger.debug("HTTP 404", request_url=request.url.path)
        else:
            logger.warning(
                "HTTP exception",
                status_code=exc.status_code,
                error_message=exc.detail,
                request_method=request.method,
                request_url=request.url.path,
            )
        return _build_error_response(
            exc.status_code, "http_error", str(exc.detail), headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            error_type="unhandled_exception",
            error_message=str(exc),
            request_method=request.method,
            request_url=request.url.path,
            exc_info=exc,
        )
        return _build_error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorType.INTERNAL_SERVER.value,
            "An internal server error occurred",
        )
