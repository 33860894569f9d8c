from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chatrelay.api.schemas import ErrorBody
from chatrelay.logging import get_logger
from chatrelay.service.errors import BadRequestError, ServiceError

logger = get_logger(__name__)

INVALID_REQUEST_MESSAGE = "Invalid request"


def _error_response(status_code: int, error: Any) -> JSONResponse:
    """Render the ``{"error": ...}`` body used by every failing route."""
    return JSONResponse(status_code=status_code, content=ErrorBody(error=error).model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers so every failure leaves as a single JSON error body."""

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        log_fn = logger.error if exc.status_code >= 500 else logger.warning
        log_fn(
            "service_error",
            status_code=exc.status_code,
            message=exc.message,
        )
        return _error_response(exc.status_code, exc.body)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        logger.warning(
            "request_validation_failed",
            validation_errors=[
                {"loc": list(err.get("loc", ())), "type": err.get("type")}
                for err in exc.errors()
            ],
        )
        return _error_response(BadRequestError.status_code, INVALID_REQUEST_MESSAGE)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            logger.error(
                "http_error",
                status_code=exc.status_code,
                message=exc.detail,
            )
        return _error_response(exc.status_code, exc.detail)

    @app.exception_handler(Exception)
    async def handle_uncaught(request: Request, exc: Exception):
        logger.exception(
            "unhandled_exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return _error_response(500, "internal server error")
