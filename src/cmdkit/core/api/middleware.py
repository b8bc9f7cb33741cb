"""App-level error handlers and request logging middleware."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import Response
from ulid import ULID

from cmdkit.core.logging import add_request_context, get_logger, reset_request_context

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def database_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Report store failures as 500 without leaking SQL."""
    logger.error("database.error", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error"},
    )


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Report request validation failures as 422 with the offending fields."""
    errors = exc.errors() if isinstance(exc, RequestValidationError) else [{"msg": str(exc)}]
    logger.warning("request.validation_failed", path=request.url.path, error_count=len(errors))
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(errors)},
    )


def add_error_handlers(app: FastAPI) -> None:
    """Install the standard exception handlers on an app."""
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)


def add_logging_middleware(app: FastAPI) -> None:
    """Log each request with a request id bound to the logging context."""

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(ULID())
        reset_request_context()
        add_request_context(request_id=request_id, method=request.method, path=request.url.path)

        started = time.perf_counter()
        logger.info("http.request.started")
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("http.request.failed", duration_ms=round((time.perf_counter() - started) * 1000, 2))
            raise

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info("http.request.completed", status_code=response.status_code, duration_ms=duration_ms)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
