"""Global error handlers rendering the `{"error": {...}}` envelope."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from rapport.domain.errors import RapportError

LOGGER = logging.getLogger(__name__)

_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def error_payload(code: str, message: str) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    }


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_payload(code, message))


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Request validation failed"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = first.get("msg", "invalid value")
    return f"{location}: {detail}" if location else str(detail)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RapportError)
    async def domain_exc_handler(request: Request, exc: RapportError):  # type: ignore[override]
        return error_response(exc.status_code, exc.code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
        return error_response(exc.status_code, code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        return error_response(400, "VALIDATION_ERROR", _validation_message(exc))

    @app.exception_handler(asyncio.TimeoutError)
    async def timeout_exc_handler(request: Request, exc: asyncio.TimeoutError):  # type: ignore[override]
        LOGGER.error("store operation timed out", extra={"path": request.url.path}, exc_info=exc)
        return error_response(500, "INTERNAL_SERVER_ERROR", "The operation timed out, please retry")

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
        LOGGER.error("unhandled error", extra={"path": request.url.path}, exc_info=exc)
        return error_response(500, "INTERNAL_SERVER_ERROR", "An unexpected error occurred")
