"""
Error taxonomy and exception handlers.

- BadRequestAlert: validation/conflict failures (400 + alert headers)
- EntityNotFound: 404 with an empty body
- SQLAlchemyError: store unreachable or write failed (500, not retried)
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.alerts import failure_alert

log = structlog.get_logger()

_DEFAULT_ERROR_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    429: "TOO_MANY_SUBSCRIBERS",
    500: "INTERNAL_ERROR",
}


class BadRequestAlert(HTTPException):
    """400 carrying the `X-fortApp-error` alert for the UI."""

    def __init__(self, entity_name: str, error_key: str, message: str):
        super().__init__(
            status_code=400,
            detail=message,
            headers=failure_alert(entity_name, error_key),
        )
        self.entity_name = entity_name
        self.error_key = error_key


class EntityNotFound(Exception):
    def __init__(self, entity_name: str, entity_id: int):
        super().__init__(f"{entity_name} {entity_id} not found")
        self.entity_name = entity_name
        self.entity_id = entity_id


def error_envelope(status: int, message: str, code: str | None = None, details=None) -> dict:
    body = {
        "code": code or _DEFAULT_ERROR_CODES.get(status, "UNKNOWN_ERROR"),
        "message": message,
        "status": status,
    }
    if details is not None:
        body["details"] = details
    return {"error": body}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = None
    if isinstance(exc, BadRequestAlert):
        code = exc.error_key.upper()
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.status_code, str(exc.detail), code),
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_envelope(
            400,
            "Validation error",
            "VALIDATION",
            details=jsonable_encoder(exc.errors()),
        ),
        headers=failure_alert("request", "validation"),
    )


async def not_found_handler(request: Request, exc: EntityNotFound) -> Response:
    return Response(status_code=404)


async def downstream_failure_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.error(
        "request.downstream_failure",
        method=request.method,
        path=request.url.path,
        error=str(exc),
    )
    return JSONResponse(
        status_code=500,
        content=error_envelope(500, "Storage operation failed", "DOWNSTREAM_FAILURE"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(EntityNotFound, not_found_handler)
    app.add_exception_handler(SQLAlchemyError, downstream_failure_handler)
