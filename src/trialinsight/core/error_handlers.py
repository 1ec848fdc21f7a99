"""
src/trialinsight/core/error_handlers.py

Unified exception handlers for the dashboard API.

All errors return:
    {
        "error": "<short message>",
        "request_id": "<uuid | null>",
        "code": <http_status_int>
    }

Engine errors add an "error_code" string (DATASET_INVALID,
INVARIANT_VIOLATION, DEMOGRAPHIC_INVALID). Stack traces are never exposed
in the response body.
"""
from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from trialinsight.engine.errors import DatasetError, InvariantViolation, TrialInsightError

_log = logging.getLogger("trialinsight.errors")


def _production() -> bool:
    return os.getenv("APP_ENV", "development").lower() in {"production", "prod"}


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _err_body(message: str, code: int, request: Request) -> dict:
    return {
        "error": message,
        "request_id": _request_id(request),
        "code": code,
    }


def _engine_status(exc: TrialInsightError) -> int:
    if isinstance(exc, InvariantViolation):
        return 409
    if isinstance(exc, DatasetError):
        return 500
    return 400


def register_error_handlers(app: FastAPI) -> None:
    """Attach all unified error handlers to the given FastAPI app."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        detail = str(exc.detail) if exc.detail else "Request error"
        if exc.status_code >= 500:
            _log.error(
                "HTTP %d %s request_id=%s path=%s",
                exc.status_code,
                detail,
                _request_id(request),
                request.url.path,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=_err_body(detail, exc.status_code, request),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        _log.warning(
            "Validation error request_id=%s path=%s",
            _request_id(request),
            request.url.path,
        )
        body = _err_body("Invalid request body or parameters", 422, request)
        if not _production():
            body["detail"] = jsonable_errors(exc)
        return JSONResponse(status_code=422, content=body)

    @app.exception_handler(TrialInsightError)
    async def engine_error_handler(request: Request, exc: TrialInsightError) -> JSONResponse:
        status = _engine_status(exc)
        _log.error("%s request_id=%s path=%s: %s", exc.code, _request_id(request), request.url.path, exc)
        body = _err_body(str(exc) if not _production() else exc.code, status, request)
        body["error_code"] = exc.code
        return JSONResponse(status_code=status, content=body)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        _log.exception(
            "Unhandled exception request_id=%s path=%s",
            _request_id(request),
            request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content=_err_body("Unexpected server error", 500, request),
        )


def jsonable_errors(exc: RequestValidationError) -> list:
    """exc.errors() minus the raw ``ctx`` objects, which may not serialize."""
    out = []
    for err in exc.errors():
        out.append({k: v for k, v in err.items() if k in {"type", "loc", "msg", "input"}})
    return out
