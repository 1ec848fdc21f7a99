"""
src/trialinsight/core/middleware.py

Per-request context for the dashboard API.

RequestIDMiddleware accepts a client X-Request-ID when it is short and made of
safe characters, otherwise mints a UUID4. The id, plus the profile id from
``/api/profiles/<id>/...`` paths, stay bound in the logging contextvars until
the access line is written, so engine logs and the access log share them.
The id is echoed back in the X-Request-ID response header.
"""
from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from trialinsight.core.logging import bind_request_context

_log = logging.getLogger("trialinsight.access")

REQUEST_ID_HEADER = "X-Request-ID"

_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")
_PROFILE_PATH = re.compile(r"^/api/profiles/([^/]+)")


def resolve_request_id(raw: str | None) -> str:
    candidate = (raw or "").strip()
    if _SAFE_REQUEST_ID.match(candidate):
        return candidate
    return str(uuid.uuid4())


def profile_from_path(path: str) -> str:
    m = _PROFILE_PATH.match(path)
    return m.group(1) if m else ""


def _access_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind request and profile ids for each request and write one access line."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        path = request.url.path

        with bind_request_context(request_id, profile_from_path(path)):
            start = time.perf_counter()
            try:
                response: Response = await call_next(request)
            except Exception:
                _log.exception(
                    "%s %s failed",
                    request.method,
                    path,
                    extra={"method": request.method, "path": path, "duration_ms": _elapsed_ms(start)},
                )
                raise

            response.headers[REQUEST_ID_HEADER] = request_id
            duration_ms = _elapsed_ms(start)
            _log.log(
                _access_level(response.status_code),
                "%s %s %d %.2fms",
                request.method,
                path,
                response.status_code,
                duration_ms,
                extra={
                    "method": request.method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
        return response


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000.0, 2)
