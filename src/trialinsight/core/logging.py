"""
src/trialinsight/core/logging.py

One-JSON-object-per-line logging for the dashboard service, with the current
request id and profile id pulled from contextvars into every record.

Usage:
    from trialinsight.core.logging import bind_request_context, setup_json_logging

    setup_json_logging()  # once, from create_app()

    with bind_request_context("some-uuid", profile_id="profile1"):
        logging.getLogger("trialinsight.store").info("moved")
"""
from __future__ import annotations

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator, TextIO

__all__ = [
    "bind_request_context",
    "profile_id_ctx",
    "request_id_ctx",
    "setup_json_logging",
]

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
profile_id_ctx: ContextVar[str] = ContextVar("profile_id", default="")

_HANDLER_NAME = "trialinsight-json"

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


@contextmanager
def bind_request_context(request_id: str, profile_id: str = "") -> Iterator[None]:
    """Set request/profile ids for the duration of the block."""
    rid_token = request_id_ctx.set(request_id)
    pid_token = profile_id_ctx.set(profile_id)
    try:
        yield
    finally:
        profile_id_ctx.reset(pid_token)
        request_id_ctx.reset(rid_token)


class _JsonFormatter(logging.Formatter):
    """Render a record as JSON.

    Always present: timestamp (UTC, millisecond ISO-8601), level, logger,
    message, request_id, profile_id. Any ``extra=`` keys (item_id,
    target_category, status_code, ...) are added as top-level fields. Records
    with exc_info get an ``exc`` object holding the exception type and text,
    never the traceback.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_ctx.get(),
            "profile_id": profile_id_ctx.get(),
        }
        payload.update(
            (key, value) for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_val, _ = record.exc_info
            payload["exc"] = {"type": exc_type.__name__, "detail": str(exc_val)}

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_json_logging(level: str | None = None, stream: TextIO | None = None) -> None:
    """Install the JSON handler on the root logger (idempotent).

    ``LOG_LEVEL`` sets the level when ``level`` is not given. uvicorn's own
    access logger is silenced since RequestIDMiddleware writes access lines.
    """
    root = logging.getLogger()
    root.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())

    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        return

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(_JsonFormatter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").disabled = True
