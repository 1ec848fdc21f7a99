"""
src/trialinsight/core/health.py

Health + readiness probe endpoints.

GET /health/live   liveness, always 200 (process is alive)
GET /health/ready  readiness, 200 once the profile store is attached to the
                   app, 503 otherwise. The cosmetic loading sequence is
                   reported but never gates readiness.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

_log = logging.getLogger("trialinsight.health")

router = APIRouter(tags=["health"])


@router.get("/health/live")
async def health_live() -> JSONResponse:
    """Liveness probe: always returns 200 if the process is running."""
    return JSONResponse(status_code=200, content={"status": "ok", "probe": "live"})


@router.get("/health/ready")
async def health_ready(request: Request) -> JSONResponse:
    store = getattr(request.app.state, "store", None)
    if store is None:
        _log.error("health_ready: profile store not initialised")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "probe": "ready", "store": "missing"},
        )
    return JSONResponse(
        status_code=200,
        content={
            "status": "ok",
            "probe": "ready",
            "store": "ready",
            "profiles": len(store.profiles),
            "loading": store.is_loading,
        },
    )
