# src/trialinsight/api/main.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from trialinsight.api.dashboard import router as dashboard_router
from trialinsight.api.profiles import router as profiles_router
from trialinsight.api.reference import router as reference_router
from trialinsight.config import Settings, get_settings
from trialinsight.core.error_handlers import register_error_handlers
from trialinsight.core.health import router as health_router
from trialinsight.core.logging import setup_json_logging
from trialinsight.core.middleware import RequestIDMiddleware
from trialinsight.engine import build_store, build_summary_generator
from trialinsight.engine.store import ProfileStore
from trialinsight.engine.summary import SummaryGenerator

log = logging.getLogger("trialinsight.api")

APP_VERSION = "0.1.0"


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ProfileStore] = None,
    summary_generator: Optional[SummaryGenerator] = None,
) -> FastAPI:
    """Build the API around one store instance.

    The store and summary generator live on ``app.state`` and reach route
    handlers through Depends(); tests pass their own instances.
    """
    settings = settings or get_settings()
    setup_json_logging()

    if store is None:
        store = build_store(
            settings.DATASET_PATH,
            current_profile_id=settings.DEFAULT_PROFILE_ID,
            phase_seconds=settings.LOADING_PHASE_SECONDS,
            strict=settings.strict_invariants,
        )
    if summary_generator is None:
        summary_generator = build_summary_generator(store.dataset, seed=settings.SUMMARY_SEED)

    app = FastAPI(title=settings.APP_NAME, version=APP_VERSION, debug=False)
    app.state.settings = settings
    app.state.store = store
    app.state.summary_generator = summary_generator

    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(reference_router)
    app.include_router(profiles_router)
    app.include_router(dashboard_router)

    @app.get("/version")
    async def version():
        return {"api_version": APP_VERSION, "app_name": settings.APP_NAME, "env": settings.ENV}

    log.info(
        "%s started: env=%s profiles=%d current=%s",
        settings.APP_NAME,
        settings.ENV,
        len(store.profiles),
        store.current_profile_id,
    )
    return app


app = create_app()
