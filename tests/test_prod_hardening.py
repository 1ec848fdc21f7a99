"""
tests/test_prod_hardening.py

Request ID propagation, unified error bodies and health probes:
  - test_request_id_present
  - test_error_handler_format
  - test_unsafe_client_request_id_replaced
  - test_access_log_carries_request_and_profile_ids
  - test_engine_error_mapping
  - test_health_ready_store_missing
"""

import json
import logging
import uuid

import pytest
from fastapi import FastAPI, HTTPException
from httpx import ASGITransport, AsyncClient

from trialinsight.core.error_handlers import register_error_handlers
from trialinsight.core.health import router as health_router
from trialinsight.core.logging import _JsonFormatter, bind_request_context, profile_id_ctx, request_id_ctx
from trialinsight.core.middleware import RequestIDMiddleware
from trialinsight.engine import build_store
from trialinsight.engine.errors import DatasetError, DemographicError, InvariantViolation


# ── Helper: minimal app factory ──────────────────────────────────────────────

def _base_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)
    return app


def _client(app, **kwargs) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app, **kwargs), base_url="http://testserver")


# ═══════════════════════════════════════════════════════════════════
# 1. REQUEST ID PRESENT
# ═══════════════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_request_id_present_in_response():
    """Every response must carry X-Request-ID header."""
    app = _base_app()

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    async with _client(app) as client:
        resp = await client.get("/ping")

    assert resp.status_code == 200
    rid = resp.headers["x-request-id"]
    assert len(rid) == 36, f"Expected UUID4, got: {rid!r}"


@pytest.mark.asyncio
async def test_request_id_propagated_from_client():
    app = _base_app()

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    custom_id = str(uuid.uuid4())
    async with _client(app) as client:
        resp = await client.get("/ping", headers={"X-Request-ID": custom_id})

    assert resp.headers["x-request-id"] == custom_id


@pytest.mark.asyncio
async def test_profile_id_visible_inside_request():
    app = _base_app()
    seen = {}

    @app.get("/api/profiles/{profile_id}/probe")
    async def probe(profile_id: str):
        seen["profile_id"] = profile_id_ctx.get()
        seen["request_id"] = request_id_ctx.get()
        return {"ok": True}

    async with _client(app) as client:
        await client.get("/api/profiles/profile2/probe", headers={"X-Request-ID": "rid-1"})

    assert seen == {"profile_id": "profile2", "request_id": "rid-1"}


def test_json_formatter_carries_context_and_extras():
    with bind_request_context("rid-42", profile_id="profile3"):
        record = logging.LogRecord("trialinsight.test", logging.INFO, __file__, 1, "moved %s", ("q1",), None)
        record.item_id = "q1"
        payload = json.loads(_JsonFormatter().format(record))

    assert payload["message"] == "moved q1"
    assert payload["request_id"] == "rid-42"
    assert payload["item_id"] == "q1"
    assert payload["profile_id"] == "profile3"
    assert payload["level"] == "INFO"
    assert request_id_ctx.get() == ""


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["", "has spaces", "x" * 200, "<script>"])
async def test_unsafe_client_request_id_replaced(raw):
    app = _base_app()

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    async with _client(app) as client:
        resp = await client.get("/ping", headers={"X-Request-ID": raw})

    rid = resp.headers["x-request-id"]
    assert rid != raw
    assert uuid.UUID(rid).version == 4


class _JsonCapture(logging.Handler):
    def __init__(self) -> None:
        super().__init__(logging.DEBUG)
        self.lines: list[dict] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.lines.append(json.loads(_JsonFormatter().format(record)))


@pytest.mark.asyncio
async def test_access_log_carries_request_and_profile_ids():
    app = _base_app()

    @app.get("/api/profiles/{profile_id}")
    async def profile(profile_id: str):
        return {"id": profile_id}

    access = logging.getLogger("trialinsight.access")
    capture = _JsonCapture()
    previous_level = access.level
    access.addHandler(capture)
    access.setLevel(logging.INFO)
    try:
        async with _client(app) as client:
            await client.get("/api/profiles/profile4", headers={"X-Request-ID": "rid-7"})
    finally:
        access.removeHandler(capture)
        access.setLevel(previous_level)

    line = capture.lines[-1]
    assert line["request_id"] == "rid-7"
    assert line["profile_id"] == "profile4"
    assert line["status_code"] == 200
    assert line["level"] == "INFO"


# ═══════════════════════════════════════════════════════════════════
# 2. ERROR HANDLER FORMAT
# ═══════════════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_error_handler_returns_json_shape_on_500():
    """Unhandled exceptions must return {error, request_id, code}, no traceback."""
    app = _base_app()

    @app.get("/boom")
    async def boom():
        raise RuntimeError("intentional crash")

    async with _client(app, raise_app_exceptions=False) as client:
        resp = await client.get("/boom")

    assert resp.status_code == 500
    body = resp.json()
    assert body["code"] == 500
    assert "request_id" in body
    assert "RuntimeError" not in body["error"]


@pytest.mark.asyncio
async def test_error_handler_http_exception_shape():
    app = _base_app()

    @app.get("/gone")
    async def gone():
        raise HTTPException(status_code=404, detail="Unknown profile: ghost")

    async with _client(app) as client:
        resp = await client.get("/gone", headers={"X-Request-ID": "abc"})

    assert resp.status_code == 404
    assert resp.json() == {"error": "Unknown profile: ghost", "request_id": "abc", "code": 404}


@pytest.mark.asyncio
async def test_validation_detail_hidden_in_production(monkeypatch):
    from pydantic import BaseModel

    app = _base_app()

    class Payload(BaseModel):
        value: int

    @app.post("/typed")
    async def typed(body: Payload):
        return body

    async with _client(app) as client:
        dev = await client.post("/typed", json={"value": "not-an-int"})
        monkeypatch.setenv("APP_ENV", "production")
        prod = await client.post("/typed", json={"value": "not-an-int"})

    assert dev.status_code == prod.status_code == 422
    assert dev.json()["detail"][0]["loc"] == ["body", "value"]
    assert "detail" not in prod.json()


# ═══════════════════════════════════════════════════════════════════
# 3. ENGINE ERROR MAPPING
# ═══════════════════════════════════════════════════════════════════

@pytest.mark.asyncio
@pytest.mark.parametrize("exc, status, error_code", [
    (InvariantViolation("profile p: items held more than once"), 409, "INVARIANT_VIOLATION"),
    (DatasetError("Dataset not found"), 500, "DATASET_INVALID"),
    (DemographicError("profile p: gender cannot be null"), 400, "DEMOGRAPHIC_INVALID"),
])
async def test_engine_error_mapping(exc, status, error_code):
    app = _base_app()

    @app.get("/engine")
    async def engine():
        raise exc

    async with _client(app) as client:
        resp = await client.get("/engine")

    assert resp.status_code == status
    body = resp.json()
    assert body["error_code"] == error_code
    assert body["code"] == status


# ═══════════════════════════════════════════════════════════════════
# 4. HEALTH PROBES
# ═══════════════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_health_live():
    app = FastAPI()
    app.include_router(health_router)
    async with _client(app) as client:
        resp = await client.get("/health/live")
    assert resp.json() == {"status": "ok", "probe": "live"}


@pytest.mark.asyncio
async def test_health_ready_store_missing():
    app = FastAPI()
    app.include_router(health_router)
    async with _client(app) as client:
        resp = await client.get("/health/ready")
    assert resp.status_code == 503
    assert resp.json()["store"] == "missing"


@pytest.mark.asyncio
async def test_health_ready_with_store():
    app = FastAPI()
    app.include_router(health_router)
    app.state.store = build_store()
    async with _client(app) as client:
        resp = await client.get("/health/ready")
    assert resp.status_code == 200
    body = resp.json()
    assert body["profiles"] == 4
    assert body["loading"] is False
