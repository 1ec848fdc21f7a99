"""
scripts/smoke.py: HTTP-level smoke test for the Trial Insight API.

Uses ASGITransport + httpx (no network required).
Walks: health, profile list, move an item, check the score, reset.
Exit code: 0 = all green, 1 = any failure.
"""
from __future__ import annotations

import asyncio
import sys

import httpx

from trialinsight.api.main import create_app
from trialinsight.config import Settings

RESULTS: list[dict] = []


def _pass(name: str, detail: str = "") -> None:
    RESULTS.append({"name": name, "status": "PASS", "detail": detail})
    print(f"  PASS  {name}" + (f": {detail}" if detail else ""))


def _fail(name: str, detail: str = "") -> None:
    RESULTS.append({"name": name, "status": "FAIL", "detail": detail})
    print(f"  FAIL  {name}" + (f": {detail}" if detail else ""))


def _motivation(body: dict) -> float:
    return next(c["current_score"] for c in body["categories"] if c["name"] == "Motivation")


async def run_smoke() -> bool:
    print("\n=== Trial Insight Smoke Tests ===\n")

    app = create_app(settings=Settings(LOADING_PHASE_SECONDS=0))
    transport = httpx.ASGITransport(app=app)

    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        # ── 1. Health ──────────────────────────────────────────────────────
        print("1. Health check")
        resp = await client.get("/health/ready")
        if resp.status_code == 200 and resp.json().get("store") == "ready":
            _pass("GET /health/ready", f"profiles={resp.json()['profiles']}")
        else:
            _fail("GET /health/ready", f"status={resp.status_code} body={resp.text[:200]}")

        # ── 2. Profiles ────────────────────────────────────────────────────
        print("2. List profiles")
        resp = await client.get("/api/profiles")
        if resp.status_code == 200 and resp.json():
            _pass("GET /api/profiles", ", ".join(p["id"] for p in resp.json()))
        else:
            _fail("GET /api/profiles", f"status={resp.status_code} body={resp.text[:200]}")
            return False

        resp = await client.get("/api/profiles/current")
        profile = resp.json()
        before = _motivation(profile)

        # ── 3. Move ────────────────────────────────────────────────────────
        print("3. Move first available item to Motivation")
        available = profile["trial_data"]["available_items"]
        if not available:
            _fail("POST /moves", "current profile has no available items")
            return False
        item = available[0]
        resp = await client.post(
            f"/api/profiles/{profile['id']}/moves",
            json={"item": item, "target_category": "Motivation"},
        )
        if resp.status_code == 200 and _motivation(resp.json()) >= before:
            _pass("POST /moves", f"{item['id']}: Motivation {before} -> {_motivation(resp.json())}")
        else:
            _fail("POST /moves", f"status={resp.status_code} body={resp.text[:200]}")

        # ── 4. Reset ───────────────────────────────────────────────────────
        print("4. Reset profile")
        resp = await client.post(f"/api/profiles/{profile['id']}/reset")
        if resp.status_code == 200 and _motivation(resp.json()) == before:
            _pass("POST /reset", f"Motivation back to {before}")
        else:
            _fail("POST /reset", f"status={resp.status_code} body={resp.text[:200]}")

    failures = [r for r in RESULTS if r["status"] == "FAIL"]
    print(f"\n{len(RESULTS) - len(failures)}/{len(RESULTS)} checks passed\n")
    return not failures


if __name__ == "__main__":
    ok = asyncio.run(run_smoke())
    sys.exit(0 if ok else 1)
