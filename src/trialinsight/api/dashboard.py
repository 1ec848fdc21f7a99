from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from jinja2 import Environment, FileSystemLoader, select_autoescape

from trialinsight.api.deps import get_store, get_summary_generator
from trialinsight.engine.categories import ALL_CATEGORIES
from trialinsight.engine.store import ProfileStore
from trialinsight.engine.summary import SummaryGenerator

router = APIRouter(tags=["dashboard"])
_log = logging.getLogger("trialinsight.api.dashboard")

# ── Template env ──
tpl_dir = Path(__file__).resolve().parent.parent / "templates"
env = Environment(
    loader=FileSystemLoader(str(tpl_dir)),
    autoescape=select_autoescape(["html", "xml"]),
)


@router.get("/", response_class=HTMLResponse)
async def dashboard_page(
    store: ProfileStore = Depends(get_store),
    generator: SummaryGenerator = Depends(get_summary_generator),
):
    """Read-only view of the current profile; drag and drop lives in the client."""
    profile = store.get_current_profile()
    tpl = env.get_template("dashboard.html")
    html = tpl.render(
        profiles=store.profiles,
        profile=profile,
        buckets=[(cat.value, profile.trial_data.complexity_items[cat]) for cat in ALL_CATEGORIES],
        summary=generator.generate(profile),
        state={
            "is_loading": store.is_loading,
            "phase": store.loading_phase,
            "progress": store.loading.progress(),
            "timestamp": store.last_data_change_timestamp,
        },
    )
    return HTMLResponse(html)
