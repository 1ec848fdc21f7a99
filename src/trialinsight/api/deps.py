from __future__ import annotations

from fastapi import Depends, HTTPException, Path, Request

from trialinsight.engine.models import Profile
from trialinsight.engine.store import ProfileStore
from trialinsight.engine.summary import SummaryGenerator

CURRENT = "current"


def get_store(request: Request) -> ProfileStore:
    """The single store instance attached by create_app()."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Profile store is not initialised")
    return store


def get_summary_generator(request: Request) -> SummaryGenerator:
    generator = getattr(request.app.state, "summary_generator", None)
    if generator is None:
        raise HTTPException(status_code=503, detail="Summary generator is not initialised")
    return generator


def resolve_profile(
    profile_id: str = Path(..., min_length=1, max_length=64),
    store: ProfileStore = Depends(get_store),
) -> Profile:
    """Path profile id -> Profile; 'current' follows the store's current profile."""
    if profile_id == CURRENT:
        return store.get_current_profile()
    profile = store.get_profile(profile_id)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"Unknown profile: {profile_id}")
    return profile
