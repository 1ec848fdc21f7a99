from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from trialinsight.api.deps import get_store, get_summary_generator, resolve_profile
from trialinsight.api.schemas import (
    CategoryScoreOut,
    CurrentProfileIn,
    DemographicOut,
    DemographicPatch,
    ItemOut,
    LoadingPhaseOut,
    MoveRequest,
    ProfileOut,
    ProfileSummaryOut,
    ScoreAxisOut,
    ScoresOut,
    StateOut,
    SummaryOut,
    TrialDataOut,
)
from trialinsight.engine.categories import ALL_CATEGORIES
from trialinsight.engine.models import Item, Profile
from trialinsight.engine.store import ProfileStore
from trialinsight.engine.summary import SummaryGenerator

router = APIRouter(prefix="/api", tags=["profiles"])
_log = logging.getLogger("trialinsight.api.profiles")


def _item_out(item: Item) -> ItemOut:
    return ItemOut(id=item.id, name=item.name, category=item.category, score=item.score)


def profile_out(profile: Profile, store: ProfileStore) -> ProfileOut:
    trial_data = profile.trial_data
    return ProfileOut(
        id=profile.id,
        name=profile.name,
        disease_burden_score=profile.disease_burden_score,
        average_model_value=profile.average_model_value(),
        trial_data=TrialDataOut(
            available_items=[_item_out(i) for i in trial_data.available_items],
            complexity_items={
                cat.value: [_item_out(i) for i in trial_data.complexity_items[cat]] for cat in ALL_CATEGORIES
            },
        ),
        patient_demographic=DemographicOut(**asdict(profile.patient_demographic)),
        categories=[
            CategoryScoreOut(
                name=e.name.value,
                questions=list(e.questions),
                current_score=e.current_score,
                multiplier_level=e.multiplier_level.value,
            )
            for e in profile.categories
        ],
        last_data_change_timestamp=store.last_data_change_timestamp,
    )


def state_out(store: ProfileStore) -> StateOut:
    phase = store.loading_phase
    return StateOut(
        current_profile_id=store.current_profile_id,
        is_loading=store.is_loading,
        loading_phase=LoadingPhaseOut(message=phase.message, detail=phase.detail) if phase else None,
        loading_progress=store.loading.progress(),
        last_data_change_timestamp=store.last_data_change_timestamp,
    )


# ── store-wide state ─────────────────────────────────────────────────────────

@router.get("/state", response_model=StateOut)
async def get_state(store: ProfileStore = Depends(get_store)):
    return state_out(store)


@router.put("/state/current-profile", response_model=StateOut)
async def set_current_profile(payload: CurrentProfileIn, store: ProfileStore = Depends(get_store)):
    if store.get_profile(payload.profile_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown profile: {payload.profile_id}")
    store.set_current_profile_id(payload.profile_id)
    return state_out(store)


# ── profiles ─────────────────────────────────────────────────────────────────

@router.get("/profiles", response_model=list[ProfileSummaryOut])
async def list_profiles(store: ProfileStore = Depends(get_store)):
    current = store.get_current_profile().id
    return [
        ProfileSummaryOut(id=p.id, name=p.name, is_current=p.id == current, average_model_value=p.average_model_value())
        for p in store.profiles
    ]


@router.get("/profiles/{profile_id}", response_model=ProfileOut)
async def get_profile(profile: Profile = Depends(resolve_profile), store: ProfileStore = Depends(get_store)):
    return profile_out(profile, store)


@router.get("/profiles/{profile_id}/questions", response_model=list[ItemOut])
async def get_profile_questions(profile: Profile = Depends(resolve_profile), store: ProfileStore = Depends(get_store)):
    return [_item_out(i) for i in store.get_questions_for_profile(profile.id)]


@router.get("/profiles/{profile_id}/scores", response_model=ScoresOut)
async def get_profile_scores(profile: Profile = Depends(resolve_profile), store: ProfileStore = Depends(get_store)):
    axes = []
    for entry in profile.categories:
        rule = store.rules.rule(profile.id, entry.name)
        axes.append(
            ScoreAxisOut(
                category=entry.name.value,
                current_score=entry.current_score,
                multiplier_level=entry.multiplier_level.value,
                add=rule.add,
                remove=rule.remove,
            )
        )
    return ScoresOut(profile_id=profile.id, axes=axes, average_model_value=profile.average_model_value())


@router.get("/profiles/{profile_id}/summary", response_model=SummaryOut)
async def get_profile_summary(
    profile: Profile = Depends(resolve_profile),
    generator: SummaryGenerator = Depends(get_summary_generator),
):
    return SummaryOut(profile_id=profile.id, summary=generator.generate(profile))


@router.post("/profiles/{profile_id}/moves", response_model=ProfileOut)
async def move_item(
    payload: MoveRequest,
    profile: Profile = Depends(resolve_profile),
    store: ProfileStore = Depends(get_store),
):
    allowed = {q.id for q in store.dataset.questions_for_profile(profile.id)}
    if payload.item.id not in allowed:
        raise HTTPException(status_code=400, detail=f"Item {payload.item.id} does not belong to profile {profile.id}")

    item = Item(
        id=payload.item.id,
        name=payload.item.name,
        category=payload.item.category,
        score=payload.item.score,
    )
    updated = store.move_item(item, payload.target_category, profile_id=profile.id)
    _log.info(
        "move %s -> %r",
        item.id,
        payload.target_category,
        extra={"item_id": item.id, "target_category": payload.target_category},
    )
    return profile_out(updated or profile, store)


@router.post("/profiles/{profile_id}/reset", response_model=ProfileOut)
async def reset_profile(profile: Profile = Depends(resolve_profile), store: ProfileStore = Depends(get_store)):
    rebuilt = store.reset_profile(profile.id)
    return profile_out(rebuilt or profile, store)


@router.patch("/profiles/{profile_id}/demographic", response_model=ProfileOut)
async def update_demographic(
    payload: DemographicPatch,
    profile: Profile = Depends(resolve_profile),
    store: ProfileStore = Depends(get_store),
):
    partial = payload.model_dump(exclude_unset=True)
    updated = store.update_patient_demographic(partial, profile_id=profile.id)
    return profile_out(updated or profile, store)
