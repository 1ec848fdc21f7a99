from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from trialinsight.api.deps import get_store
from trialinsight.api.schemas import AverageScoreOut, QuestionOut
from trialinsight.engine.dataset import ReferenceDataset
from trialinsight.engine.models import Question
from trialinsight.engine.store import ProfileStore

router = APIRouter(prefix="/api", tags=["reference"])


def _question_out(q: Question, dataset: ReferenceDataset) -> QuestionOut:
    return QuestionOut(
        id=q.id,
        name=q.name,
        score=q.score,
        initial_profiles=sorted(q.initial_profiles),
        allowed_categories=[c.value for c in dataset.get_allowed_categories(q.id)],
        forbidden_categories=[c.value for c in dataset.get_forbidden_categories(q.id)],
    )


@router.get("/trial-data")
async def trial_data(store: ProfileStore = Depends(get_store)):
    """Static trial-parameter ranges; no parameters, no side effects."""
    return store.dataset.trial_parameters


@router.get("/questions", response_model=list[QuestionOut])
async def list_questions(store: ProfileStore = Depends(get_store)):
    return [_question_out(q, store.dataset) for q in store.dataset.questions]


# Declared before /questions/{question_id} so "average" is not read as an id.
@router.get("/questions/average", response_model=AverageScoreOut)
async def average_score(
    ids: Optional[list[str]] = Query(None),
    store: ProfileStore = Depends(get_store),
):
    ids = ids or []
    return AverageScoreOut(ids=ids, average=store.dataset.calculate_average_score(ids))


@router.get("/questions/{question_id}", response_model=QuestionOut)
async def get_question(question_id: str, store: ProfileStore = Depends(get_store)):
    q = store.dataset.get_question_by_id(question_id)
    if q is None:
        raise HTTPException(status_code=404, detail=f"Unknown question: {question_id}")
    return _question_out(q, store.dataset)
