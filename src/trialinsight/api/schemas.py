# src/trialinsight/api/schemas.py
from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Five fixed labels plus "" for the available pool.
CategoryLabel = Literal[
    "",
    "Logistics Challenge",
    "Motivation",
    "Healthcare Engagement",
    "Quality of Life",
    "Uncategorized",
]


class ItemPayload(BaseModel):
    """The one drag payload shape: always id, name, category and score."""

    id: str = Field(..., min_length=1, max_length=64)
    name: str = ""
    category: CategoryLabel = ""
    score: float = Field(0.0, ge=0)


class MoveRequest(BaseModel):
    item: ItemPayload
    target_category: CategoryLabel


class CurrentProfileIn(BaseModel):
    profile_id: str = Field(..., min_length=1, max_length=64)


class OriginShareIn(BaseModel):
    country: str
    percentage: float


class RoleShareIn(BaseModel):
    role_name: str
    percentage: float


class DemographicPatch(BaseModel):
    """Partial demographic update; omitted fields stay untouched, ranges unchecked."""

    model_config = ConfigDict(extra="forbid")

    age: Optional[str] = None
    origin: Optional[List[OriginShareIn]] = None
    role: Optional[List[RoleShareIn]] = None
    gender: Optional[str] = None
    ethnicity: Optional[str] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    compliance: Optional[float] = None
    medical_history: Optional[str] = None

    @field_validator("age", "origin", "role", "gender", "ethnicity", "medical_history")
    @classmethod
    def reject_null(cls, v):
        # Omit a field to keep it; only the numeric fields can be cleared.
        if v is None:
            raise ValueError("must not be null")
        return v


class ItemOut(BaseModel):
    id: str
    name: str
    category: str
    score: float


class TrialDataOut(BaseModel):
    available_items: List[ItemOut]
    complexity_items: Dict[str, List[ItemOut]]


class CategoryScoreOut(BaseModel):
    name: str
    questions: List[str]
    current_score: float
    multiplier_level: str


class DemographicOut(BaseModel):
    age: str
    origin: List[OriginShareIn]
    role: List[RoleShareIn]
    gender: str
    ethnicity: str
    weight: Optional[float] = None
    height: Optional[float] = None
    compliance: Optional[float] = None
    medical_history: str


class ProfileOut(BaseModel):
    id: str
    name: str
    disease_burden_score: float
    average_model_value: float
    trial_data: TrialDataOut
    patient_demographic: DemographicOut
    categories: List[CategoryScoreOut]
    last_data_change_timestamp: int


class ProfileSummaryOut(BaseModel):
    id: str
    name: str
    is_current: bool
    average_model_value: float


class LoadingPhaseOut(BaseModel):
    message: str
    detail: str


class StateOut(BaseModel):
    current_profile_id: str
    is_loading: bool
    loading_phase: Optional[LoadingPhaseOut] = None
    loading_progress: int
    last_data_change_timestamp: int


class ScoreAxisOut(BaseModel):
    category: str
    current_score: float
    multiplier_level: str
    add: float
    remove: float


class ScoresOut(BaseModel):
    profile_id: str
    axes: List[ScoreAxisOut]
    average_model_value: float


class SummaryOut(BaseModel):
    profile_id: str
    summary: str


class QuestionOut(BaseModel):
    id: str
    name: str
    score: float
    initial_profiles: List[str]
    allowed_categories: List[str]
    forbidden_categories: List[str]


class AverageScoreOut(BaseModel):
    ids: List[str]
    average: float
