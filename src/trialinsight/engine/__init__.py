# src/trialinsight/engine/__init__.py
from __future__ import annotations

import random
from pathlib import Path
from typing import Optional

from trialinsight.engine.categories import AVAILABLE, SCORED_CATEGORIES, Category
from trialinsight.engine.dataset import ReferenceDataset
from trialinsight.engine.errors import DatasetError, DemographicError, InvariantViolation, TrialInsightError
from trialinsight.engine.loading import LoadingSequence
from trialinsight.engine.models import Item, Profile
from trialinsight.engine.scoring import ScoringRuleTable
from trialinsight.engine.store import ProfileStore
from trialinsight.engine.summary import SummaryGenerator

__all__ = [
    "AVAILABLE",
    "SCORED_CATEGORIES",
    "Category",
    "DatasetError",
    "DemographicError",
    "InvariantViolation",
    "Item",
    "LoadingSequence",
    "Profile",
    "ProfileStore",
    "ReferenceDataset",
    "ScoringRuleTable",
    "SummaryGenerator",
    "TrialInsightError",
    "build_store",
    "build_summary_generator",
]


def build_store(
    dataset_path: str | Path | None = None,
    *,
    dataset: Optional[ReferenceDataset] = None,
    current_profile_id: Optional[str] = None,
    phase_seconds: float = 0.0,
    strict: bool = True,
) -> ProfileStore:
    """Load the dataset, validate the coefficient table and build the store."""
    ds = dataset or ReferenceDataset.from_path(dataset_path)
    rules = ScoringRuleTable.from_mapping(ds.scoring_rules, [p.id for p in ds.profiles])
    return ProfileStore(
        ds,
        rules,
        current_profile_id=current_profile_id,
        loading=LoadingSequence(phase_seconds=phase_seconds),
        strict=strict,
    )


def build_summary_generator(dataset: ReferenceDataset, seed: Optional[int] = None) -> SummaryGenerator:
    narratives = {p.id: p.narratives for p in dataset.profiles}
    return SummaryGenerator(narratives, rng=random.Random(seed))
