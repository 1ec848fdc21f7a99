from __future__ import annotations

import copy

import pytest

from trialinsight.engine import build_store
from trialinsight.engine.dataset import ReferenceDataset


# Small hand-checked dataset: p1 has a predefined layout, p2 falls back to round-robin.
SCENARIO_DATA = {
    "allQuestions": [
        {"id": "a", "name": "Alpha", "score": 4, "initialProfile": ["p1", "p2"]},
        {"id": "b", "name": "Bravo", "score": 6, "initialProfile": ["p1", "p2"]},
        {"id": "c", "name": "Charlie", "score": 3, "initialProfile": ["p1", "p2"]},
        {"id": "d", "name": "Delta", "score": 2, "initialProfile": ["p1", "p2"],
         "canBeInCategories": ["QoL Impact"]},
        {"id": "e", "name": "Echo", "score": 5, "initialProfile": ["p1", "p2"]},
    ],
    "profiles": [
        {
            "id": "p1",
            "name": "Scenario 1",
            "diseaseBurdenScore": 4.0,
            "profile_details": {
                "age": "45-55",
                "origin": [{"country": "US", "percentage": 60}, {"country": "DE", "percentage": 40}],
                "role": [{"role_name": "Patient", "percentage": 100}],
            },
            "patient_demographic": {"gender": "Female", "compliance": 70},
            "categories": [{"name": "Healthcare Engagement", "questions": ["c"]}],
        },
        {"id": "p2", "name": "Scenario 2"},
    ],
    "scoring_rules": {
        "p1": {
            "Healthcare Engagement": {"add": 1.0, "remove": 0.5, "level": "High"},
            "Motivation": {"add": 0.5, "remove": 0.25, "level": "Low"},
            "Quality of Life": {"add": 2.0, "remove": 1.0, "level": "Medium"},
            "Logistics Challenge": {"add": 1.5, "remove": 1.0, "level": "Medium"},
        },
        "p2": {
            "Healthcare Engagement": {"add": 1.0, "remove": 1.0, "level": "Low"},
            "Motivation": {"add": 1.0, "remove": 1.0, "level": "Low"},
            "Quality of Life": {"add": 1.0, "remove": 1.0, "level": "Low"},
            "Logistics Challenge": {"add": 1.0, "remove": 1.0, "level": "Low"},
        },
    },
}


@pytest.fixture
def scenario_data():
    return copy.deepcopy(SCENARIO_DATA)


@pytest.fixture
def scenario_store(scenario_data):
    return build_store(dataset=ReferenceDataset.from_mapping(scenario_data))


@pytest.fixture(scope="session")
def dataset():
    return ReferenceDataset.from_path()


@pytest.fixture
def store():
    """Store over the packaged dataset, strict invariants, no loading delay."""
    return build_store()
