# src/trialinsight/engine/categories.py
from __future__ import annotations

from enum import Enum
from typing import Optional

AVAILABLE = ""


class Category(str, Enum):
    LOGISTICS = "Logistics Challenge"
    MOTIVATION = "Motivation"
    HEALTHCARE = "Healthcare Engagement"
    QUALITY = "Quality of Life"
    UNCATEGORIZED = "Uncategorized"

    @property
    def is_scored(self) -> bool:
        return self is not Category.UNCATEGORIZED


# Order used for radar axes, round-robin placement and summaries.
SCORED_CATEGORIES: tuple[Category, ...] = (
    Category.HEALTHCARE,
    Category.MOTIVATION,
    Category.QUALITY,
    Category.LOGISTICS,
)

ALL_CATEGORIES: tuple[Category, ...] = SCORED_CATEGORIES + (Category.UNCATEGORIZED,)

# The questionnaire export names two categories differently from the UI.
_ALIASES = {
    "logistical challenge": Category.LOGISTICS,
    "logistics": Category.LOGISTICS,
    "qol impact": Category.QUALITY,
    "qol": Category.QUALITY,
}


def parse_category(label: str) -> Optional[Category]:
    """Map a display label or dataset alias to a Category.

    Returns None for the empty "available" label. Raises ValueError for
    anything outside the five fixed labels and their aliases.
    """
    if label == AVAILABLE:
        return None
    for cat in Category:
        if cat.value == label:
            return cat
    alias = _ALIASES.get(label.strip().lower())
    if alias is not None:
        return alias
    for cat in Category:
        if cat.value.lower() == label.strip().lower():
            return cat
    raise ValueError(f"Unknown category label: {label!r}")

