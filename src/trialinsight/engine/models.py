# src/trialinsight/engine/models.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from trialinsight.engine.categories import ALL_CATEGORIES, AVAILABLE, SCORED_CATEGORIES, Category


class MultiplierLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(frozen=True)
class Question:
    id: str
    name: str
    score: float
    initial_profiles: frozenset[str] = frozenset()
    can_be_in: frozenset[Category] = frozenset()
    cannot_be_in: frozenset[Category] = frozenset()


@dataclass
class Item:
    id: str
    name: str
    category: str
    score: float

    @classmethod
    def from_question(cls, question: Question, category: str = AVAILABLE) -> "Item":
        return cls(id=question.id, name=question.name, category=category, score=question.score)

    def placed(self, category: str) -> "Item":
        return replace(self, category=category)


@dataclass
class TrialData:
    complexity_items: Dict[Category, List[Item]] = field(
        default_factory=lambda: {cat: [] for cat in ALL_CATEGORIES}
    )
    available_items: List[Item] = field(default_factory=list)

    def bucket(self, label: str) -> Optional[List[Item]]:
        """Bucket for a category label; the available list for ''."""
        if label == AVAILABLE:
            return self.available_items
        for cat, items in self.complexity_items.items():
            if cat.value == label:
                return items
        return None

    def locate(self, item_id: str) -> Optional[str]:
        if any(i.id == item_id for i in self.available_items):
            return AVAILABLE
        for cat, items in self.complexity_items.items():
            if any(i.id == item_id for i in items):
                return cat.value
        return None

    def all_items(self) -> List[Item]:
        out = list(self.available_items)
        for cat in ALL_CATEGORIES:
            out.extend(self.complexity_items.get(cat, []))
        return out

    def item_count(self) -> int:
        return len(self.all_items())


@dataclass
class CategoryScoreEntry:
    name: Category
    questions: List[str]
    current_score: float
    multiplier_level: MultiplierLevel


def _share_fields(raw: Any, key: str) -> tuple:
    if not isinstance(raw, Mapping) or key not in raw or "percentage" not in raw:
        raise ValueError(f"expected an object with {key!r} and 'percentage', got {raw!r}")
    pct = raw["percentage"]
    if isinstance(pct, bool) or not isinstance(pct, (int, float)):
        raise ValueError(f"percentage must be a number, got {pct!r}")
    return str(raw[key]), float(pct)


@dataclass
class OriginShare:
    country: str
    percentage: float

    @classmethod
    def parse(cls, raw: Any) -> "OriginShare":
        return raw if isinstance(raw, cls) else cls(*_share_fields(raw, "country"))


@dataclass
class RoleShare:
    role_name: str
    percentage: float

    @classmethod
    def parse(cls, raw: Any) -> "RoleShare":
        return raw if isinstance(raw, cls) else cls(*_share_fields(raw, "role_name"))


def parse_shares(share_cls, raw: Any) -> list:
    """List of origin or role shares; raises ValueError on malformed entries."""
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"expected a list of {share_cls.__name__} entries, got {raw!r}")
    return [share_cls.parse(entry) for entry in raw]


@dataclass
class PatientDemographic:
    age: str = ""
    origin: List[OriginShare] = field(default_factory=list)
    role: List[RoleShare] = field(default_factory=list)
    gender: str = ""
    ethnicity: str = ""
    weight: Optional[float] = None
    height: Optional[float] = None
    compliance: Optional[float] = None
    medical_history: str = ""

    @classmethod
    def from_mapping(cls, details: Dict[str, Any], seed: Dict[str, Any]) -> "PatientDemographic":
        return cls(
            age=str(details.get("age") or ""),
            origin=parse_shares(OriginShare, details.get("origin", [])),
            role=parse_shares(RoleShare, details.get("role", [])),
            gender=str(seed.get("gender") or ""),
            ethnicity=str(seed.get("ethnicity") or ""),
            weight=seed.get("weight"),
            height=seed.get("height"),
            compliance=seed.get("compliance"),
            medical_history=str(seed.get("medical_history") or ""),
        )

    def dominant_origin(self) -> Optional[str]:
        if not self.origin:
            return None
        return max(self.origin, key=lambda o: o.percentage).country

    def dominant_role(self) -> Optional[str]:
        if not self.role:
            return None
        return max(self.role, key=lambda r: r.percentage).role_name


@dataclass
class Profile:
    id: str
    name: str
    disease_burden_score: float
    trial_data: TrialData
    patient_demographic: PatientDemographic
    categories: List[CategoryScoreEntry]

    def category_entry(self, category: Category) -> Optional[CategoryScoreEntry]:
        for entry in self.categories:
            if entry.name is category:
                return entry
        return None

    def scores(self) -> Dict[Category, float]:
        return {entry.name: entry.current_score for entry in self.categories}

    def average_model_value(self) -> float:
        """Mean of the scored categories, 0 when nothing is scored."""
        if not self.categories:
            return 0.0
        return sum(e.current_score for e in self.categories) / len(self.categories)


def empty_category_entries(levels: Dict[Category, MultiplierLevel]) -> List[CategoryScoreEntry]:
    return [
        CategoryScoreEntry(name=cat, questions=[], current_score=0.0, multiplier_level=levels[cat])
        for cat in SCORED_CATEGORIES
    ]
