# src/trialinsight/engine/dataset.py
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from trialinsight.engine.categories import SCORED_CATEGORIES, Category, parse_category
from trialinsight.engine.errors import DatasetError
from trialinsight.engine.models import PatientDemographic, Question

DEFAULT_DATASET_PATH = Path(__file__).resolve().parent.parent / "data" / "questions.json"

_log = logging.getLogger("trialinsight.dataset")


@dataclass(frozen=True)
class ProfileDefinition:
    id: str
    name: str
    disease_burden_score: float
    details: Dict[str, Any] = field(default_factory=dict)
    demographic_seed: Dict[str, Any] = field(default_factory=dict)
    # None means "no predefined distribution": fall back to round-robin.
    categories: Optional[Dict[Category, tuple]] = None
    narratives: tuple = ()


def _categories_from(raw: Any, where: str) -> frozenset:
    if raw is None:
        return frozenset()
    if not isinstance(raw, list):
        raise DatasetError(f"{where}: expected a list of category names")
    out = set()
    for label in raw:
        try:
            cat = parse_category(str(label))
        except ValueError as e:
            raise DatasetError(f"{where}: {e}") from e
        if cat is not None:
            out.add(cat)
    return frozenset(out)


def _parse_question(raw: Any, idx: int) -> Question:
    if not isinstance(raw, Mapping):
        raise DatasetError(f"allQuestions[{idx}]: expected an object")
    qid = raw.get("id")
    if not isinstance(qid, str) or not qid:
        raise DatasetError(f"allQuestions[{idx}]: id must be a non-empty string")
    score = raw.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)) or math.isnan(score) or score < 0:
        raise DatasetError(f"question {qid!r}: score must be a non-negative number")
    profiles = raw.get("initialProfile") or []
    if not isinstance(profiles, list):
        raise DatasetError(f"question {qid!r}: initialProfile must be a list")
    return Question(
        id=qid,
        name=str(raw.get("name", "")),
        score=float(score),
        initial_profiles=frozenset(str(p) for p in profiles),
        can_be_in=_categories_from(raw.get("canBeInCategories"), f"question {qid!r}.canBeInCategories"),
        cannot_be_in=_categories_from(raw.get("cannotBeInCategories"), f"question {qid!r}.cannotBeInCategories"),
    )


class ReferenceDataset:
    """Read-only catalog of questions and profile definitions.

    Lookups are fail-soft: unknown ids give None, a zero score or a
    placeholder name, never an exception.
    """

    def __init__(
        self,
        questions: Sequence[Question],
        profiles: Sequence[ProfileDefinition],
        scoring_rules: Mapping[str, Any],
        trial_parameters: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._questions = tuple(questions)
        self._by_id = {q.id: q for q in self._questions}
        self._profiles = tuple(profiles)
        self._profiles_by_id = {p.id: p for p in self._profiles}
        self.scoring_rules = dict(scoring_rules)
        self.trial_parameters = dict(trial_parameters or {})

    # ── loading ──────────────────────────────────────────────────────────────

    @classmethod
    def from_path(cls, path: str | Path | None = None) -> "ReferenceDataset":
        p = Path(path) if path else DEFAULT_DATASET_PATH
        if not p.exists():
            raise DatasetError(f"Dataset not found: {p}")
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise DatasetError(f"Dataset is not valid JSON: {p}: {e}") from e
        ds = cls.from_mapping(data)
        _log.info("Loaded dataset %s: %d questions, %d profiles", p.name, len(ds.questions), len(ds.profiles))
        return ds

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ReferenceDataset":
        if not isinstance(data, Mapping):
            raise DatasetError("Dataset root must be an object")

        raw_questions = data.get("allQuestions")
        if not isinstance(raw_questions, list) or not raw_questions:
            raise DatasetError("Dataset must contain a non-empty allQuestions list")
        questions = [_parse_question(raw, i) for i, raw in enumerate(raw_questions)]

        seen: set[str] = set()
        for q in questions:
            if q.id in seen:
                raise DatasetError(f"Duplicate question id: {q.id!r}")
            seen.add(q.id)

        raw_profiles = data.get("profiles")
        if not isinstance(raw_profiles, list) or not raw_profiles:
            raise DatasetError("Dataset must contain a non-empty profiles list")

        by_id = {q.id: q for q in questions}
        profiles: List[ProfileDefinition] = []
        for raw in raw_profiles:
            profile = cls._parse_profile(raw, by_id)
            if any(p.id == profile.id for p in profiles):
                raise DatasetError(f"Duplicate profile id: {profile.id!r}")
            profiles.append(profile)

        scoring_rules = data.get("scoring_rules")
        if not isinstance(scoring_rules, Mapping):
            raise DatasetError("Dataset must contain a scoring_rules object")

        return cls(questions, profiles, scoring_rules, data.get("trial_parameters"))

    @staticmethod
    def _parse_profile(raw: Any, questions: Mapping[str, Question]) -> ProfileDefinition:
        if not isinstance(raw, Mapping):
            raise DatasetError("profiles: each entry must be an object")
        pid = raw.get("id")
        if not isinstance(pid, str) or not pid:
            raise DatasetError("profiles: id must be a non-empty string")

        categories: Optional[Dict[Category, tuple]] = None
        raw_categories = raw.get("categories")
        if raw_categories is not None:
            if not isinstance(raw_categories, list):
                raise DatasetError(f"profile {pid!r}: categories must be a list")
            categories = {}
            placed: set[str] = set()
            for entry in raw_categories:
                if not isinstance(entry, Mapping):
                    raise DatasetError(f"profile {pid!r}: each categories entry must be an object, got {entry!r}")
                try:
                    cat = parse_category(str(entry.get("name", "")))
                except ValueError as e:
                    raise DatasetError(f"profile {pid!r}: {e}") from e
                if cat is None:
                    raise DatasetError(f"profile {pid!r}: category name must not be empty")
                raw_ids = entry.get("questions", [])
                if not isinstance(raw_ids, list):
                    raise DatasetError(f"profile {pid!r}: {cat.value} questions must be a list")
                ids = tuple(str(q) for q in raw_ids)
                for qid in ids:
                    q = questions.get(qid)
                    if q is None:
                        raise DatasetError(f"profile {pid!r}: unknown question id {qid!r} in {cat.value}")
                    if pid not in q.initial_profiles:
                        raise DatasetError(f"profile {pid!r}: question {qid!r} is not assigned to this profile")
                    if qid in placed:
                        raise DatasetError(f"profile {pid!r}: question {qid!r} placed in more than one category")
                    placed.add(qid)
                categories[cat] = categories.get(cat, ()) + ids

        burden = raw.get("diseaseBurdenScore", 0.0)
        if isinstance(burden, bool) or not isinstance(burden, (int, float)) or math.isnan(burden):
            raise DatasetError(f"profile {pid!r}: diseaseBurdenScore must be a number, got {burden!r}")

        details = raw.get("profile_details") or {}
        seed = raw.get("patient_demographic") or {}
        if not isinstance(details, Mapping) or not isinstance(seed, Mapping):
            raise DatasetError(f"profile {pid!r}: profile_details and patient_demographic must be objects")
        try:
            PatientDemographic.from_mapping(details, seed)
        except ValueError as e:
            raise DatasetError(f"profile {pid!r}: {e}") from e

        narratives = raw.get("narratives") or []
        return ProfileDefinition(
            id=pid,
            name=str(raw.get("name", pid)),
            disease_burden_score=float(burden),
            details=dict(details),
            demographic_seed=dict(seed),
            categories=categories,
            narratives=tuple(str(n) for n in narratives),
        )

    # ── catalog lookups ──────────────────────────────────────────────────────

    @property
    def questions(self) -> tuple:
        return self._questions

    @property
    def profiles(self) -> tuple:
        return self._profiles

    def profile_definition(self, profile_id: str) -> Optional[ProfileDefinition]:
        return self._profiles_by_id.get(profile_id)

    def get_question_by_id(self, question_id: str) -> Optional[Question]:
        return self._by_id.get(question_id)

    def get_question_score(self, question_id: str) -> float:
        q = self.get_question_by_id(question_id)
        return q.score if q else 0.0

    def get_question_name(self, question_id: str) -> str:
        q = self.get_question_by_id(question_id)
        return q.name if q and q.name else f"Unknown Question ({question_id})"

    def calculate_average_score(self, question_ids: Sequence[str]) -> float:
        if not question_ids:
            return 0.0
        return sum(self.get_question_score(qid) for qid in question_ids) / len(question_ids)

    def questions_for_profile(self, profile_id: str) -> List[Question]:
        return [q for q in self._questions if profile_id in q.initial_profiles]

    # ── placement constraints ────────────────────────────────────────────────

    def can_question_be_in_category(self, question_id: str, category: Category | str) -> bool:
        q = self.get_question_by_id(question_id)
        if q is None:
            return False
        if not isinstance(category, Category):
            try:
                category = parse_category(category)
            except ValueError:
                return False
            if category is None:
                # The available pool counts as a placement; an allow-list excludes it.
                return not q.can_be_in
        if category in q.cannot_be_in:
            return False
        if q.can_be_in:
            return category in q.can_be_in
        return True

    def get_allowed_categories(self, question_id: str) -> List[Category]:
        if self.get_question_by_id(question_id) is None:
            return []
        return [c for c in SCORED_CATEGORIES if self.can_question_be_in_category(question_id, c)]

    def get_forbidden_categories(self, question_id: str) -> List[Category]:
        q = self.get_question_by_id(question_id)
        if q is None:
            return []
        return [c for c in SCORED_CATEGORIES if c in q.cannot_be_in]
