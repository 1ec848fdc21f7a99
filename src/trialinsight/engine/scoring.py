"""
src/trialinsight/engine/scoring.py

Per-profile, per-category coefficient table and category score derivation.

Each (profile, scored category) pair carries:
    add     multiplier applied to member item scores
    remove  informational coefficient surfaced to the UI; never used below
    level   coarse Low / Medium / High hint, configured independently

A category score is always re-summed from its full current membership:

    score = min(10, max(0, fsum(item.score * add for item in members)))
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping

from trialinsight.engine.categories import SCORED_CATEGORIES, Category, parse_category
from trialinsight.engine.errors import DatasetError
from trialinsight.engine.models import Item, MultiplierLevel

__all__ = [
    "MAX_SCORE",
    "MIN_SCORE",
    "ScoringRule",
    "ScoringRuleTable",
    "compute_category_score",
]

MIN_SCORE = 0.0
MAX_SCORE = 10.0


@dataclass(frozen=True)
class ScoringRule:
    add: float
    remove: float
    level: MultiplierLevel


def compute_category_score(items: Iterable[Item], rule: ScoringRule) -> float:
    total = math.fsum(item.score * rule.add for item in items)
    return min(MAX_SCORE, max(MIN_SCORE, total))


def _coefficient(raw: Any, where: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise DatasetError(f"{where}: coefficient must be a number, got {raw!r}")
    value = float(raw)
    if value < 0 or math.isnan(value):
        raise DatasetError(f"{where}: coefficient must be >= 0, got {raw!r}")
    return value


class ScoringRuleTable:
    """Two-dimensional lookup: profile id -> category -> ScoringRule."""

    def __init__(self, rules: Dict[str, Dict[Category, ScoringRule]]) -> None:
        self._rules = rules

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], profile_ids: Iterable[str]) -> "ScoringRuleTable":
        """Build and validate the table; every profile needs all four scored categories."""
        rules: Dict[str, Dict[Category, ScoringRule]] = {}
        for profile_id in profile_ids:
            raw_profile = data.get(profile_id)
            if not isinstance(raw_profile, Mapping):
                raise DatasetError(f"scoring_rules: missing entry for profile {profile_id!r}")

            per_cat: Dict[Category, ScoringRule] = {}
            for label, raw_rule in raw_profile.items():
                try:
                    cat = parse_category(label)
                except ValueError as e:
                    raise DatasetError(f"scoring_rules[{profile_id}]: {e}") from e
                if cat is None or not cat.is_scored:
                    raise DatasetError(f"scoring_rules[{profile_id}]: {label!r} is not a scored category")

                where = f"scoring_rules[{profile_id}][{cat.value}]"
                if not isinstance(raw_rule, Mapping):
                    raise DatasetError(f"{where}: expected an object with add, remove and level")
                try:
                    level = MultiplierLevel(raw_rule.get("level", ""))
                except ValueError as e:
                    raise DatasetError(f"{where}: level must be Low, Medium or High") from e
                per_cat[cat] = ScoringRule(
                    add=_coefficient(raw_rule.get("add"), where + ".add"),
                    remove=_coefficient(raw_rule.get("remove"), where + ".remove"),
                    level=level,
                )

            missing = [c.value for c in SCORED_CATEGORIES if c not in per_cat]
            if missing:
                raise DatasetError(f"scoring_rules[{profile_id}]: missing categories {missing}")
            rules[profile_id] = per_cat

        return cls(rules)

    def has_profile(self, profile_id: str) -> bool:
        return profile_id in self._rules

    def rule(self, profile_id: str, category: Category) -> ScoringRule:
        return self._rules[profile_id][category]

    def levels(self, profile_id: str) -> Dict[Category, MultiplierLevel]:
        return {cat: rule.level for cat, rule in self._rules[profile_id].items()}

    def score(self, profile_id: str, category: Category, items: Iterable[Item]) -> float:
        return compute_category_score(items, self.rule(profile_id, category))
