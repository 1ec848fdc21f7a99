"""
tests/test_scoring.py

Coefficient table validation and category score derivation.
"""
from __future__ import annotations

import pytest

from trialinsight.engine.categories import Category
from trialinsight.engine.errors import DatasetError
from trialinsight.engine.models import Item, MultiplierLevel
from trialinsight.engine.scoring import ScoringRule, ScoringRuleTable, compute_category_score


def _items(*scores):
    return [Item(id=f"i{n}", name=f"Item {n}", category="Motivation", score=s) for n, s in enumerate(scores)]


def _rules(**overrides):
    base = {
        "Healthcare Engagement": {"add": 1.0, "remove": 0.5, "level": "High"},
        "Motivation": {"add": 0.5, "remove": 0.5, "level": "Medium"},
        "Quality of Life": {"add": 1.5, "remove": 1.0, "level": "Low"},
        "Logistics Challenge": {"add": 1.0, "remove": 0.6, "level": "Medium"},
    }
    base.update(overrides)
    return {"p": base}


# ═══════════════════════════════════════════════════════════════════
# 1. SCORE DERIVATION
# ═══════════════════════════════════════════════════════════════════

def test_empty_category_scores_zero():
    rule = ScoringRule(add=2.0, remove=1.0, level=MultiplierLevel.LOW)
    assert compute_category_score([], rule) == 0


def test_score_is_sum_times_add():
    rule = ScoringRule(add=0.5, remove=0.5, level=MultiplierLevel.MEDIUM)
    assert compute_category_score(_items(4, 6), rule) == pytest.approx(5.0)


def test_score_clamped_to_ten():
    rule = ScoringRule(add=1.4, remove=1.0, level=MultiplierLevel.HIGH)
    assert compute_category_score(_items(2.5, 2.0, 3.0), rule) == 10.0


def test_remove_coefficient_does_not_affect_score():
    a = ScoringRule(add=1.0, remove=0.0, level=MultiplierLevel.LOW)
    b = ScoringRule(add=1.0, remove=9.0, level=MultiplierLevel.LOW)
    items = _items(1.5, 2.5)
    assert compute_category_score(items, a) == compute_category_score(items, b)


def test_score_independent_of_membership_order():
    rule = ScoringRule(add=1.2, remove=0.8, level=MultiplierLevel.HIGH)
    items = _items(0.1, 0.2, 0.3, 3.5)
    assert compute_category_score(items, rule) == compute_category_score(list(reversed(items)), rule)


# ═══════════════════════════════════════════════════════════════════
# 2. TABLE VALIDATION
# ═══════════════════════════════════════════════════════════════════

def test_table_lookup_and_levels():
    table = ScoringRuleTable.from_mapping(_rules(), ["p"])
    assert table.has_profile("p")
    assert not table.has_profile("q")
    assert table.rule("p", Category.MOTIVATION).add == 0.5
    assert table.levels("p")[Category.HEALTHCARE] is MultiplierLevel.HIGH


def test_table_accepts_alias_labels():
    data = _rules()
    data["p"]["QoL Impact"] = data["p"].pop("Quality of Life")
    table = ScoringRuleTable.from_mapping(data, ["p"])
    assert table.rule("p", Category.QUALITY).add == 1.5


def test_missing_profile_rejected():
    with pytest.raises(DatasetError, match="missing entry"):
        ScoringRuleTable.from_mapping(_rules(), ["p", "other"])


def test_missing_category_rejected():
    data = _rules()
    del data["p"]["Motivation"]
    with pytest.raises(DatasetError, match="missing categories"):
        ScoringRuleTable.from_mapping(data, ["p"])


def test_uncategorized_rule_rejected():
    data = _rules(Uncategorized={"add": 1.0, "remove": 1.0, "level": "Low"})
    with pytest.raises(DatasetError, match="not a scored category"):
        ScoringRuleTable.from_mapping(data, ["p"])


@pytest.mark.parametrize("add", [-1, "1.0", None, True, float("nan")])
def test_bad_coefficient_rejected(add):
    data = _rules(Motivation={"add": add, "remove": 0.5, "level": "Medium"})
    with pytest.raises(DatasetError, match="coefficient"):
        ScoringRuleTable.from_mapping(data, ["p"])


def test_bad_level_rejected():
    data = _rules(Motivation={"add": 1.0, "remove": 0.5, "level": "Extreme"})
    with pytest.raises(DatasetError, match="level"):
        ScoringRuleTable.from_mapping(data, ["p"])
