# src/trialinsight/engine/distribution.py
from __future__ import annotations

import logging
from typing import List

from trialinsight.engine.categories import SCORED_CATEGORIES, Category
from trialinsight.engine.dataset import ProfileDefinition, ReferenceDataset
from trialinsight.engine.models import Item, TrialData

_log = logging.getLogger("trialinsight.distribution")


def build_trial_data(dataset: ReferenceDataset, definition: ProfileDefinition) -> TrialData:
    """Initial TrialData for a profile: predefined lists when present, else round-robin."""
    questions = dataset.questions_for_profile(definition.id)
    if definition.categories is None:
        return round_robin_distribution(dataset, [Item.from_question(q) for q in questions])
    return predefined_distribution(dataset, definition)


def predefined_distribution(dataset: ReferenceDataset, definition: ProfileDefinition) -> TrialData:
    trial_data = TrialData()
    placed: set[str] = set()
    for cat, question_ids in (definition.categories or {}).items():
        for qid in question_ids:
            q = dataset.get_question_by_id(qid)
            if q is None:
                continue
            trial_data.complexity_items[cat].append(Item.from_question(q, cat.value))
            placed.add(qid)

    trial_data.available_items = [
        Item.from_question(q) for q in dataset.questions_for_profile(definition.id) if q.id not in placed
    ]
    return trial_data


def round_robin_distribution(dataset: ReferenceDataset, items: List[Item]) -> TrialData:
    """Spread items over the scored categories in turn.

    Every category receives one item before any receives a second. A category
    the item is not allowed in is skipped; an item allowed nowhere goes to
    Uncategorized.
    """
    trial_data = TrialData()
    cursor = 0
    n = len(SCORED_CATEGORIES)

    for item in items:
        target = None
        # Least-filled legal category first, ties broken by rotation order.
        candidates = sorted(
            range(n),
            key=lambda k: (len(trial_data.complexity_items[SCORED_CATEGORIES[(cursor + k) % n]]), k),
        )
        for k in candidates:
            cat = SCORED_CATEGORIES[(cursor + k) % n]
            if dataset.can_question_be_in_category(item.id, cat):
                target = cat
                cursor = (cursor + k + 1) % n
                break

        if target is None:
            _log.info("Item %s fits no scored category; placing in Uncategorized", item.id)
            target = Category.UNCATEGORIZED

        trial_data.complexity_items[target].append(item.placed(target.value))

    return trial_data
