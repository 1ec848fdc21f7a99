"""
src/trialinsight/engine/store.py

Profile store: owns every profile's category membership, demographic record
and derived category scores.

Mutations (move_item, reset_profile, update_patient_demographic) are plain
synchronous calls that run to completion; nothing awaits in between, so a
reader never sees a half-applied change. Each mutation bumps one shared
``last_data_change_timestamp`` so observers can detect change cheaply.

Usage:
    store = ProfileStore(dataset, ScoringRuleTable.from_mapping(...))
    store.move_item(item, "Motivation")
    store.get_current_profile().scores()
"""
from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import fields
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from trialinsight.engine.categories import AVAILABLE, SCORED_CATEGORIES, Category, parse_category
from trialinsight.engine.dataset import ProfileDefinition, ReferenceDataset
from trialinsight.engine.distribution import build_trial_data
from trialinsight.engine.errors import DemographicError, InvariantViolation
from trialinsight.engine.loading import LoadingPhase, LoadingSequence
from trialinsight.engine.models import (
    Item,
    OriginShare,
    PatientDemographic,
    Profile,
    RoleShare,
    empty_category_entries,
    parse_shares,
)
from trialinsight.engine.scoring import MAX_SCORE, MIN_SCORE, ScoringRuleTable

__all__ = ["ProfileStore"]

_log = logging.getLogger("trialinsight.store")

_DEMOGRAPHIC_FIELDS = frozenset(f.name for f in fields(PatientDemographic))
# Text and share-list fields; the numeric ones may be cleared with None.
_NON_NULLABLE_FIELDS = frozenset(f.name for f in fields(PatientDemographic) if f.default is not None)


class ProfileStore:
    def __init__(
        self,
        dataset: ReferenceDataset,
        rules: ScoringRuleTable,
        *,
        current_profile_id: Optional[str] = None,
        loading: Optional[LoadingSequence] = None,
        strict: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._dataset = dataset
        self._rules = rules
        self._strict = strict
        self._clock = clock
        self._last_change = 0

        self._profiles: List[Profile] = [self._build_profile(d) for d in dataset.profiles]
        self._baseline_counts = {p.id: p.trial_data.item_count() for p in self._profiles}
        self._current_profile_id = current_profile_id or self._profiles[0].id
        self._loading = loading if loading is not None else LoadingSequence(phase_seconds=0.0)

        for profile in self._profiles:
            self._check(profile)
        self._touch()
        _log.info("Profile store ready: %s", ", ".join(p.id for p in self._profiles))

    # ── construction ─────────────────────────────────────────────────────────

    def _build_profile(self, definition: ProfileDefinition) -> Profile:
        trial_data = build_trial_data(self._dataset, definition)
        categories = empty_category_entries(self._rules.levels(definition.id))
        profile = Profile(
            id=definition.id,
            name=definition.name,
            disease_burden_score=definition.disease_burden_score,
            trial_data=trial_data,
            patient_demographic=PatientDemographic.from_mapping(definition.details, definition.demographic_seed),
            categories=categories,
        )
        self._recompute(profile, SCORED_CATEGORIES)
        return profile

    def _recompute(self, profile: Profile, categories: Iterable[Category]) -> None:
        for cat in categories:
            entry = profile.category_entry(cat)
            if entry is None:
                continue
            members = profile.trial_data.complexity_items[cat]
            entry.questions = [i.id for i in members]
            entry.current_score = self._rules.score(profile.id, cat, members)

    def _touch(self) -> None:
        now_ms = int(self._clock() * 1000)
        self._last_change = max(now_ms, self._last_change + 1)

    # ── read side ────────────────────────────────────────────────────────────

    @property
    def dataset(self) -> ReferenceDataset:
        return self._dataset

    @property
    def rules(self) -> ScoringRuleTable:
        return self._rules

    @property
    def profiles(self) -> List[Profile]:
        return list(self._profiles)

    @property
    def current_profile_id(self) -> str:
        return self._current_profile_id

    @property
    def last_data_change_timestamp(self) -> int:
        return self._last_change

    @property
    def is_loading(self) -> bool:
        return self._loading.is_loading

    @property
    def loading_phase(self) -> Optional[LoadingPhase]:
        return self._loading.current_phase()

    @property
    def loading(self) -> LoadingSequence:
        return self._loading

    def get_profile(self, profile_id: str) -> Optional[Profile]:
        for profile in self._profiles:
            if profile.id == profile_id:
                return profile
        return None

    def get_current_profile(self) -> Profile:
        return self.get_profile(self._current_profile_id) or self._profiles[0]

    def set_current_profile_id(self, profile_id: str) -> None:
        if self.get_profile(profile_id) is None:
            _log.warning("Switching to unknown profile %s; reads fall back to %s", profile_id, self._profiles[0].id)
        else:
            _log.info("Current profile -> %s", profile_id)
        self._current_profile_id = profile_id

    def get_questions_for_profile(self, profile_id: str) -> List[Item]:
        return [Item.from_question(q) for q in self._dataset.questions_for_profile(profile_id)]

    # ── mutations ────────────────────────────────────────────────────────────

    def move_item(self, item: Item, target_category: str, profile_id: Optional[str] = None) -> Optional[Profile]:
        """Move ``item`` into ``target_category`` ('' sends it back to available).

        Returns the updated profile, or None when the profile does not exist.
        Rejected moves (unknown target, item not held by the profile) leave
        state untouched.
        """
        pid = profile_id or self._current_profile_id
        profile = self.get_profile(pid)
        if profile is None:
            _log.warning("move_item: unknown profile %s; ignored", pid)
            return None

        try:
            target = parse_category(target_category)
        except ValueError:
            _log.warning("move_item: unknown target category %r for item %s; ignored", target_category, item.id)
            return profile
        target_label = target.value if target else AVAILABLE

        trial_data = profile.trial_data
        source_label = trial_data.locate(item.id)
        if source_label is None:
            _log.warning("move_item: item %s is not part of profile %s; ignored", item.id, pid)
            return profile
        if source_label != item.category:
            _log.warning(
                "move_item: item %s reported category %r but is held in %r",
                item.id,
                item.category,
                source_label or "available",
            )

        source = trial_data.bucket(source_label)
        destination = trial_data.bucket(target_label)
        if source is None or destination is None:
            self._violation(profile, f"bucket missing for {source_label!r} -> {target_label!r}")
            return profile

        held = next(i for i in source if i.id == item.id)
        source[:] = [i for i in source if i.id != item.id]
        destination.append(held.placed(target_label))

        affected = {parse_category(label) for label in (source_label, target_label)}
        self._recompute(profile, [c for c in affected if c is not None and c.is_scored])
        self._touch()
        self._check(profile)

        _log.debug(
            "move_item: profile=%s item=%s %r -> %r",
            pid,
            item.id,
            source_label or "available",
            target_label or "available",
        )
        return profile

    def reset_profile(self, profile_id: Optional[str] = None) -> Optional[Profile]:
        pid = profile_id or self._current_profile_id
        definition = self._dataset.profile_definition(pid)
        idx = next((i for i, p in enumerate(self._profiles) if p.id == pid), None)
        if definition is None or idx is None:
            _log.warning("reset_profile: unknown profile %s; ignored", pid)
            return None

        rebuilt = self._build_profile(definition)
        self._profiles[idx] = rebuilt
        self._touch()
        self._check(rebuilt)
        _log.info("reset_profile: %s restored to initial distribution", pid)
        return rebuilt

    def update_patient_demographic(
        self, partial: Mapping[str, Any], profile_id: Optional[str] = None
    ) -> Optional[Profile]:
        """Shallow-merge ``partial`` into the profile's demographic record.

        No range checks: out-of-range values are stored as given. The whole
        update is validated before anything is written; a None for a text or
        share-list field, or a malformed share entry, raises DemographicError
        and leaves the record untouched.
        """
        pid = profile_id or self._current_profile_id
        profile = self.get_profile(pid)
        if profile is None:
            _log.warning("update_patient_demographic: unknown profile %s; ignored", pid)
            return None

        changes: Dict[str, Any] = {}
        for key, value in partial.items():
            if key not in _DEMOGRAPHIC_FIELDS:
                _log.warning("update_patient_demographic: unknown field %r ignored", key)
                continue
            if value is None and key in _NON_NULLABLE_FIELDS:
                raise DemographicError(f"profile {pid}: {key} cannot be null")
            try:
                if key == "origin":
                    value = parse_shares(OriginShare, value)
                elif key == "role":
                    value = parse_shares(RoleShare, value)
            except ValueError as e:
                raise DemographicError(f"profile {pid}: invalid {key}: {e}") from e
            changes[key] = value

        demographic = profile.patient_demographic
        for key, value in changes.items():
            setattr(demographic, key, value)

        self._touch()
        return profile

    # ── invariants ───────────────────────────────────────────────────────────

    def check_invariants(self, profile: Profile) -> List[str]:
        problems: List[str] = []
        trial_data = profile.trial_data

        counts = Counter(i.id for i in trial_data.all_items())
        dupes = sorted(qid for qid, n in counts.items() if n > 1)
        if dupes:
            problems.append(f"items held more than once: {dupes}")

        expected = self._baseline_counts.get(profile.id)
        if expected is not None and sum(counts.values()) != expected:
            problems.append(f"item count {sum(counts.values())} != initial {expected}")

        for item in trial_data.available_items:
            if item.category != AVAILABLE:
                problems.append(f"available item {item.id} tagged {item.category!r}")
        for cat, items in trial_data.complexity_items.items():
            for item in items:
                if item.category != cat.value:
                    problems.append(f"item {item.id} in {cat.value} tagged {item.category!r}")

        for entry in profile.categories:
            if not MIN_SCORE <= entry.current_score <= MAX_SCORE:
                problems.append(f"{entry.name.value} score {entry.current_score} out of bounds")
        return problems

    def _check(self, profile: Profile) -> None:
        if not self._strict:
            return
        problems = self.check_invariants(profile)
        if problems:
            self._violation(profile, "; ".join(problems))

    def _violation(self, profile: Profile, message: str) -> None:
        _log.error("Invariant violation in profile %s: %s", profile.id, message)
        if self._strict:
            raise InvariantViolation(f"profile {profile.id}: {message}")
