# src/trialinsight/engine/summary.py
from __future__ import annotations

import random
from typing import Dict, Optional, Sequence

from trialinsight.engine.categories import Category
from trialinsight.engine.models import Profile

_RISK_FACTORS: Dict[Category, str] = {
    Category.LOGISTICS: "logistical challenges including transportation and scheduling conflicts",
    Category.MOTIVATION: "motivational barriers and engagement with trial objectives",
    Category.HEALTHCARE: "limited healthcare access and support network",
    Category.QUALITY: "quality of life concerns impacting trial participation",
}

# (weakest, strongest) -> recommendation; a None strongest is the default for that weakest.
_RECOMMENDATIONS: Dict[tuple, str] = {
    (Category.LOGISTICS, Category.MOTIVATION): "leverage patient motivation with flexible scheduling options",
    (Category.LOGISTICS, Category.HEALTHCARE): "coordinate with existing healthcare providers for integrated appointments",
    (Category.LOGISTICS, None): "implement transportation assistance and simplified visit schedule",
    (Category.MOTIVATION, Category.LOGISTICS): "emphasize convenience of participation while building engagement through education",
    (Category.MOTIVATION, Category.HEALTHCARE): "engage primary care providers to reinforce trial benefits",
    (Category.MOTIVATION, None): "focus on quality of life improvements and personalized benefit communication",
    (Category.HEALTHCARE, Category.LOGISTICS): "provide telehealth options and minimize healthcare system navigation challenges",
    (Category.HEALTHCARE, Category.MOTIVATION): "leverage patient motivation to overcome healthcare system barriers",
    (Category.HEALTHCARE, None): "implement patient navigator support and simplified healthcare interactions",
    (Category.QUALITY, Category.LOGISTICS): "minimize burden of participation through streamlined processes",
    (Category.QUALITY, Category.MOTIVATION): "emphasize long-term quality of life benefits of trial participation",
    (Category.QUALITY, None): "integrate trial participation with existing healthcare routines to minimize disruption",
}

_DEFAULT_RISK = "multiple factors affecting participation"
_DEFAULT_RECOMMENDATION = "personalized support approach based on patient profile"


def risk_factor(category: Category) -> str:
    return _RISK_FACTORS.get(category, _DEFAULT_RISK)


def recommendation(strongest: Category, weakest: Category) -> str:
    if (weakest, strongest) in _RECOMMENDATIONS:
        return _RECOMMENDATIONS[(weakest, strongest)]
    return _RECOMMENDATIONS.get((weakest, None), _DEFAULT_RECOMMENDATION)


def compliance_level(average: float) -> str:
    if average >= 7:
        return "high"
    if average >= 5:
        return "moderate"
    return "low"


class SummaryGenerator:
    """Narrative text over a profile's computed state.

    Canned narratives are drawn at random per profile without repeating the
    previous pick; profiles without canned text get a templated summary.
    Pick history lives on the instance, one generator per app.
    """

    def __init__(self, narratives: Dict[str, Sequence[str]], rng: Optional[random.Random] = None) -> None:
        self._narratives = {pid: tuple(texts) for pid, texts in narratives.items() if texts}
        self._rng = rng or random.Random()
        self._previous: Dict[str, int] = {}

    def generate(self, profile: Profile) -> str:
        canned = self._pick_canned(profile.id)
        if canned is not None:
            return canned
        return self.templated(profile)

    def _pick_canned(self, profile_id: str) -> Optional[str]:
        texts = self._narratives.get(profile_id)
        if not texts:
            return None
        choices = list(range(len(texts)))
        prev = self._previous.get(profile_id)
        if prev is not None and len(choices) > 1:
            choices.remove(prev)
        idx = self._rng.choice(choices)
        self._previous[profile_id] = idx
        return texts[idx]

    @staticmethod
    def templated(profile: Profile) -> str:
        if not profile.categories:
            return "Insufficient data to generate AI summary."

        average = profile.average_model_value()
        ranked = sorted(profile.categories, key=lambda e: e.current_score, reverse=True)
        strongest, weakest = ranked[0].name, ranked[-1].name

        demographic = profile.patient_demographic
        origin = demographic.dominant_origin() or "unknown origin"
        role = demographic.dominant_role() or "unknown role"
        percent = round(average / 10 * 100 * 0.9)

        parts = [
            f"Patient is in {demographic.age or 'unknown'} age range from {origin} with {role} background.",
            f"Analysis indicates {compliance_level(average)} compliance potential with {percent}% adherence probability.",
            f"Key risk factor: {risk_factor(weakest)}.",
            f"Recommended approach: {recommendation(strongest, weakest)}.",
        ]
        return " ".join(parts)
