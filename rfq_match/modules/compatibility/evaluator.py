"""Compatibility Evaluator — how well two businesses would work together.

Pure function of the two profiles plus an injected collaboration-history
lookup; independent of any opportunity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from rfq_match.models.business import Candidate
from rfq_match.modules.matching.repository import PastCollaborationLookup
from rfq_match.modules.scoring.algorithm import normalize
from rfq_match.modules.scoring.weights import (
    DEFAULT_RULES,
    INDUSTRY_RELATIONS,
    IndustryRelations,
    WeightVector,
)

INDUSTRY_ALIGNMENT = "industry_alignment"
SIZE_COMPATIBILITY = "size_compatibility"
CULTURE_FIT = "culture_fit"
GEOGRAPHIC_SYNERGY = "geographic_synergy"
PAST_COLLABORATION = "past_collaboration"

COMPATIBILITY_WEIGHTS: WeightVector[str] = WeightVector(
    "compatibility",
    {
        INDUSTRY_ALIGNMENT: 0.25,
        SIZE_COMPATIBILITY: 0.20,
        CULTURE_FIT: 0.20,
        GEOGRAPHIC_SYNERGY: 0.20,
        PAST_COLLABORATION: 0.15,
    },
)

# (minimum score, recommendation), checked top-down
RECOMMENDATION_TIERS: tuple[tuple[float, str], ...] = (
    (0.8, "Excellent partnership potential"),
    (0.7, "Good partnership potential"),
    (0.6, "Moderate partnership potential"),
)
FALLBACK_RECOMMENDATION = "Consider alternative partners"

SAME_INDUSTRY = 1.0
RELATED_INDUSTRY = 0.7
UNRELATED_INDUSTRY = 0.4
SIZE_RATIO_FLOOR = 0.3
BOTH_DESIGNATED = 0.9
DEFAULT_CULTURE = 0.7
SAME_PROVINCE = 0.9
EITHER_NATIONAL = 0.7
DISTANT = 0.4


@dataclass(frozen=True)
class CompatibilityResult:
    score: float
    factors: dict[str, float]
    recommendation: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": round(self.score, 4),
            "factors": dict(self.factors),
            "recommendation": self.recommendation,
        }


class _NoHistory:
    def get(self, business_a: str, business_b: str) -> float:
        return 0.0


def recommendation_for(score: float) -> str:
    for minimum, text in RECOMMENDATION_TIERS:
        if score >= minimum:
            return text
    return FALLBACK_RECOMMENDATION


def evaluate(
    a: Candidate,
    b: Candidate,
    lookup: PastCollaborationLookup | None = None,
    weights: WeightVector[str] = COMPATIBILITY_WEIGHTS,
    relations: IndustryRelations = INDUSTRY_RELATIONS,
) -> CompatibilityResult:
    """Weighted five-factor compatibility in [0, 1]."""
    lookup = lookup or _NoHistory()

    if a.industry and normalize(a.industry) == normalize(b.industry):
        industry = SAME_INDUSTRY
    elif relations.are_related(a.industry, b.industry):
        industry = RELATED_INDUSTRY
    else:
        industry = UNRELATED_INDUSTRY

    size_a = a.employee_count or DEFAULT_RULES.default_employee_count
    size_b = b.employee_count or DEFAULT_RULES.default_employee_count
    size = max(SIZE_RATIO_FLOOR, min(size_a, size_b) / max(size_a, size_b))

    culture = (
        BOTH_DESIGNATED
        if a.is_designated_supplier and b.is_designated_supplier
        else DEFAULT_CULTURE
    )

    if a.province and normalize(a.province) == normalize(b.province):
        geography = SAME_PROVINCE
    elif a.operates_nationally or b.operates_nationally:
        geography = EITHER_NATIONAL
    else:
        geography = DISTANT

    history = max(0.0, min(1.0, lookup.get(a.id, b.id)))

    factors = {
        INDUSTRY_ALIGNMENT: industry,
        SIZE_COMPATIBILITY: size,
        CULTURE_FIT: culture,
        GEOGRAPHIC_SYNERGY: geography,
        PAST_COLLABORATION: history,
    }
    score = weights.weighted_sum(factors)
    return CompatibilityResult(
        score=score, factors=factors, recommendation=recommendation_for(score)
    )
