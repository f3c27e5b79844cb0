"""Scoring weight and threshold tables.

Every magic number the scorer, gap analyzer and partnership synthesizer use
lives here as an immutable table. Weight vectors are checked at construction;
the module-level defaults are built at import, so a bad table fails startup.
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TypeVar

from rfq_match.core.errors import WeightVectorInvariantViolation
from rfq_match.models.enums import ScoreDimension

K = TypeVar("K")

_WEIGHT_TOLERANCE = 1e-9


class WeightVector(Mapping[K, float]):
    """Read-only mapping of factor -> weight whose values sum to 1.0."""

    def __init__(self, name: str, weights: Mapping[K, float]) -> None:
        self.name = name
        self._weights: Mapping[K, float] = MappingProxyType(dict(weights))
        if any(w < 0 for w in self._weights.values()):
            raise WeightVectorInvariantViolation(
                f"{name} weights must be non-negative", detail=dict(self._weights)
            )
        total = math.fsum(self._weights.values())
        if abs(total - 1.0) > _WEIGHT_TOLERANCE:
            raise WeightVectorInvariantViolation(
                f"{name} weights sum to {total!r}, expected 1.0",
                detail=dict(self._weights),
            )

    def __getitem__(self, key: K) -> float:
        return self._weights[key]

    def __iter__(self) -> Iterator[K]:
        return iter(self._weights)

    def __len__(self) -> int:
        return len(self._weights)

    def __repr__(self) -> str:
        return f"WeightVector({self.name!r}, {dict(self._weights)!r})"

    def weighted_sum(self, values: Mapping[K, float]) -> float:
        return math.fsum(values[key] * weight for key, weight in self._weights.items())


# ── Dimension weights (sum = 1.0) ────────────────────────────────────────────

SCORE_WEIGHTS: WeightVector[ScoreDimension] = WeightVector(
    "score",
    {
        ScoreDimension.TECHNICAL: 0.30,
        ScoreDimension.FINANCIAL: 0.20,
        ScoreDimension.EXPERIENCE: 0.20,
        ScoreDimension.CAPACITY: 0.15,
        ScoreDimension.LOCATION: 0.10,
        ScoreDimension.CULTURAL: 0.05,
    },
)

DIMENSION_ORDER: tuple[ScoreDimension, ...] = tuple(ScoreDimension)


# ── Per-dimension adjustment rules ───────────────────────────────────────────


@dataclass(frozen=True)
class ScoringRules:
    """Base scores and additive adjustments for each dimension."""

    technical_base: float = 70
    technical_certifications_met: float = 20
    technical_certifications_missing: float = -20
    technical_industry_match: float = 10
    technical_skill_span: float = 20      # matchRatio * span - offset
    technical_skill_offset: float = 10

    financial_base: float = 80
    financial_over_max: float = -40
    financial_near_max: float = -20
    financial_near_max_ratio: float = 0.7
    financial_missing_bonding: float = -30
    financial_missing_insurance: float = -20
    default_max_project_size: float = 1_000_000

    experience_base: float = 60
    experience_surplus_per_year: float = 2
    experience_surplus_cap: float = 20
    experience_deficit_per_year: float = 10
    experience_per_similar_project: float = 5
    experience_similar_projects_cap: float = 20
    experience_rating_midpoint: float = 3
    experience_per_rating_point: float = 10

    capacity_base: float = 80
    capacity_high_complexity_min_employees: int = 50
    capacity_high_complexity_penalty: float = -30
    capacity_medium_complexity_min_employees: int = 20
    capacity_medium_complexity_penalty: float = -20
    capacity_scarce_available_pct: float = 20
    capacity_scarce_penalty: float = -40
    capacity_limited_available_pct: float = 40
    capacity_limited_penalty: float = -20
    capacity_immediate_bonus: float = 10
    default_employee_count: int = 10

    location_base: float = 100
    location_province_mismatch: float = -30
    location_national_offset: float = 20
    location_city_mismatch: float = -20
    location_service_area_offset: float = 15
    location_local_preference_bonus: float = 20

    cultural_base: float = 70
    cultural_designated_supplier: float = 30
    cultural_designated_certified: float = 10
    cultural_not_designated: float = -50
    cultural_community_involvement: float = 15
    cultural_local_employment: float = 10
    cultural_local_employment_ratio: float = 0.7
    cultural_sustainability: float = 15


# ── Win probability ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class WinProbabilityRules:
    # (dimension, below, factor): scale down when the dimension is under `below`
    penalties: tuple[tuple[ScoreDimension, float, float], ...] = (
        (ScoreDimension.TECHNICAL, 50, 0.5),
        (ScoreDimension.FINANCIAL, 40, 0.6),
        (ScoreDimension.EXPERIENCE, 30, 0.7),
    )
    overall_boost_above: float = 85
    overall_boost: float = 1.2
    technical_boost_above: float = 90
    technical_boost: float = 1.1
    ceiling: float = 0.95


# ── Classification thresholds ────────────────────────────────────────────────


@dataclass(frozen=True)
class Thresholds:
    strength_min: float = 80            # dimension >= -> strength
    gap_below: float = 60               # dimension <  -> gap
    partnership_band: tuple[float, float] = (50, 80)   # [low, high) overall
    partner_dimension_min: float = 80   # partner covers a need at >=
    coverage_min: float = 0.6
    compatibility_min: float = 0.7
    viability_min: float = 70
    max_recommendations: int = 3


DEFAULT_RULES = ScoringRules()
WIN_PROBABILITY_RULES = WinProbabilityRules()
THRESHOLDS = Thresholds()


# ── Label templates ──────────────────────────────────────────────────────────

STRENGTH_LABELS: dict[ScoreDimension, str] = {
    ScoreDimension.TECHNICAL: "Strong technical capabilities",
    ScoreDimension.FINANCIAL: "Excellent financial capacity",
    ScoreDimension.EXPERIENCE: "Extensive relevant experience",
    ScoreDimension.CAPACITY: "Ideal capacity for this project",
    ScoreDimension.LOCATION: "Perfect location match",
    ScoreDimension.CULTURAL: "Strong cultural alignment",
}

GAP_LABELS: dict[ScoreDimension, str] = {
    ScoreDimension.TECHNICAL: "Technical capabilities gap",
    ScoreDimension.FINANCIAL: "Financial capacity concerns",
    ScoreDimension.EXPERIENCE: "Limited relevant experience",
    ScoreDimension.CAPACITY: "Capacity constraints",
    ScoreDimension.LOCATION: "Location mismatch",
    ScoreDimension.CULTURAL: "Cultural alignment gap",
}

RECOMMENDATION_TEMPLATES: dict[ScoreDimension, tuple[str, ...]] = {
    ScoreDimension.TECHNICAL: (
        "Obtain the required certifications or partner with a technically qualified firm",
        "Partner with a technically qualified firm",
    ),
    ScoreDimension.FINANCIAL: (
        "Consider a joint venture for larger capacity",
        "Obtain bonding/insurance if required",
    ),
    ScoreDimension.EXPERIENCE: (
        "Highlight transferable experience from similar projects",
        "Partner with experienced firms",
    ),
    ScoreDimension.CAPACITY: (
        "Consider subcontracting portions of the work",
        "Hire additional staff or contractors",
    ),
    ScoreDimension.LOCATION: (
        "Establish a local partnership or presence",
        "Highlight ability to mobilize to the location",
    ),
    ScoreDimension.CULTURAL: (
        "Partner with a designated supplier or document community benefits",
        "Pursue designated-supplier or sustainability certification",
    ),
}


@dataclass(frozen=True)
class IndustryRelations:
    """Related-industry lookup used for soft industry alignment."""

    related: Mapping[str, frozenset[str]] = field(
        default_factory=lambda: MappingProxyType(
            {
                "IT Services": frozenset({"Consulting", "Software", "Technology"}),
                "Construction": frozenset({"Engineering", "Architecture", "Manufacturing"}),
                "Consulting": frozenset({"IT Services", "Management", "Professional Services"}),
            }
        )
    )

    def are_related(self, a: str | None, b: str | None) -> bool:
        if not a or not b:
            return False
        return b in self.related.get(a, frozenset()) or a in self.related.get(b, frozenset())


INDUSTRY_RELATIONS = IndustryRelations()
