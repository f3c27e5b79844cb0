"""Scoring Model — pure deterministic scoring of a candidate against an opportunity.

All calculations are reproducible Python arithmetic with no I/O and no
randomness. The per-dimension detail dicts are kept on the breakdown for
auditability.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from rfq_match.models.business import Candidate
from rfq_match.models.enums import Availability, Complexity, ScoreDimension
from rfq_match.models.opportunity import Opportunity
from rfq_match.modules.scoring.weights import (
    DEFAULT_RULES,
    DIMENSION_ORDER,
    SCORE_WEIGHTS,
    WIN_PROBABILITY_RULES,
    ScoringRules,
    WeightVector,
    WinProbabilityRules,
)

SCORE_MIN = 0.0
SCORE_MAX = 100.0


def clamp(value: float, low: float = SCORE_MIN, high: float = SCORE_MAX) -> float:
    return max(low, min(high, value))


def normalize(value: str | None) -> str:
    return (value or "").strip().casefold()


def certification_date(opportunity: Opportunity) -> date | None:
    """Certifications must still be valid when the opportunity closes."""
    return opportunity.closing_date.date() if opportunity.closing_date else None


def win_probability(
    overall: float,
    dimensions: Mapping[ScoreDimension, float],
    rules: WinProbabilityRules = WIN_PROBABILITY_RULES,
) -> float:
    probability = overall / 100
    for dimension, below, factor in rules.penalties:
        if dimensions[dimension] < below:
            probability *= factor
    if overall > rules.overall_boost_above:
        probability *= rules.overall_boost
    if dimensions[ScoreDimension.TECHNICAL] > rules.technical_boost_above:
        probability *= rules.technical_boost
    return clamp(probability, 0.0, rules.ceiling)


@dataclass(frozen=True)
class ScoreBreakdown:
    """Six bounded dimensions plus the derived overall score and win probability.

    Dimension values are clamped to [0, 100] on construction, so ``overall``
    is always the weighted sum of in-range values.
    """

    technical: float
    financial: float
    experience: float
    capacity: float
    location: float
    cultural: float
    details: Mapping[str, Any] = field(default_factory=dict, hash=False, repr=False)
    weights: WeightVector[ScoreDimension] = field(
        default_factory=lambda: SCORE_WEIGHTS, compare=False, hash=False, repr=False
    )
    win_rules: WinProbabilityRules = field(
        default=WIN_PROBABILITY_RULES, compare=False, hash=False, repr=False
    )

    def __post_init__(self) -> None:
        for dimension in DIMENSION_ORDER:
            object.__setattr__(
                self, dimension.value, clamp(float(getattr(self, dimension.value)))
            )

    @classmethod
    def from_dimensions(
        cls,
        dimensions: Mapping[ScoreDimension, float],
        weights: WeightVector[ScoreDimension] = SCORE_WEIGHTS,
        details: Mapping[str, Any] | None = None,
    ) -> ScoreBreakdown:
        return cls(
            **{d.value: dimensions[d] for d in DIMENSION_ORDER},
            details=details or {},
            weights=weights,
        )

    def dimensions(self) -> dict[ScoreDimension, float]:
        return {d: getattr(self, d.value) for d in DIMENSION_ORDER}

    def get(self, dimension: ScoreDimension) -> float:
        return getattr(self, dimension.value)

    @property
    def overall(self) -> float:
        return self.weights.weighted_sum(self.dimensions())

    @property
    def win_probability(self) -> float:
        return win_probability(self.overall, self.dimensions(), self.win_rules)

    def to_dict(self) -> dict[str, Any]:
        return {
            **{d.value: getattr(self, d.value) for d in DIMENSION_ORDER},
            "overall": self.overall,
            "win_probability": self.win_probability,
            "details": dict(self.details),
        }


class ScoringModel:
    """
    Deterministic compatibility scoring between a Candidate and an Opportunity.

    Six dimensions, each starting from a base score and moved by additive
    adjustments, then clamped to [0, 100] and combined with the weight vector.
    """

    def __init__(
        self,
        rules: ScoringRules = DEFAULT_RULES,
        weights: WeightVector[ScoreDimension] = SCORE_WEIGHTS,
    ) -> None:
        self.rules = rules
        self.weights = weights

    def score(self, candidate: Candidate, opportunity: Opportunity) -> ScoreBreakdown:
        technical, technical_detail = self._score_technical(candidate, opportunity)
        financial, financial_detail = self._score_financial(candidate, opportunity)
        experience, experience_detail = self._score_experience(candidate, opportunity)
        capacity, capacity_detail = self._score_capacity(candidate, opportunity)
        location, location_detail = self._score_location(candidate, opportunity)
        cultural, cultural_detail = self._score_cultural(candidate, opportunity)

        return ScoreBreakdown(
            technical=technical,
            financial=financial,
            experience=experience,
            capacity=capacity,
            location=location,
            cultural=cultural,
            details={
                "technical": technical_detail,
                "financial": financial_detail,
                "experience": experience_detail,
                "capacity": capacity_detail,
                "location": location_detail,
                "cultural": cultural_detail,
            },
            weights=self.weights,
        )

    # ── Dimension scorers ──────────────────────────────────────────────────

    def _score_technical(
        self, candidate: Candidate, opportunity: Opportunity
    ) -> tuple[float, dict]:
        r = self.rules
        score = r.technical_base

        missing = candidate.missing_certifications(
            opportunity.required_certifications, certification_date(opportunity)
        )
        score += r.technical_certifications_missing if missing else r.technical_certifications_met

        industry_match = bool(opportunity.industry) and normalize(candidate.industry) == normalize(
            opportunity.industry
        )
        if industry_match:
            score += r.technical_industry_match

        skill_ratio = None
        if opportunity.required_skills:
            required = {normalize(s) for s in opportunity.required_skills}
            held = {normalize(s) for s in candidate.capabilities}
            skill_ratio = len(required & held) / len(required)
            score += skill_ratio * r.technical_skill_span - r.technical_skill_offset

        return clamp(score), {
            "missing_certifications": missing,
            "industry_match": industry_match,
            "skill_match_ratio": skill_ratio,
        }

    def _score_financial(
        self, candidate: Candidate, opportunity: Opportunity
    ) -> tuple[float, dict]:
        r = self.rules
        score = r.financial_base
        max_size = candidate.max_project_size or r.default_max_project_size
        value = opportunity.estimated_value

        if value > max_size:
            score += r.financial_over_max
            result = "over_max_project_size"
        elif value > max_size * r.financial_near_max_ratio:
            score += r.financial_near_max
            result = "near_max_project_size"
        else:
            result = "within_capacity"

        missing_bonding = opportunity.requires_bonding and not candidate.has_bonding
        if missing_bonding:
            score += r.financial_missing_bonding
        missing_insurance = opportunity.requires_insurance and not candidate.has_insurance
        if missing_insurance:
            score += r.financial_missing_insurance

        return clamp(score), {
            "result": result,
            "max_project_size": max_size,
            "missing_bonding": missing_bonding,
            "missing_insurance": missing_insurance,
        }

    def _score_experience(
        self, candidate: Candidate, opportunity: Opportunity
    ) -> tuple[float, dict]:
        r = self.rules
        score = r.experience_base
        years = candidate.years_in_business
        required = opportunity.min_years_experience

        if years >= required:
            score += min(r.experience_surplus_cap, (years - required) * r.experience_surplus_per_year)
        else:
            score -= (required - years) * r.experience_deficit_per_year

        score += min(
            r.experience_similar_projects_cap,
            candidate.similar_projects * r.experience_per_similar_project,
        )

        if candidate.performance_rating is not None:
            score += (
                candidate.performance_rating - r.experience_rating_midpoint
            ) * r.experience_per_rating_point

        return clamp(score), {
            "years_in_business": years,
            "required_years": required,
            "similar_projects": candidate.similar_projects,
            "performance_rating": candidate.performance_rating,
        }

    def _score_capacity(
        self, candidate: Candidate, opportunity: Opportunity
    ) -> tuple[float, dict]:
        r = self.rules
        score = r.capacity_base
        employees = candidate.employee_count or r.default_employee_count

        if (
            opportunity.complexity == Complexity.HIGH
            and employees < r.capacity_high_complexity_min_employees
        ):
            score += r.capacity_high_complexity_penalty
        elif (
            opportunity.complexity == Complexity.MEDIUM
            and employees < r.capacity_medium_complexity_min_employees
        ):
            score += r.capacity_medium_complexity_penalty

        available = None
        if candidate.current_capacity_percentage is not None:
            available = 100 - candidate.current_capacity_percentage
            if available < r.capacity_scarce_available_pct:
                score += r.capacity_scarce_penalty
            elif available < r.capacity_limited_available_pct:
                score += r.capacity_limited_penalty

        immediate = bool(opportunity.timeline) and candidate.availability == Availability.IMMEDIATE
        if immediate:
            score += r.capacity_immediate_bonus

        return clamp(score), {
            "employees": employees,
            "complexity": opportunity.complexity.value,
            "available_capacity_pct": available,
            "immediately_available": immediate,
        }

    def _score_location(
        self, candidate: Candidate, opportunity: Opportunity
    ) -> tuple[float, dict]:
        r = self.rules
        score = r.location_base
        location = opportunity.location

        if location.national:
            return clamp(score), {"result": "national"}

        province_match = True
        if location.province and normalize(candidate.province) != normalize(location.province):
            province_match = False
            score += r.location_province_mismatch
            if candidate.operates_nationally:
                score += r.location_national_offset

        city_match = True
        if location.city and normalize(candidate.city) != normalize(location.city):
            city_match = False
            score += r.location_city_mismatch
            if normalize(location.city) in {normalize(a) for a in candidate.service_areas}:
                score += r.location_service_area_offset

        if opportunity.local_preference and location.city and city_match:
            score = min(SCORE_MAX, score + r.location_local_preference_bonus)

        return clamp(score), {
            "province_match": province_match,
            "city_match": city_match,
            "operates_nationally": candidate.operates_nationally,
        }

    def _score_cultural(
        self, candidate: Candidate, opportunity: Opportunity
    ) -> tuple[float, dict]:
        r = self.rules
        score = r.cultural_base

        if opportunity.requires_designated_supplier:
            if candidate.is_designated_supplier:
                score += r.cultural_designated_supplier
                if candidate.designated_supplier_certified:
                    score += r.cultural_designated_certified
            else:
                score += r.cultural_not_designated

        if opportunity.requires_community_benefits:
            if candidate.community_involvement:
                score += r.cultural_community_involvement
            if (
                candidate.local_employment_ratio is not None
                and candidate.local_employment_ratio > r.cultural_local_employment_ratio
            ):
                score += r.cultural_local_employment

        if opportunity.requires_sustainability_certification and candidate.sustainability_certified:
            score += r.cultural_sustainability

        return clamp(score), {
            "designated_supplier": candidate.is_designated_supplier,
            "designated_supplier_certified": candidate.designated_supplier_certified,
        }


_default_model = ScoringModel()


def score(candidate: Candidate, opportunity: Opportunity) -> ScoreBreakdown:
    """Score with the default rules and weight vector."""
    return _default_model.score(candidate, opportunity)
