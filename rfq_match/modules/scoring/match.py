"""Match records: one candidate scored against one opportunity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from rfq_match.models.business import Candidate
from rfq_match.models.enums import ScoreDimension
from rfq_match.models.opportunity import Opportunity
from rfq_match.modules.scoring.algorithm import (
    ScoreBreakdown,
    ScoringModel,
    certification_date,
    normalize,
)
from rfq_match.modules.scoring.gaps import (
    GapAnalysis,
    analyze,
    gap_labels,
    recommendations_for,
    strength_labels,
)
from rfq_match.modules.scoring.weights import THRESHOLDS, Thresholds

_FALLBACK_EMPLOYEE_PROJECT_VALUE = 100_000
_DEFAULT_AVG_PROJECT_SIZE = 50_000


@dataclass(frozen=True)
class MatchCriteria:
    """Soft eligibility flags. Only ``designated_supplier_match`` is a hard gate."""

    industry_match: bool
    location_match: bool
    capacity_match: bool
    certification_match: bool
    experience_match: bool
    budget_match: bool
    designated_supplier_match: bool

    def to_dict(self) -> dict[str, bool]:
        return {
            "industry_match": self.industry_match,
            "location_match": self.location_match,
            "capacity_match": self.capacity_match,
            "certification_match": self.certification_match,
            "experience_match": self.experience_match,
            "budget_match": self.budget_match,
            "designated_supplier_match": self.designated_supplier_match,
        }


def matches_industry(candidate: Candidate, opportunity: Opportunity) -> bool:
    if not opportunity.industry:
        return True
    wanted = normalize(opportunity.industry)
    return any(
        normalize(industry) in wanted or wanted in normalize(industry)
        for industry in candidate.industries
    )


def meets_designated_supplier_gate(candidate: Candidate, opportunity: Opportunity) -> bool:
    return not opportunity.requires_designated_supplier or candidate.is_designated_supplier


def evaluate_criteria(candidate: Candidate, opportunity: Opportunity) -> MatchCriteria:
    location = opportunity.location
    location_match = True
    if not location.national:
        if (
            location.province
            and normalize(candidate.province) != normalize(location.province)
            and not candidate.operates_nationally
        ):
            location_match = False
        if (
            location.city
            and normalize(candidate.city) != normalize(location.city)
            and normalize(location.city) not in {normalize(a) for a in candidate.service_areas}
        ):
            location_match = False

    max_size = candidate.max_project_size or (
        (candidate.employee_count or 10) * _FALLBACK_EMPLOYEE_PROJECT_VALUE
    )

    budget_match = True
    if opportunity.budget_range is not None:
        avg = candidate.avg_project_size or _DEFAULT_AVG_PROJECT_SIZE
        budget = opportunity.budget_range
        budget_match = budget.min * 0.5 <= avg <= budget.max * 2

    return MatchCriteria(
        industry_match=matches_industry(candidate, opportunity),
        location_match=location_match,
        capacity_match=max_size >= opportunity.estimated_value,
        certification_match=not candidate.missing_certifications(
            opportunity.required_certifications, certification_date(opportunity)
        ),
        experience_match=candidate.years_in_business >= opportunity.min_years_experience,
        budget_match=budget_match,
        designated_supplier_match=meets_designated_supplier_gate(candidate, opportunity),
    )


@dataclass(frozen=True)
class Match:
    candidate: Candidate
    opportunity: Opportunity
    breakdown: ScoreBreakdown
    analysis: GapAnalysis
    strengths: tuple[str, ...]
    gaps: tuple[str, ...]
    recommendations: tuple[str, ...]
    criteria: MatchCriteria
    missing_certifications: tuple[str, ...]

    @property
    def candidate_id(self) -> str:
        return self.candidate.id

    @property
    def overall(self) -> float:
        return self.breakdown.overall

    @property
    def win_probability(self) -> float:
        return self.breakdown.win_probability

    @property
    def gap_dimensions(self) -> tuple[ScoreDimension, ...]:
        return self.analysis.gaps

    @property
    def has_certification_gap(self) -> bool:
        return bool(self.missing_certifications)

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidate_id": self.candidate.id,
            "candidate_name": self.candidate.name,
            "opportunity_id": self.opportunity.id,
            "score": self.breakdown.to_dict(),
            "strengths": list(self.strengths),
            "gaps": list(self.gaps),
            "recommendations": list(self.recommendations),
            "criteria": self.criteria.to_dict(),
            "missing_certifications": list(self.missing_certifications),
        }


def build_match(
    candidate: Candidate,
    opportunity: Opportunity,
    model: ScoringModel,
    thresholds: Thresholds = THRESHOLDS,
) -> Match:
    breakdown = model.score(candidate, opportunity)
    analysis = analyze(breakdown, thresholds)
    return Match(
        candidate=candidate,
        opportunity=opportunity,
        breakdown=breakdown,
        analysis=analysis,
        strengths=tuple(strength_labels(analysis, breakdown)),
        gaps=tuple(gap_labels(analysis, breakdown)),
        recommendations=tuple(recommendations_for(analysis.gaps, thresholds.max_recommendations)),
        criteria=evaluate_criteria(candidate, opportunity),
        missing_certifications=tuple(breakdown.details["technical"]["missing_certifications"]),
    )
