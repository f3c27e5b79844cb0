"""
Partnership Synthesizer — pairs plausible-but-gapped bidders with partners
who cover their gaps.

Only matches in the "needs help" band [50, 80) are considered as primaries.
Partners come from the same candidate pool, must cover at least 60% of the
primary's needs and be at least 0.7 compatible. The combined entity is
re-scored and only viable partnerships (>= 70) are emitted.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from rfq_match.models.business import Candidate
from rfq_match.models.enums import PartnershipNeed, PartnershipStructure, ScoreDimension
from rfq_match.models.opportunity import Opportunity
from rfq_match.modules.compatibility.evaluator import (
    COMPATIBILITY_WEIGHTS,
    CompatibilityResult,
    evaluate,
)
from rfq_match.modules.matching.repository import PastCollaborationLookup
from rfq_match.modules.scoring.algorithm import ScoreBreakdown, normalize
from rfq_match.modules.scoring.match import Match
from rfq_match.modules.scoring.weights import (
    DEFAULT_RULES,
    DIMENSION_ORDER,
    SCORE_WEIGHTS,
    THRESHOLDS,
    Thresholds,
    WeightVector,
)

logger = structlog.get_logger()

# Experience and cultural gaps are not something a partner can supply.
NEED_FOR_DIMENSION: dict[ScoreDimension, PartnershipNeed] = {
    ScoreDimension.TECHNICAL: PartnershipNeed.TECHNICAL_EXPERTISE,
    ScoreDimension.FINANCIAL: PartnershipNeed.FINANCIAL_CAPACITY,
    ScoreDimension.CAPACITY: PartnershipNeed.CAPACITY,
    ScoreDimension.LOCATION: PartnershipNeed.GEOGRAPHIC_PRESENCE,
}
DIMENSION_FOR_NEED = {need: dim for dim, need in NEED_FOR_DIMENSION.items()}

COVERAGE_DETAILS: dict[PartnershipNeed, str] = {
    PartnershipNeed.TECHNICAL_EXPERTISE: "Strong technical capabilities",
    PartnershipNeed.FINANCIAL_CAPACITY: "Strong financial capacity",
    PartnershipNeed.CAPACITY: "Available capacity",
    PartnershipNeed.GEOGRAPHIC_PRESENCE: "Local presence",
    PartnershipNeed.CERTIFICATIONS: "Has required certifications",
}

# Pooled labour: partner capacity counts at 70%.
CAPACITY_POOLING_FACTOR = 0.7

# Synergy score components (max 100)
SYNERGY_COVERAGE_POINTS = 40
SYNERGY_UPLIFT_CAP = 30
SYNERGY_UPLIFT_PER_POINT = 2
SYNERGY_REACH_POINTS = 15
SYNERGY_SKILLS_POINTS = 15

# viability = 0.5 * combined + 0.3 * synergy + 0.2 * compatibility * 100
VIABILITY_WEIGHTS = {"combined": 0.5, "synergy": 0.3, "compatibility": 0.2}

STRUCTURE_SIZE_RATIO = 2

BASE_BENEFITS = (
    "Combined capabilities exceed individual scores",
    "Risk sharing and mitigation",
    "Expanded capacity for large projects",
)


# ── Result types ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class GapCoverage:
    needs: tuple[PartnershipNeed, ...]
    covered: tuple[PartnershipNeed, ...]
    details: dict[PartnershipNeed, str] = field(default_factory=dict)

    @property
    def coverage(self) -> float:
        return len(self.covered) / len(self.needs) if self.needs else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "coverage": round(self.coverage, 4),
            "covered": [n.value for n in self.covered],
            "total": len(self.needs),
            "details": {n.value: text for n, text in self.details.items()},
        }


@dataclass(frozen=True)
class Synergy:
    overall: float
    coverage_points: float
    uplift_points: float
    reach_points: float
    skills_points: float

    def to_dict(self) -> dict[str, float]:
        return {
            "overall": round(self.overall, 2),
            "coverage": round(self.coverage_points, 2),
            "score_uplift": round(self.uplift_points, 2),
            "geographic_reach": round(self.reach_points, 2),
            "skills": round(self.skills_points, 2),
        }


@dataclass(frozen=True)
class PartnerOption:
    match: Match
    coverage: GapCoverage
    compatibility: CompatibilityResult

    @property
    def rank_key(self) -> float:
        return self.coverage.coverage * self.compatibility.score


@dataclass(frozen=True)
class Partnership:
    opportunity_id: str
    primary: Match
    partner: PartnerOption
    alternates: tuple[PartnerOption, ...]
    combined: ScoreBreakdown
    synergy: Synergy
    viability: float
    structure: PartnershipStructure
    benefits: tuple[str, ...]

    @property
    def combined_score(self) -> float:
        return self.combined.overall

    @property
    def needs(self) -> tuple[PartnershipNeed, ...]:
        return self.partner.coverage.needs

    @property
    def compatibility(self) -> CompatibilityResult:
        return self.partner.compatibility

    @property
    def partner_candidates(self) -> tuple[Candidate, ...]:
        return (self.partner.match.candidate, *(a.match.candidate for a in self.alternates))

    def to_dict(self) -> dict[str, Any]:
        return {
            "opportunity_id": self.opportunity_id,
            "primary_id": self.primary.candidate.id,
            "primary_name": self.primary.candidate.name,
            "partner_id": self.partner.match.candidate.id,
            "partner_name": self.partner.match.candidate.name,
            "alternate_ids": [a.match.candidate.id for a in self.alternates],
            "combined_score": round(self.combined_score, 2),
            "combined_breakdown": {
                d.value: round(v, 2) for d, v in self.combined.dimensions().items()
            },
            "viability": round(self.viability, 2),
            "synergy": self.synergy.to_dict(),
            "gaps_covered": self.partner.coverage.to_dict(),
            "compatibility": self.compatibility.to_dict(),
            "structure": self.structure.value,
            "benefits": list(self.benefits),
        }


# ── Building blocks ──────────────────────────────────────────────────────────


def identify_needs(match: Match) -> tuple[PartnershipNeed, ...]:
    """Needs from the gap dimensions, plus certifications if any are missing."""
    needs = [NEED_FOR_DIMENSION[d] for d in match.gap_dimensions if d in NEED_FOR_DIMENSION]
    if match.has_certification_gap:
        needs.append(PartnershipNeed.CERTIFICATIONS)
    return tuple(needs)


def gap_coverage(
    partner: Match,
    needs: Sequence[PartnershipNeed],
    thresholds: Thresholds = THRESHOLDS,
) -> GapCoverage:
    covered: list[PartnershipNeed] = []
    details: dict[PartnershipNeed, str] = {}
    for need in needs:
        if need is PartnershipNeed.CERTIFICATIONS:
            ok = not partner.has_certification_gap
        else:
            ok = partner.breakdown.get(DIMENSION_FOR_NEED[need]) >= thresholds.partner_dimension_min
        if ok:
            covered.append(need)
            details[need] = COVERAGE_DETAILS[need]
    return GapCoverage(needs=tuple(needs), covered=tuple(covered), details=details)


def combine(
    primary: ScoreBreakdown,
    partner: ScoreBreakdown,
    weights: WeightVector[ScoreDimension] = SCORE_WEIGHTS,
) -> ScoreBreakdown:
    """Dimension-wise max, except capacity which pools labour."""
    dims = {d: max(primary.get(d), partner.get(d)) for d in DIMENSION_ORDER}
    dims[ScoreDimension.CAPACITY] = min(
        100.0, primary.capacity + CAPACITY_POOLING_FACTOR * partner.capacity
    )
    return ScoreBreakdown.from_dimensions(dims, weights=weights)


def _serves_province(candidate: Candidate, opportunity: Opportunity) -> bool:
    location = opportunity.location
    if location.national or not location.province or candidate.operates_nationally:
        return True
    return normalize(candidate.province) == normalize(location.province)


def synergy_score(
    primary: Match,
    partner: Match,
    opportunity: Opportunity,
    coverage: GapCoverage,
    combined_score: float,
) -> Synergy:
    coverage_points = SYNERGY_COVERAGE_POINTS * coverage.coverage
    uplift_points = min(
        SYNERGY_UPLIFT_CAP,
        max(0.0, SYNERGY_UPLIFT_PER_POINT * (combined_score - primary.overall)),
    )
    reach_points = (
        SYNERGY_REACH_POINTS if _serves_province(partner.candidate, opportunity) else 0.0
    )
    if opportunity.required_skills:
        required = {normalize(s) for s in opportunity.required_skills}
        held = {
            normalize(s)
            for s in (*primary.candidate.capabilities, *partner.candidate.capabilities)
        }
        skills_points = SYNERGY_SKILLS_POINTS * len(required & held) / len(required)
    else:
        skills_points = float(SYNERGY_SKILLS_POINTS)
    overall = min(100.0, coverage_points + uplift_points + reach_points + skills_points)
    return Synergy(
        overall=overall,
        coverage_points=coverage_points,
        uplift_points=uplift_points,
        reach_points=reach_points,
        skills_points=skills_points,
    )


def viability(combined_score: float, synergy: float, compatibility: float) -> float:
    return (
        VIABILITY_WEIGHTS["combined"] * combined_score
        + VIABILITY_WEIGHTS["synergy"] * synergy
        + VIABILITY_WEIGHTS["compatibility"] * compatibility * 100
    )


def recommend_structure(primary: Candidate, partner: Candidate) -> PartnershipStructure:
    primary_size = primary.employee_count or DEFAULT_RULES.default_employee_count
    partner_size = partner.employee_count or DEFAULT_RULES.default_employee_count
    if primary_size > partner_size * STRUCTURE_SIZE_RATIO:
        return PartnershipStructure.PRIME_SUB_PRIMARY_AS_PRIME
    if partner_size > primary_size * STRUCTURE_SIZE_RATIO:
        return PartnershipStructure.PRIME_SUB_PARTNER_AS_PRIME
    return PartnershipStructure.JOINT_VENTURE


def partnership_benefits(primary: Candidate, partner: Candidate) -> tuple[str, ...]:
    benefits = list(BASE_BENEFITS)
    if primary.is_designated_supplier or partner.is_designated_supplier:
        benefits.append("Designated supplier partnership advantages")
    if primary.province and normalize(primary.province) == normalize(partner.province):
        benefits.append("Strong local presence")
    return tuple(benefits)


# ── Synthesizer ──────────────────────────────────────────────────────────────


class PartnershipSynthesizer:
    def __init__(
        self,
        collaboration: PastCollaborationLookup | None = None,
        thresholds: Thresholds = THRESHOLDS,
        weights: WeightVector[ScoreDimension] = SCORE_WEIGHTS,
        compatibility_weights: WeightVector[str] = COMPATIBILITY_WEIGHTS,
    ) -> None:
        self.collaboration = collaboration
        self.thresholds = thresholds
        self.weights = weights
        self.compatibility_weights = compatibility_weights

    def in_partnership_band(self, match: Match) -> bool:
        low, high = self.thresholds.partnership_band
        return low <= match.overall < high

    def find_partners(
        self, primary: Match, needs: Sequence[PartnershipNeed], pool: Sequence[Match]
    ) -> list[PartnerOption]:
        """Candidates covering enough needs and compatible enough, best first."""
        options: list[PartnerOption] = []
        for other in pool:
            if other.candidate.id == primary.candidate.id:
                continue
            coverage = gap_coverage(other, needs, self.thresholds)
            if coverage.coverage < self.thresholds.coverage_min:
                continue
            compatibility = evaluate(
                primary.candidate,
                other.candidate,
                self.collaboration,
                weights=self.compatibility_weights,
            )
            if compatibility.score < self.thresholds.compatibility_min:
                continue
            options.append(PartnerOption(other, coverage, compatibility))
        return sorted(options, key=lambda o: o.rank_key, reverse=True)

    def synthesize(
        self, opportunity: Opportunity, primary: Match, pool: Sequence[Match]
    ) -> Partnership | None:
        if not primary.gap_dimensions:
            return None
        needs = identify_needs(primary)
        if not needs:
            return None
        options = self.find_partners(primary, needs, pool)
        if not options:
            logger.debug(
                "partnership_no_partner",
                opportunity_id=opportunity.id,
                primary_id=primary.candidate.id,
                needs=[n.value for n in needs],
            )
            return None

        best, alternates = options[0], tuple(options[1:])
        combined = combine(primary.breakdown, best.match.breakdown, self.weights)
        synergy = synergy_score(primary, best.match, opportunity, best.coverage, combined.overall)
        score = viability(combined.overall, synergy.overall, best.compatibility.score)

        if score < self.thresholds.viability_min:
            logger.info(
                "partnership_rejected",
                opportunity_id=opportunity.id,
                primary_id=primary.candidate.id,
                partner_id=best.match.candidate.id,
                viability=round(score, 2),
            )
            return None

        return Partnership(
            opportunity_id=opportunity.id,
            primary=primary,
            partner=best,
            alternates=alternates,
            combined=combined,
            synergy=synergy,
            viability=score,
            structure=recommend_structure(primary.candidate, best.match.candidate),
            benefits=partnership_benefits(primary.candidate, best.match.candidate),
        )

    def identify_opportunities(
        self, opportunity: Opportunity, matches: Sequence[Match]
    ) -> list[Partnership]:
        partnerships: list[Partnership] = []
        for primary in matches:
            if not self.in_partnership_band(primary):
                continue
            partnership = self.synthesize(opportunity, primary, matches)
            if partnership is not None:
                partnerships.append(partnership)

        partnerships.sort(key=lambda p: p.combined_score, reverse=True)
        logger.info(
            "partnerships_identified",
            opportunity_id=opportunity.id,
            candidates=len(matches),
            emitted=len(partnerships),
        )
        return partnerships
