"""Recommendation Generator — bid guidance derived from a scored match.

Advisory text only. The pricing multipliers are fixed configuration values
(not learned); the timeline plan never allocates more days than remain
before the closing date.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from rfq_match.models.enums import Complexity
from rfq_match.models.opportunity import Opportunity
from rfq_match.modules.scoring.match import Match


@dataclass(frozen=True)
class PricingMultipliers:
    aggressive: float = 0.82
    competitive: float = 0.92
    optimal: float = 0.94
    premium: float = 1.08


PRICING_MULTIPLIERS = PricingMultipliers()

STANDARD_PLAN: tuple[tuple[str, int, str], ...] = (
    ("Research & Planning", 3, "Analyze requirements and research the client"),
    ("Solution Development", 5, "Design the solution and gather supporting material"),
    ("Proposal Writing", 4, "Write and format the proposal"),
    ("Review & Submission", 2, "Quality review and submit"),
)
COMPRESSED_PLAN: tuple[tuple[str, int, str], ...] = (
    ("Quick Assessment", 1, "Rapid requirements analysis"),
    ("Rapid Development", 3, "Focus on core requirements"),
    ("Fast Track Writing", 2, "Streamlined proposal"),
    ("Submit", 1, "Final review and submit"),
)
URGENT_PHASE = ("Urgent Response", "Focus on mandatory requirements only")

STANDARD_PLAN_MIN_DAYS = 15   # more than 14 days left
COMPRESSED_PLAN_MIN_DAYS = 7
CRITICAL_PATH_MIN_DAYS = 3    # phases longer than 2 days
LARGE_CONTRACT_VALUE = 1_000_000

BASE_THEMES = ("quality", "reliability", "innovation")
BASE_EMPHASIS = ("technical approach", "project management")
LARGE_CONTRACT_EMPHASIS = ("risk management", "financial capacity")


@dataclass(frozen=True)
class PricingBand:
    aggressive: float
    competitive: float
    optimal: float
    premium: float
    strategy: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "aggressive": round(self.aggressive, 2),
            "competitive": round(self.competitive, 2),
            "optimal": round(self.optimal, 2),
            "premium": round(self.premium, 2),
            "strategy": self.strategy,
        }


@dataclass(frozen=True)
class TimelinePhase:
    phase: str
    days: int
    tasks: str


@dataclass(frozen=True)
class TimelinePlan:
    days_to_deadline: int | None
    phases: tuple[TimelinePhase, ...]
    urgency: str  # "high" | "normal"

    @property
    def planned_days(self) -> int:
        return sum(p.days for p in self.phases)

    @property
    def critical_path(self) -> list[str]:
        return [p.phase for p in self.phases if p.days >= CRITICAL_PATH_MIN_DAYS]

    def to_dict(self) -> dict[str, Any]:
        return {
            "days_to_deadline": self.days_to_deadline,
            "phases": [{"phase": p.phase, "days": p.days, "tasks": p.tasks} for p in self.phases],
            "planned_days": self.planned_days,
            "critical_path": self.critical_path,
            "urgency": self.urgency,
        }


@dataclass(frozen=True)
class BidGuidance:
    candidate_id: str
    opportunity_id: str
    overall: float
    win_probability: float
    pricing: PricingBand
    proposal_themes: tuple[str, ...]
    emphasis_areas: tuple[str, ...]
    timeline: TimelinePlan
    strengths: tuple[str, ...]
    gaps: tuple[str, ...]
    recommendations: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidate_id": self.candidate_id,
            "opportunity_id": self.opportunity_id,
            "overall": round(self.overall, 2),
            "win_probability": round(self.win_probability, 4),
            "pricing_band": self.pricing.to_dict(),
            "proposal_themes": list(self.proposal_themes),
            "emphasis_areas": list(self.emphasis_areas),
            "timeline_plan": self.timeline.to_dict(),
            "strengths": list(self.strengths),
            "gaps": list(self.gaps),
            "recommendations": list(self.recommendations),
        }


def days_to_deadline(opportunity: Opportunity, now: datetime | None = None) -> int | None:
    """Whole days left before closing, rounded down. None when no closing date is set.

    A partial day is not counted, so a plan sized to this value never runs
    past the deadline.
    """
    if opportunity.closing_date is None:
        return None
    closing = opportunity.closing_date
    now = now or datetime.now(timezone.utc)
    if closing.tzinfo is None:
        closing = closing.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return math.floor((closing - now).total_seconds() / 86_400)


def pricing_band(
    opportunity: Opportunity, multipliers: PricingMultipliers = PRICING_MULTIPLIERS
) -> PricingBand:
    value = opportunity.estimated_value
    if opportunity.complexity == Complexity.HIGH:
        strategy = "premium - emphasize expertise and risk mitigation"
    else:
        strategy = "balanced - competitive price with clear differentiators"
    return PricingBand(
        aggressive=value * multipliers.aggressive,
        competitive=value * multipliers.competitive,
        optimal=value * multipliers.optimal,
        premium=value * multipliers.premium,
        strategy=strategy,
    )


def proposal_themes(opportunity: Opportunity) -> tuple[str, ...]:
    themes = list(BASE_THEMES)
    if opportunity.requires_designated_supplier:
        themes.append("designated supplier economic development")
    if opportunity.requires_sustainability_certification:
        themes.append("environmental responsibility")
    return tuple(themes)


def emphasis_areas(opportunity: Opportunity) -> tuple[str, ...]:
    if opportunity.estimated_value > LARGE_CONTRACT_VALUE:
        return BASE_EMPHASIS + LARGE_CONTRACT_EMPHASIS
    return BASE_EMPHASIS


def timeline_plan(days: int | None) -> TimelinePlan:
    if days is None or days >= STANDARD_PLAN_MIN_DAYS:
        template = STANDARD_PLAN
    elif days >= COMPRESSED_PLAN_MIN_DAYS:
        template = COMPRESSED_PLAN
    else:
        name, tasks = URGENT_PHASE
        return TimelinePlan(
            days_to_deadline=days,
            phases=(TimelinePhase(name, max(days, 0), tasks),),
            urgency="high",
        )
    return TimelinePlan(
        days_to_deadline=days,
        phases=tuple(TimelinePhase(name, n, tasks) for name, n, tasks in template),
        urgency="normal",
    )


def guidance(match: Match, now: datetime | None = None) -> BidGuidance:
    opportunity = match.opportunity
    return BidGuidance(
        candidate_id=match.candidate.id,
        opportunity_id=opportunity.id,
        overall=match.overall,
        win_probability=match.win_probability,
        pricing=pricing_band(opportunity),
        proposal_themes=proposal_themes(opportunity),
        emphasis_areas=emphasis_areas(opportunity),
        timeline=timeline_plan(days_to_deadline(opportunity, now)),
        strengths=match.strengths,
        gaps=match.gaps,
        recommendations=match.recommendations,
    )
