"""Result envelopes returned by the RFQ matching service."""

from typing import Any

from pydantic import BaseModel


# ── Scores ────────────────────────────────────────────────────────────────────


class ScoreBreakdownResponse(BaseModel):
    technical: float
    financial: float
    experience: float
    capacity: float
    location: float
    cultural: float
    overall: float
    win_probability: float


class MatchResponse(BaseModel):
    candidate_id: str
    candidate_name: str
    opportunity_id: str
    score: ScoreBreakdownResponse
    strengths: list[str]
    gaps: list[str]
    recommendations: list[str]
    criteria: dict[str, bool]
    missing_certifications: list[str]


# ── Partnerships ──────────────────────────────────────────────────────────────


class PartnershipResponse(BaseModel):
    primary_id: str
    partner_id: str
    alternate_ids: list[str]
    combined_score: float
    viability: float
    compatibility: float
    compatibility_recommendation: str
    structure: str                   # PartnershipStructure value
    needs: list[str]
    covered: list[str]
    synergy: dict[str, float]
    benefits: list[str]


class FacilitationResponse(BaseModel):
    id: str
    introduction: dict[str, Any]
    status: str
    target_agreement: str


# ── Opportunity results ───────────────────────────────────────────────────────


class OpportunityMatchesResponse(BaseModel):
    opportunity_id: str
    matches: list[MatchResponse]
    partnerships: list[PartnershipResponse]
    facilitations: list[FacilitationResponse] = []
    total: int
    skipped: int = 0                 # candidates whose scoring raised
    excluded: int = 0                # candidates failing the hard gate
    notifications_queued: int = 0


class CandidateMatchesResponse(BaseModel):
    candidate_id: str
    items: list[MatchResponse]
    total: int
    skipped: int = 0                 # opportunities that were invalid or failed to score


# ── Bid guidance ──────────────────────────────────────────────────────────────


class PricingBandResponse(BaseModel):
    aggressive: float
    competitive: float
    optimal: float
    premium: float
    strategy: str


class TimelinePhaseResponse(BaseModel):
    phase: str
    days: int
    tasks: str


class TimelinePlanResponse(BaseModel):
    days_to_deadline: int | None
    phases: list[TimelinePhaseResponse]
    planned_days: int
    critical_path: list[str]
    urgency: str


class BidGuidanceResponse(BaseModel):
    candidate_id: str
    opportunity_id: str
    overall: float
    win_probability: float
    pricing_band: PricingBandResponse
    proposal_themes: list[str]
    emphasis_areas: list[str]
    timeline_plan: TimelinePlanResponse
    strengths: list[str]
    gaps: list[str]
    recommendations: list[str]
