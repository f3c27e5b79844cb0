"""RFQ matching service — the operations dashboards and orchestration shells call.

    service = build_service()
    result = await service.process_opportunity(opportunity)
    # result.matches ranked best first, result.partnerships for gapped bidders
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import datetime
from typing import Any

import structlog

from rfq_match.core.config import settings
from rfq_match.core.errors import CandidateNotFound, OpportunityNotFound
from rfq_match.models.opportunity import Opportunity, parse_opportunity, validate_opportunity
from rfq_match.modules.matching.engine import MatchEngine
from rfq_match.modules.matching.repository import (
    BusinessRepository,
    HttpBusinessRepository,
    HttpOpportunityRepository,
    InMemoryBusinessRepository,
    InMemoryCollaborationHistory,
    InMemoryOpportunityRepository,
    OpportunityRepository,
    PastCollaborationLookup,
)
from rfq_match.modules.notifications.notifier import (
    LogNotifier,
    Notifier,
    WebhookNotifier,
    build_match_summary,
)
from rfq_match.modules.partnerships.facilitation import FacilitationRecord, PartnershipFacilitator
from rfq_match.modules.partnerships.synthesizer import Partnership, PartnershipSynthesizer
from rfq_match.modules.recommendations.generator import guidance
from rfq_match.modules.rfq_matching.schemas import (
    BidGuidanceResponse,
    CandidateMatchesResponse,
    FacilitationResponse,
    MatchResponse,
    OpportunityMatchesResponse,
    PartnershipResponse,
    ScoreBreakdownResponse,
)
from rfq_match.modules.scoring.match import Match, build_match

logger = structlog.get_logger()


# ── Helpers ───────────────────────────────────────────────────────────────────


def _match_to_response(m: Match) -> MatchResponse:
    b = m.breakdown
    return MatchResponse(
        candidate_id=m.candidate.id,
        candidate_name=m.candidate.name,
        opportunity_id=m.opportunity.id,
        score=ScoreBreakdownResponse(
            technical=b.technical,
            financial=b.financial,
            experience=b.experience,
            capacity=b.capacity,
            location=b.location,
            cultural=b.cultural,
            overall=b.overall,
            win_probability=b.win_probability,
        ),
        strengths=list(m.strengths),
        gaps=list(m.gaps),
        recommendations=list(m.recommendations),
        criteria=m.criteria.to_dict(),
        missing_certifications=list(m.missing_certifications),
    )


def _partnership_to_response(p: Partnership) -> PartnershipResponse:
    return PartnershipResponse(
        primary_id=p.primary.candidate.id,
        partner_id=p.partner.match.candidate.id,
        alternate_ids=[a.match.candidate.id for a in p.alternates],
        combined_score=p.combined_score,
        viability=p.viability,
        compatibility=p.compatibility.score,
        compatibility_recommendation=p.compatibility.recommendation,
        structure=p.structure.value,
        needs=[n.value for n in p.needs],
        covered=[n.value for n in p.partner.coverage.covered],
        synergy=p.synergy.to_dict(),
        benefits=list(p.benefits),
    )


def _facilitation_to_response(r: FacilitationRecord) -> FacilitationResponse:
    return FacilitationResponse(
        id=r.id,
        introduction=r.introduction.to_dict(),
        status=r.status,
        target_agreement=r.target_agreement_at.isoformat(),
    )


# ── Service ───────────────────────────────────────────────────────────────────


class RFQMatchingService:
    def __init__(
        self,
        businesses: BusinessRepository,
        opportunities: OpportunityRepository,
        collaboration: PastCollaborationLookup | None = None,
        notifier: Notifier | None = None,
        engine: MatchEngine | None = None,
        synthesizer: PartnershipSynthesizer | None = None,
        facilitator: PartnershipFacilitator | None = None,
    ) -> None:
        self.businesses = businesses
        self.opportunities = opportunities
        self.engine = engine or MatchEngine(businesses, opportunities)
        self.synthesizer = synthesizer or PartnershipSynthesizer(collaboration)
        self.facilitator = facilitator or PartnershipFacilitator()
        self.notifier = notifier
        self.notifications_failed = 0
        self._pending: set[asyncio.Task[None]] = set()

    async def process_opportunity(
        self, opportunity: Opportunity | dict[str, Any], use_cache: bool = True
    ) -> OpportunityMatchesResponse:
        """Match, synthesize partnerships, open facilitations and notify matched bidders."""
        if isinstance(opportunity, dict):
            opportunity = parse_opportunity(opportunity)

        run = await self.engine.run(opportunity, use_cache=use_cache)
        partnerships = self.synthesizer.identify_opportunities(opportunity, run.matches)
        facilitations = self.facilitator.facilitate(opportunity, partnerships)
        queued = self._notify(run.matches)

        logger.info(
            "match_pass_completed",
            opportunity_id=opportunity.id,
            matched=len(run.matches),
            partnerships=len(partnerships),
            skipped=run.skipped,
            excluded=run.excluded,
            notifications_queued=queued,
        )
        return OpportunityMatchesResponse(
            opportunity_id=opportunity.id,
            matches=[_match_to_response(m) for m in run.matches],
            partnerships=[_partnership_to_response(p) for p in partnerships],
            facilitations=[_facilitation_to_response(r) for r in facilitations],
            total=len(run.matches),
            skipped=run.skipped,
            excluded=run.excluded,
            notifications_queued=queued,
        )

    async def match_candidate(
        self,
        candidate_id: str,
        limit: int | None = None,
        min_score: float | None = None,
    ) -> CandidateMatchesResponse:
        run = await self.engine.run_for_candidate(
            candidate_id, limit=limit, min_score=min_score
        )
        return CandidateMatchesResponse(
            candidate_id=candidate_id,
            items=[_match_to_response(m) for m in run.matches],
            total=len(run.matches),
            skipped=run.skipped,
        )

    async def get_bid_guidance(
        self, candidate_id: str, opportunity_id: str, now: datetime | None = None
    ) -> BidGuidanceResponse:
        candidate, opportunity = await self.engine.fetch(
            asyncio.gather(
                self.businesses.get(candidate_id),
                self.opportunities.get(opportunity_id),
            ),
            "guidance_lookup",
        )
        if candidate is None:
            raise CandidateNotFound(f"Candidate {candidate_id} not found")
        if opportunity is None:
            raise OpportunityNotFound(f"Opportunity {opportunity_id} not found")
        validate_opportunity(opportunity)

        match = build_match(candidate, opportunity, self.engine.model, self.engine.thresholds)
        return BidGuidanceResponse.model_validate(guidance(match, now).to_dict())

    def _notify(self, matches: Sequence[Match]) -> int:
        """Queue one summary per match on background tasks; returns how many were queued."""
        if self.notifier is None or not matches:
            return 0
        for match in matches:
            task = asyncio.create_task(self._deliver(self.notifier, match))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return len(matches)

    async def _deliver(self, notifier: Notifier, match: Match) -> None:
        try:
            await notifier.notify(match.candidate.id, build_match_summary(match))
        except Exception as exc:
            self.notifications_failed += 1
            logger.warning(
                "notification_failed",
                candidate_id=match.candidate.id,
                opportunity_id=match.opportunity.id,
                error=str(exc),
            )

    @property
    def pending_notifications(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every queued notification to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def aclose(self) -> None:
        await self.drain()
        for repo in (self.businesses, self.opportunities):
            close = getattr(repo, "aclose", None)
            if close is not None:
                await close()

    async def __aenter__(self) -> RFQMatchingService:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()



def build_service() -> RFQMatchingService:
    """Factory: wires repositories and notifier from settings."""
    businesses: BusinessRepository
    opportunities: OpportunityRepository
    if settings.REPOSITORY_URL:
        businesses = HttpBusinessRepository()
        opportunities = HttpOpportunityRepository()
    else:
        logger.warning("in_memory_repositories", app_env=settings.APP_ENV)
        businesses = InMemoryBusinessRepository()
        opportunities = InMemoryOpportunityRepository()

    notifier: Notifier = (
        WebhookNotifier() if settings.NOTIFY_WEBHOOK_URL else LogNotifier()
    )
    return RFQMatchingService(
        businesses,
        opportunities,
        collaboration=InMemoryCollaborationHistory(),
        notifier=notifier,
    )
