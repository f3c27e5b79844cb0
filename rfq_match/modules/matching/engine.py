"""
Match Engine — retrieves eligible candidates, scores them and ranks the result.

Scoring is pure, so each candidate is scored on a worker thread under a
semaphore. Output order is fixed by a stable descending sort on the overall
score, independent of which worker finished first.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TypeVar

import structlog

from rfq_match.core.config import settings
from rfq_match.core.errors import CandidateNotFound, InvalidOpportunity, RepositoryUnavailable
from rfq_match.models.business import Candidate
from rfq_match.models.opportunity import Opportunity, validate_opportunity
from rfq_match.modules.matching.cache import MatchCache
from rfq_match.modules.matching.repository import (
    BusinessRepository,
    EligibilityFilters,
    OpportunityRepository,
)
from rfq_match.modules.scoring.algorithm import ScoringModel
from rfq_match.modules.scoring.match import Match, build_match, meets_designated_supplier_gate
from rfq_match.modules.scoring.weights import THRESHOLDS, Thresholds

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class MatchRun:
    """Ranked matches for one opportunity plus counts of who was left out."""

    opportunity_id: str
    matches: tuple[Match, ...]
    skipped: int = 0       # scoring raised for these candidates
    excluded: int = 0      # failed the hard eligibility gate
    errors: tuple[str, ...] = field(default=(), repr=False)

    def top(self, n: int) -> tuple[Match, ...]:
        return self.matches[:n]


@dataclass(frozen=True)
class CandidateRun:
    """Ranked matches for one candidate across open opportunities."""

    candidate_id: str
    matches: tuple[Match, ...]
    skipped: int = 0       # invalid or failed to score
    errors: tuple[str, ...] = field(default=(), repr=False)


def rank(matches: list[Match]) -> list[Match]:
    """Stable descending sort: equal scores keep retrieval order."""
    return sorted(matches, key=lambda m: m.overall, reverse=True)


class MatchEngine:
    def __init__(
        self,
        businesses: BusinessRepository,
        opportunities: OpportunityRepository | None = None,
        model: ScoringModel | None = None,
        thresholds: Thresholds = THRESHOLDS,
        cache: MatchCache[MatchRun] | None = None,
        concurrency: int | None = None,
        retrieval_timeout: float | None = None,
    ) -> None:
        self.businesses = businesses
        self.opportunities = opportunities
        self.model = model or ScoringModel()
        self.thresholds = thresholds
        self.cache: MatchCache[MatchRun] = cache if cache is not None else MatchCache()
        self.concurrency = concurrency or settings.SCORING_CONCURRENCY
        self.retrieval_timeout = retrieval_timeout or settings.REPOSITORY_TIMEOUT_SECONDS

    # ── Opportunity -> candidates ───────────────────────────────────────────

    async def run(self, opportunity: Opportunity, use_cache: bool = True) -> MatchRun:
        validate_opportunity(opportunity)
        if not use_cache:
            return await self.evaluate(opportunity)
        return await self.cache.get_or_compute(
            opportunity.id, lambda: self.evaluate(opportunity)
        )

    async def find_matches(self, opportunity: Opportunity, use_cache: bool = True) -> list[Match]:
        run = await self.run(opportunity, use_cache=use_cache)
        return list(run.matches)

    def invalidate(self, opportunity_id: str) -> bool:
        return self.cache.invalidate(opportunity_id)

    async def evaluate(self, opportunity: Opportunity) -> MatchRun:
        """Uncached match pass."""
        validate_opportunity(opportunity)
        filters = EligibilityFilters.for_opportunity(opportunity)
        pool = await self._retrieve(filters)

        eligible = [c for c in pool if filters.admits(c)]
        excluded = len(pool) - len(eligible)

        semaphore = asyncio.Semaphore(self.concurrency)

        async def _score(candidate: Candidate) -> Match:
            async with semaphore:
                return await asyncio.to_thread(
                    build_match, candidate, opportunity, self.model, self.thresholds
                )

        results = await asyncio.gather(
            *(_score(c) for c in eligible), return_exceptions=True
        )

        matches: list[Match] = []
        errors: list[str] = []
        for candidate, result in zip(eligible, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(
                    "candidate_scoring_failed",
                    opportunity_id=opportunity.id,
                    candidate_id=candidate.id,
                    error=str(result),
                )
                errors.append(candidate.id)
                continue
            matches.append(result)

        run = MatchRun(
            opportunity_id=opportunity.id,
            matches=tuple(rank(matches)),
            skipped=len(errors),
            excluded=excluded,
            errors=tuple(errors),
        )
        logger.info(
            "matches_computed",
            opportunity_id=opportunity.id,
            pool=len(pool),
            matched=len(run.matches),
            skipped=run.skipped,
            excluded=run.excluded,
        )
        return run

    async def fetch(self, awaitable: Awaitable[T], what: str) -> T:
        """Await a repository call under the retrieval timeout.

        Timeouts and transport errors both surface as ``RepositoryUnavailable``.
        """
        try:
            return await asyncio.wait_for(awaitable, timeout=self.retrieval_timeout)
        except asyncio.TimeoutError as exc:
            logger.error(f"{what}_timeout", timeout=self.retrieval_timeout)
            raise RepositoryUnavailable(
                f"{what.replace('_', ' ').capitalize()} timed out after {self.retrieval_timeout}s"
            ) from exc
        except OSError as exc:
            logger.error(f"{what}_failed", error=str(exc))
            raise RepositoryUnavailable(
                f"{what.replace('_', ' ').capitalize()} failed: {exc}"
            ) from exc

    async def _retrieve(self, filters: EligibilityFilters) -> list[Candidate]:
        return await self.fetch(self.businesses.find_eligible(filters), "candidate_retrieval")

    # ── Candidate -> opportunities ──────────────────────────────────────────

    async def run_for_candidate(
        self,
        candidate_id: str,
        limit: int | None = None,
        min_score: float | None = None,
    ) -> CandidateRun:
        """Score one candidate against every open opportunity it may bid on.

        Suspended or unverified candidates get an empty run. Opportunities
        that fail validation or raise while scoring are skipped and counted.
        """
        if self.opportunities is None:
            raise RepositoryUnavailable("No opportunity repository configured")
        limit = settings.DEFAULT_MATCH_LIMIT if limit is None else limit
        min_score = settings.DEFAULT_MIN_SCORE if min_score is None else min_score

        candidate = await self.fetch(self.businesses.get(candidate_id), "candidate_lookup")
        if candidate is None:
            raise CandidateNotFound(f"Candidate {candidate_id} not found")
        if not EligibilityFilters().admits(candidate):
            logger.info(
                "candidate_ineligible",
                candidate_id=candidate_id,
                status=candidate.status.value,
                verified=candidate.verified,
            )
            return CandidateRun(candidate_id=candidate_id, matches=())

        open_opportunities = await self.fetch(
            self.opportunities.list_open(), "opportunity_retrieval"
        )

        matches: list[Match] = []
        errors: list[str] = []
        for opportunity in open_opportunities:
            try:
                validate_opportunity(opportunity)
            except InvalidOpportunity as exc:
                logger.warning(
                    "opportunity_skipped", opportunity_id=opportunity.id, error=exc.message
                )
                errors.append(opportunity.id)
                continue
            if not meets_designated_supplier_gate(candidate, opportunity):
                continue
            try:
                match = build_match(candidate, opportunity, self.model, self.thresholds)
            except Exception as exc:
                logger.warning(
                    "opportunity_scoring_failed",
                    candidate_id=candidate_id,
                    opportunity_id=opportunity.id,
                    error=str(exc),
                )
                errors.append(opportunity.id)
                continue
            if match.overall >= min_score:
                matches.append(match)

        run = CandidateRun(
            candidate_id=candidate_id,
            matches=tuple(rank(matches)[:limit]),
            skipped=len(errors),
            errors=tuple(errors),
        )
        logger.info(
            "candidate_matches_computed",
            candidate_id=candidate_id,
            open_opportunities=len(open_opportunities),
            returned=len(run.matches),
            skipped=run.skipped,
        )
        return run

    async def match_candidate_to_opportunities(
        self,
        candidate_id: str,
        limit: int | None = None,
        min_score: float | None = None,
    ) -> list[Match]:
        run = await self.run_for_candidate(candidate_id, limit=limit, min_score=min_score)
        return list(run.matches)
