"""Partnership facilitation: introductions and a ledger of offered partnerships.

Bookkeeping only. Nothing here changes scores; it records which
partnerships were offered to the parties and when an agreement is due.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from rfq_match.core.config import settings
from rfq_match.models.opportunity import Opportunity
from rfq_match.modules.partnerships.synthesizer import Partnership

logger = structlog.get_logger()

TARGET_AGREEMENT_DAYS = 7

NEXT_STEPS: tuple[str, ...] = (
    "Review partnership opportunity",
    "Schedule introductory call",
    "Discuss partnership structure",
    "Develop joint proposal",
)

SUPPORT_PROVIDED: tuple[str, ...] = (
    "Introduction facilitated",
    "Partnership framework provided",
    "Communication channel established",
)

STRUCTURE_LABELS = {
    "prime_sub_primary_as_prime": "Prime-Subcontractor (Primary as Prime)",
    "prime_sub_partner_as_prime": "Prime-Subcontractor (Partner as Prime)",
    "joint_venture": "Joint Venture (Equal Partnership)",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class IntroductionParty:
    candidate_id: str
    name: str
    role: str  # "primary" | "partner"
    strengths: tuple[str, ...]


@dataclass(frozen=True)
class Introduction:
    id: str
    opportunity_id: str
    opportunity_title: str
    parties: tuple[IntroductionParty, ...]
    combined_score: float
    viability: float
    structure: str
    benefits: tuple[str, ...]
    message: str
    created_at: datetime
    next_steps: tuple[str, ...] = NEXT_STEPS

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "partnership_opportunity",
            "opportunity_id": self.opportunity_id,
            "opportunity_title": self.opportunity_title,
            "parties": [
                {
                    "candidate_id": p.candidate_id,
                    "name": p.name,
                    "role": p.role,
                    "strengths": list(p.strengths),
                }
                for p in self.parties
            ],
            "value_proposition": {
                "combined_score": f"{round(self.combined_score)}%",
                "viability": f"{round(self.viability)}%",
                "key_benefits": list(self.benefits),
                "structure": self.structure,
            },
            "message": self.message,
            "next_steps": list(self.next_steps),
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class FacilitationRecord:
    id: str
    introduction: Introduction
    partnership: Partnership
    initiated_at: datetime
    target_agreement_at: datetime
    status: str = "initiated"
    parties_notified: bool = True
    meetings_scheduled: bool = False
    documents_shared: bool = False
    agreement_drafted: bool = False
    support_provided: tuple[str, ...] = SUPPORT_PROVIDED
    outcome: bool | None = None
    value_won: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "introduction_id": self.introduction.id,
            "status": self.status,
            "parties_notified": self.parties_notified,
            "meetings_scheduled": self.meetings_scheduled,
            "documents_shared": self.documents_shared,
            "agreement_drafted": self.agreement_drafted,
            "timeline": {
                "initiated": self.initiated_at.isoformat(),
                "target_agreement": self.target_agreement_at.isoformat(),
            },
            "support_provided": list(self.support_provided),
        }


def introduction_message(partnership: Partnership, opportunity: Opportunity) -> str:
    primary = partnership.primary.candidate.name or partnership.primary.candidate.id
    partner = partnership.partner.match.candidate.name or partnership.partner.match.candidate.id
    provides = next(
        iter(partnership.partner.coverage.details.values()), "complementary capabilities"
    )
    title = opportunity.title or opportunity.id
    return (
        f'Based on our analysis of the "{title}" opportunity, we have identified a '
        f"strategic partnership opportunity between {primary} and {partner}.\n\n"
        f"Together, your combined capabilities would achieve a "
        f"{round(partnership.combined_score)}% match score, higher than either "
        f"individual score.\n\n"
        f"{partner} provides {provides.lower()} where {primary} has gaps.\n\n"
        f"This partnership has a {round(partnership.viability)}% viability score "
        f"for this ${opportunity.estimated_value:,.0f} opportunity."
    )


class PartnershipFacilitator:
    """Creates introductions for the top partnerships and keeps a ledger of them."""

    def __init__(
        self,
        limit: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[str], str] = _new_id,
    ) -> None:
        self.limit = settings.FACILITATION_LIMIT if limit is None else limit
        self._clock = clock
        self._new_id = id_factory
        self.ledger: dict[str, FacilitationRecord] = {}

    @property
    def partnerships_created(self) -> int:
        return len(self.ledger)

    @property
    def successful_bids(self) -> int:
        return sum(1 for r in self.ledger.values() if r.outcome)

    @property
    def total_value_won(self) -> float:
        return sum(r.value_won for r in self.ledger.values())

    def success_rate(self) -> float:
        if not self.ledger:
            return 0.0
        return self.successful_bids / self.partnerships_created * 100

    def introduce(self, partnership: Partnership, opportunity: Opportunity) -> Introduction:
        primary = partnership.primary
        partner = partnership.partner.match
        return Introduction(
            id=self._new_id("intro"),
            opportunity_id=opportunity.id,
            opportunity_title=opportunity.title,
            parties=(
                IntroductionParty(
                    candidate_id=primary.candidate.id,
                    name=primary.candidate.name,
                    role="primary",
                    strengths=primary.strengths,
                ),
                IntroductionParty(
                    candidate_id=partner.candidate.id,
                    name=partner.candidate.name,
                    role="partner",
                    strengths=tuple(partnership.partner.coverage.details.values()),
                ),
            ),
            combined_score=partnership.combined_score,
            viability=partnership.viability,
            structure=STRUCTURE_LABELS[partnership.structure.value],
            benefits=partnership.benefits,
            message=introduction_message(partnership, opportunity),
            created_at=self._clock(),
        )

    def facilitate(
        self, opportunity: Opportunity, partnerships: Sequence[Partnership]
    ) -> list[FacilitationRecord]:
        """Open a facilitation record for each of the top ``limit`` partnerships."""
        records: list[FacilitationRecord] = []
        for partnership in partnerships[: self.limit]:
            introduction = self.introduce(partnership, opportunity)
            now = self._clock()
            record = FacilitationRecord(
                id=self._new_id("fac"),
                introduction=introduction,
                partnership=partnership,
                initiated_at=now,
                target_agreement_at=now + timedelta(days=TARGET_AGREEMENT_DAYS),
            )
            self.ledger[record.id] = record
            records.append(record)
            logger.info(
                "partnership_facilitated",
                facilitation_id=record.id,
                opportunity_id=opportunity.id,
                primary_id=partnership.primary.candidate.id,
                partner_id=partnership.partner.match.candidate.id,
            )
        return records

    def record_outcome(self, facilitation_id: str, won: bool, value: float = 0.0) -> FacilitationRecord:
        record = self.ledger.get(facilitation_id)
        if record is None:
            raise KeyError(facilitation_id)
        record.outcome = won
        record.value_won = value if won else 0.0
        record.status = "won" if won else "lost"
        return record
