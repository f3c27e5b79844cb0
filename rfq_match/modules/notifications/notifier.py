"""Match notifications.

``build_match_summary`` turns a match into the payload a candidate sees:
urgency from the closing date, delivery channels filtered by the candidate's
preferences, subject/headline tiers and a call to action. Delivery itself is
the notifier's concern; the core only calls ``notify``.
"""

from __future__ import annotations

import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx
import structlog
from pydantic import BaseModel, Field

from rfq_match.core.config import settings
from rfq_match.models.enums import NotificationChannel, Urgency
from rfq_match.modules.recommendations.generator import days_to_deadline
from rfq_match.modules.scoring.algorithm import normalize
from rfq_match.modules.scoring.match import Match

logger = structlog.get_logger()

# (days below, urgency), checked top-down; no closing date -> LOW
URGENCY_TIERS: tuple[tuple[int, Urgency], ...] = (
    (3, Urgency.CRITICAL),
    (7, Urgency.HIGH),
    (14, Urgency.MEDIUM),
)

CHANNELS_BY_URGENCY: dict[Urgency, tuple[NotificationChannel, ...]] = {
    Urgency.CRITICAL: (
        NotificationChannel.PLATFORM,
        NotificationChannel.EMAIL,
        NotificationChannel.SMS,
        NotificationChannel.PUSH,
    ),
    Urgency.HIGH: (
        NotificationChannel.PLATFORM,
        NotificationChannel.EMAIL,
        NotificationChannel.PUSH,
    ),
    Urgency.MEDIUM: (NotificationChannel.PLATFORM, NotificationChannel.EMAIL),
    Urgency.LOW: (NotificationChannel.PLATFORM,),
}


class MatchSummary(BaseModel):
    id: str = Field(default_factory=lambda: f"notif_{uuid.uuid4().hex[:12]}")
    type: str = "rfq_match"
    candidate_id: str
    opportunity_id: str
    urgency: Urgency
    channels: list[NotificationChannel]
    subject: str
    message: str
    insights: list[str]
    call_to_action: str
    match_score: float
    win_probability: float
    strengths: list[str] = []
    recommendations: list[str] = []
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def urgency_for(days: int | None) -> Urgency:
    if days is None:
        return Urgency.LOW
    for below, urgency in URGENCY_TIERS:
        if days < below:
            return urgency
    return Urgency.LOW


def select_channels(urgency: Urgency, preferences: dict[str, bool]) -> list[NotificationChannel]:
    """Channels for the urgency, minus any the candidate explicitly turned off."""
    return [c for c in CHANNELS_BY_URGENCY[urgency] if preferences.get(c.value) is not False]


def _subject(match: Match, days: int | None) -> str:
    title = match.opportunity.title or match.opportunity.id
    if match.overall >= 90:
        return f"Perfect Match: {title}"
    if match.win_probability >= 0.8:
        return f"High Win Probability: {title}"
    if days is not None and days < 7:
        return f"Urgent: {title} - Closing Soon"
    return f"New Opportunity: {title}"


def _message(match: Match) -> tuple[str, list[str], str]:
    opportunity = match.opportunity
    industry = opportunity.industry or "new"
    score = round(match.overall)
    if match.overall >= 90:
        return (
            f"Perfect match! This {industry} opportunity aligns exceptionally with your capabilities.",
            [f"{score}% match score - one of your best opportunities"],
            "Review & Prepare Bid",
        )
    if match.overall >= 75 and match.win_probability >= 0.7:
        return (
            f"Strong opportunity with {round(match.win_probability * 100)}% win probability.",
            [f"Your strengths: {', '.join(match.strengths[:2])}"],
            "Analyze Opportunity",
        )
    if match.overall >= 70 and match.recommendations:
        return (
            "Good opportunity that could benefit from strategic positioning.",
            [f"Consider: {match.recommendations[0]}"],
            "View Recommendations",
        )
    return (
        f"New {industry} opportunity matching your profile.",
        [f"Estimated value: ${opportunity.estimated_value:,.0f}"],
        "Explore Opportunity",
    )


def build_match_summary(match: Match, now: datetime | None = None) -> MatchSummary:
    candidate = match.candidate
    opportunity = match.opportunity
    days = days_to_deadline(opportunity, now)
    urgency = urgency_for(days)
    message, insights, cta = _message(match)

    if opportunity.requires_designated_supplier and candidate.is_designated_supplier:
        insights.append("Designated supplier requirement met")
    if opportunity.location.city and normalize(candidate.city) == normalize(opportunity.location.city):
        insights.append("Local advantage - same city")
    if candidate.max_project_size and candidate.max_project_size >= opportunity.estimated_value:
        insights.append("Within your project capacity")

    summary = MatchSummary(
        candidate_id=candidate.id,
        opportunity_id=opportunity.id,
        urgency=urgency,
        channels=select_channels(urgency, candidate.notification_preferences),
        subject=_subject(match, days),
        message=message,
        insights=insights,
        call_to_action=cta,
        match_score=round(match.overall, 2),
        win_probability=round(match.win_probability, 4),
        strengths=list(match.strengths),
        recommendations=list(match.recommendations),
    )
    if now is not None:
        summary = summary.model_copy(update={"created_at": now})
    return summary


class Notifier(Protocol):
    async def notify(self, candidate_id: str, summary: MatchSummary) -> None: ...


class LogNotifier:
    """Writes summaries to the structured log. Used when no webhook is configured.

    Only the last ``history`` summaries are kept in ``sent``.
    """

    def __init__(self, history: int | None = None) -> None:
        self.sent: deque[MatchSummary] = deque(
            maxlen=settings.NOTIFY_LOG_HISTORY if history is None else history
        )

    async def notify(self, candidate_id: str, summary: MatchSummary) -> None:
        self.sent.append(summary)
        logger.info(
            "match_notification",
            candidate_id=candidate_id,
            opportunity_id=summary.opportunity_id,
            urgency=summary.urgency.value,
            channels=[c.value for c in summary.channels],
            subject=summary.subject,
        )


class WebhookNotifier:
    """POSTs each summary as JSON to ``NOTIFY_WEBHOOK_URL``."""

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        dry_run: bool | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url or settings.NOTIFY_WEBHOOK_URL
        if not self.url:
            raise ValueError("NOTIFY_WEBHOOK_URL is not configured")
        self.timeout = timeout or settings.NOTIFY_TIMEOUT_SECONDS
        self.dry_run = settings.NOTIFY_DRY_RUN if dry_run is None else dry_run
        self._client = client

    async def notify(self, candidate_id: str, summary: MatchSummary) -> None:
        payload: dict[str, Any] = summary.model_dump(mode="json")
        if self.dry_run:
            logger.info("notify_dry_run", candidate_id=candidate_id, notification_id=summary.id)
            return
        if self._client is not None:
            resp = await self._client.post(self.url, json=payload)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.url, json=payload)
        resp.raise_for_status()
        logger.info(
            "notification_sent",
            candidate_id=candidate_id,
            notification_id=summary.id,
            status=resp.status_code,
        )
