"""Opportunity (RFQ) value model.

An Opportunity is immutable once published: a revised RFQ is a new
Opportunity. The engine only ever reads it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from rfq_match.core.errors import InvalidOpportunity
from rfq_match.models.enums import Complexity


class BudgetRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float
    max: float


class Location(BaseModel):
    """Where the work is delivered. ``national`` means no single province."""

    model_config = ConfigDict(frozen=True)

    province: str | None = None
    city: str | None = None
    national: bool = False


class Opportunity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    industry: str | None = None
    location: Location = Field(default_factory=Location)
    estimated_value: float
    budget_range: BudgetRange | None = None
    required_certifications: frozenset[str] = frozenset()
    min_years_experience: int = 0
    required_skills: frozenset[str] = frozenset()
    requires_designated_supplier: bool = False
    requires_bonding: bool = False
    requires_insurance: bool = False
    requires_sustainability_certification: bool = False
    requires_community_benefits: bool = False
    local_preference: bool = False
    timeline: str | None = None
    closing_date: datetime | None = None
    complexity: Complexity = Complexity.MEDIUM


def validate_opportunity(opportunity: Opportunity) -> Opportunity:
    """Reject malformed opportunities before any scoring begins."""
    problems: list[str] = []
    if opportunity.estimated_value <= 0:
        problems.append(f"estimated_value must be positive, got {opportunity.estimated_value}")
    budget = opportunity.budget_range
    if budget is not None:
        if budget.min > budget.max:
            problems.append(f"budget_range min {budget.min} exceeds max {budget.max}")
        if budget.min < 0:
            problems.append(f"budget_range min must be non-negative, got {budget.min}")
    if opportunity.min_years_experience < 0:
        problems.append(
            f"min_years_experience must be non-negative, got {opportunity.min_years_experience}"
        )
    if problems:
        raise InvalidOpportunity(
            f"Opportunity {opportunity.id} is invalid: " + "; ".join(problems),
            detail=problems,
        )
    return opportunity


def parse_opportunity(raw: dict[str, Any]) -> Opportunity:
    """Build and validate an Opportunity from intake data."""
    try:
        opportunity = Opportunity.model_validate(raw)
    except ValidationError as exc:
        raise InvalidOpportunity(
            f"Opportunity {raw.get('id', '<unknown>')} failed validation",
            detail=exc.errors(include_url=False),
        ) from exc
    return validate_opportunity(opportunity)
