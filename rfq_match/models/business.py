"""Candidate business profile, a read-only snapshot for one matching pass."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from rfq_match.models.enums import Availability, BusinessStatus


class Certification(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    valid: bool = True
    valid_until: date | None = None

    def is_valid(self, on: date | None = None) -> bool:
        if not self.valid:
            return False
        if on is None or self.valid_until is None:
            return True
        return self.valid_until >= on


class Candidate(BaseModel):
    """
    A business that may bid on an opportunity.

    Optional fields left unset degrade to documented defaults during scoring
    (e.g. 10 employees, 1 000 000 max project size) instead of failing.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    status: BusinessStatus = BusinessStatus.ACTIVE
    verified: bool = True

    industry: str | None = None
    secondary_industries: frozenset[str] = frozenset()
    province: str | None = None
    city: str | None = None
    service_areas: frozenset[str] = frozenset()
    operates_nationally: bool = False

    is_designated_supplier: bool = False
    designated_supplier_certified: bool = False

    employee_count: int | None = Field(default=None, gt=0)
    years_in_business: int = Field(default=0, ge=0)
    certifications: tuple[Certification, ...] = ()
    capabilities: frozenset[str] = frozenset()
    max_project_size: float | None = None
    avg_project_size: float | None = None
    similar_projects: int = 0
    current_capacity_percentage: float | None = Field(default=None, ge=0, le=100)
    availability: Availability | None = None
    performance_rating: float | None = Field(default=None, ge=0, le=5)

    has_bonding: bool = False
    has_insurance: bool = False
    community_involvement: bool = False
    local_employment_ratio: float | None = None
    sustainability_certified: bool = False

    notification_preferences: dict[str, bool] = Field(default_factory=dict)

    @property
    def industries(self) -> list[str]:
        return [i for i in (self.industry, *sorted(self.secondary_industries)) if i]

    def missing_certifications(
        self, required: Iterable[str], on: date | None = None
    ) -> list[str]:
        """Required certification types the candidate does not hold in a valid state."""
        held = {c.type for c in self.certifications if c.is_valid(on)}
        return sorted(cert for cert in required if cert not in held)
