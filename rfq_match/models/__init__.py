"""Domain value models: opportunities, candidate businesses and shared enums."""

from rfq_match.models.business import Candidate, Certification
from rfq_match.models.enums import (
    Availability,
    BusinessStatus,
    Complexity,
    NotificationChannel,
    PartnershipNeed,
    PartnershipStructure,
    ScoreDimension,
    Urgency,
)
from rfq_match.models.opportunity import (
    BudgetRange,
    Location,
    Opportunity,
    parse_opportunity,
    validate_opportunity,
)

__all__ = [
    "Availability",
    "BudgetRange",
    "BusinessStatus",
    "Candidate",
    "Certification",
    "Complexity",
    "Location",
    "NotificationChannel",
    "Opportunity",
    "PartnershipNeed",
    "PartnershipStructure",
    "ScoreDimension",
    "Urgency",
    "parse_opportunity",
    "validate_opportunity",
]
