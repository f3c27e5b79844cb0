"""Error taxonomy shared by every matching component."""

from typing import Any


class RFQMatchError(Exception):
    """Base error carrying a stable machine-readable code."""

    error: str = "rfq_match_error"

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message, "detail": self.detail}


class RepositoryUnavailable(RFQMatchError):
    """Candidate or opportunity data source could not be reached."""

    error = "repository_unavailable"


class InvalidOpportunity(RFQMatchError):
    """Opportunity rejected before scoring (e.g. budget min > max)."""

    error = "invalid_opportunity"


class WeightVectorInvariantViolation(RFQMatchError):
    """A weight table does not sum to 1.0. This is a code defect, not a runtime condition."""

    error = "weight_vector_invariant_violation"


class CandidateNotFound(RFQMatchError, LookupError):
    error = "candidate_not_found"


class OpportunityNotFound(RFQMatchError, LookupError):
    error = "opportunity_not_found"
