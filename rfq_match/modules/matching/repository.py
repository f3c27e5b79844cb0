"""Candidate and opportunity data sources.

The engine only needs two read operations from each store, so the storage
layer is hidden behind small protocols. In-memory implementations back
development and tests; the HTTP implementations talk to the directory
service configured by ``REPOSITORY_URL``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from rfq_match.core.config import settings
from rfq_match.core.errors import RepositoryUnavailable
from rfq_match.models.business import Candidate
from rfq_match.models.enums import BusinessStatus
from rfq_match.models.opportunity import Opportunity
from rfq_match.modules.scoring.algorithm import normalize

logger = structlog.get_logger()


@dataclass(frozen=True)
class EligibilityFilters:
    """Pre-filter hints passed to ``find_eligible``.

    ``industry`` and ``province`` are optional narrowing hints; stores may
    ignore them. Status, verification and the designated-supplier flag are
    always honoured.
    """

    status: BusinessStatus = BusinessStatus.ACTIVE
    verified_only: bool = True
    designated_supplier_required: bool = False
    industry: str | None = None
    province: str | None = None

    @classmethod
    def for_opportunity(cls, opportunity: Opportunity) -> EligibilityFilters:
        return cls(designated_supplier_required=opportunity.requires_designated_supplier)

    def admits(self, candidate: Candidate) -> bool:
        if candidate.status != self.status:
            return False
        if self.verified_only and not candidate.verified:
            return False
        if self.designated_supplier_required and not candidate.is_designated_supplier:
            return False
        if self.industry and normalize(self.industry) not in {
            normalize(i) for i in candidate.industries
        }:
            return False
        if (
            self.province
            and not candidate.operates_nationally
            and normalize(candidate.province) != normalize(self.province)
        ):
            return False
        return True

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "status": self.status.value,
            "verified": str(self.verified_only).lower(),
        }
        if self.designated_supplier_required:
            params["designated_supplier"] = "true"
        if self.industry:
            params["industry"] = self.industry
        if self.province:
            params["province"] = self.province
        return params


class BusinessRepository(Protocol):
    async def find_eligible(self, filters: EligibilityFilters) -> list[Candidate]: ...

    async def get(self, candidate_id: str) -> Candidate | None: ...


class OpportunityRepository(Protocol):
    async def list_open(self) -> list[Opportunity]: ...

    async def get(self, opportunity_id: str) -> Opportunity | None: ...


class PastCollaborationLookup(Protocol):
    def get(self, business_a: str, business_b: str) -> float:
        """Collaboration success score in [0, 1]; 0.0 when the pair never worked together."""
        ...


# ── In-memory stores ─────────────────────────────────────────────────────────


class InMemoryBusinessRepository:
    def __init__(self, candidates: Iterable[Candidate] = ()) -> None:
        self._candidates: dict[str, Candidate] = {c.id: c for c in candidates}

    def add(self, candidate: Candidate) -> None:
        self._candidates[candidate.id] = candidate

    async def find_eligible(self, filters: EligibilityFilters) -> list[Candidate]:
        return [c for c in self._candidates.values() if filters.admits(c)]

    async def get(self, candidate_id: str) -> Candidate | None:
        return self._candidates.get(candidate_id)


class InMemoryOpportunityRepository:
    def __init__(
        self,
        opportunities: Iterable[Opportunity] = (),
        closed: Iterable[str] = (),
    ) -> None:
        self._opportunities: dict[str, Opportunity] = {o.id: o for o in opportunities}
        self._closed: set[str] = set(closed)

    def add(self, opportunity: Opportunity) -> None:
        self._opportunities[opportunity.id] = opportunity

    def close(self, opportunity_id: str) -> None:
        self._closed.add(opportunity_id)

    async def list_open(self) -> list[Opportunity]:
        return [o for o in self._opportunities.values() if o.id not in self._closed]

    async def get(self, opportunity_id: str) -> Opportunity | None:
        return self._opportunities.get(opportunity_id)


class InMemoryCollaborationHistory:
    """Symmetric pair -> success score table."""

    def __init__(self, history: Mapping[tuple[str, str], float] | None = None) -> None:
        self._history: dict[frozenset[str], float] = {}
        for (a, b), value in (history or {}).items():
            self.record(a, b, value)

    def record(self, business_a: str, business_b: str, success: float) -> None:
        self._history[frozenset((business_a, business_b))] = max(0.0, min(1.0, success))

    def get(self, business_a: str, business_b: str) -> float:
        return self._history.get(frozenset((business_a, business_b)), 0.0)


# ── HTTP stores ──────────────────────────────────────────────────────────────


class _HttpRepository:
    """Shared httpx plumbing: retries on connect errors, one error type out."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        retries: int | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if client is None:
            base_url = base_url or settings.REPOSITORY_URL
            if not base_url:
                raise RepositoryUnavailable("REPOSITORY_URL is not configured")
            key = api_key if api_key is not None else settings.REPOSITORY_API_KEY
            client = httpx.AsyncClient(
                base_url=base_url,
                headers={"Authorization": f"Bearer {key}"} if key else {},
                timeout=timeout or settings.REPOSITORY_TIMEOUT_SECONDS,
                transport=httpx.AsyncHTTPTransport(
                    retries=settings.REPOSITORY_RETRIES if retries is None else retries
                ),
            )
        self._client = client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _get_json(
        self, path: str, params: Mapping[str, Any] | None = None, allow_missing: bool = False
    ) -> Any:
        try:
            resp = await self._client.get(path, params=params)
            if allow_missing and resp.status_code == 404:
                return None
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as exc:
            logger.warning("repository_request_failed", path=path, error=str(exc))
            raise RepositoryUnavailable(
                f"Repository request {path} failed: {exc}", detail={"path": path}
            ) from exc
        except ValueError as exc:
            logger.warning("repository_invalid_json", path=path, error=str(exc))
            raise RepositoryUnavailable(
                f"Repository returned invalid JSON for {path}", detail={"path": path}
            ) from exc

    @staticmethod
    def _parse_many(
        payload: Any, model: type[BaseModel], kind: str
    ) -> list[Any]:
        records = payload.get("items", []) if isinstance(payload, dict) else payload
        if not isinstance(records, list):
            raise RepositoryUnavailable(
                f"Unexpected {kind} listing shape", detail=type(payload).__name__
            )
        parsed = []
        for record in records:
            try:
                parsed.append(model.model_validate(record))
            except ValidationError as exc:
                logger.warning(
                    "repository_record_skipped",
                    kind=kind,
                    record_id=record.get("id") if isinstance(record, dict) else None,
                    errors=exc.error_count(),
                )
        return parsed

    @staticmethod
    def _parse_one(payload: Any, model: type[BaseModel], kind: str) -> Any:
        if payload is None:
            return None
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise RepositoryUnavailable(
                f"Repository returned a malformed {kind}",
                detail=exc.errors(include_url=False),
            ) from exc


class HttpBusinessRepository(_HttpRepository):
    async def find_eligible(self, filters: EligibilityFilters) -> list[Candidate]:
        params = {**filters.to_params(), "limit": settings.REPOSITORY_PAGE_LIMIT}
        candidates: list[Candidate] = []
        offset = 0
        while True:
            payload = await self._get_json("/businesses", {**params, "offset": offset})
            page = self._parse_many(payload, Candidate, "business")
            # The store may ignore filter params; re-check locally.
            candidates.extend(c for c in page if filters.admits(c))
            if not isinstance(payload, dict) or not payload.get("next_offset"):
                break
            offset = int(payload["next_offset"])
        logger.debug("businesses_fetched", count=len(candidates))
        return candidates

    async def get(self, candidate_id: str) -> Candidate | None:
        payload = await self._get_json(f"/businesses/{candidate_id}", allow_missing=True)
        return self._parse_one(payload, Candidate, "business")


class HttpOpportunityRepository(_HttpRepository):
    async def list_open(self) -> list[Opportunity]:
        payload = await self._get_json(
            "/opportunities", {"status": "open", "limit": settings.REPOSITORY_PAGE_LIMIT}
        )
        return self._parse_many(payload, Opportunity, "opportunity")

    async def get(self, opportunity_id: str) -> Opportunity | None:
        payload = await self._get_json(f"/opportunities/{opportunity_id}", allow_missing=True)
        return self._parse_one(payload, Opportunity, "opportunity")
