"""Shared fixtures: anyio backend and candidate/opportunity builders."""

from __future__ import annotations

import random
from datetime import date, datetime, timezone
from typing import Any

import pytest

from rfq_match.models import (
    Availability,
    BudgetRange,
    Candidate,
    Certification,
    Complexity,
    Location,
    Opportunity,
)

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def build_opportunity(**overrides: Any) -> Opportunity:
    data: dict[str, Any] = {
        "id": "opp-1",
        "title": "Network infrastructure upgrade",
        "industry": "IT Services",
        "location": Location(province="ON", city="Toronto"),
        "estimated_value": 750_000,
        "complexity": Complexity.MEDIUM,
    }
    data.update(overrides)
    return Opportunity(**data)


def build_candidate(**overrides: Any) -> Candidate:
    data: dict[str, Any] = {
        "id": "biz-1",
        "name": "Northern Tech",
        "industry": "IT Services",
        "province": "ON",
        "city": "Toronto",
        "employee_count": 25,
        "years_in_business": 8,
        "max_project_size": 2_000_000,
    }
    data.update(overrides)
    return Candidate(**data)


def random_opportunity(rng: random.Random, idx: int = 0) -> Opportunity:
    industries = ["IT Services", "Construction", "Consulting", "Engineering", None]
    provinces = ["ON", "QC", "BC", "MB", None]
    skills = ["cloud", "networking", "security", "support", "welding", "design"]
    low = rng.uniform(0, 500_000)
    return Opportunity(
        id=f"opp-{idx}",
        title=f"Opportunity {idx}",
        industry=rng.choice(industries),
        location=Location(
            province=rng.choice(provinces),
            city=rng.choice(["Toronto", "Ottawa", "Winnipeg", None]),
            national=rng.random() < 0.1,
        ),
        estimated_value=rng.uniform(10_000, 10_000_000),
        budget_range=BudgetRange(min=low, max=low + rng.uniform(0, 1_000_000)),
        required_certifications=frozenset(
            rng.sample(["ISO9001", "ISO27001", "COR"], rng.randint(0, 2))
        ),
        min_years_experience=rng.randint(0, 15),
        required_skills=frozenset(rng.sample(skills, rng.randint(0, 4))),
        requires_designated_supplier=rng.random() < 0.3,
        requires_bonding=rng.random() < 0.3,
        requires_insurance=rng.random() < 0.5,
        requires_sustainability_certification=rng.random() < 0.2,
        requires_community_benefits=rng.random() < 0.3,
        local_preference=rng.random() < 0.3,
        timeline=rng.choice([None, "8 weeks"]),
        closing_date=rng.choice([None, datetime(2026, 6, 1, tzinfo=timezone.utc)]),
        complexity=rng.choice(list(Complexity)),
    )


def random_candidate(rng: random.Random, idx: int = 0) -> Candidate:
    certs = tuple(
        Certification(
            type=t,
            valid=rng.random() < 0.9,
            valid_until=rng.choice([None, date(2025, 1, 1), date(2027, 1, 1)]),
        )
        for t in rng.sample(["ISO9001", "ISO27001", "COR"], rng.randint(0, 3))
    )
    return Candidate(
        id=f"biz-{idx}",
        name=f"Business {idx}",
        industry=rng.choice(["IT Services", "Construction", "Consulting", "Software", None]),
        province=rng.choice(["ON", "QC", "BC", "MB", None]),
        city=rng.choice(["Toronto", "Ottawa", "Winnipeg", None]),
        service_areas=frozenset(rng.sample(["Toronto", "Ottawa", "Winnipeg"], rng.randint(0, 2))),
        operates_nationally=rng.random() < 0.3,
        is_designated_supplier=rng.random() < 0.4,
        designated_supplier_certified=rng.random() < 0.5,
        employee_count=rng.choice([None, rng.randint(1, 500)]),
        years_in_business=rng.randint(0, 40),
        certifications=certs,
        capabilities=frozenset(
            rng.sample(["cloud", "networking", "security", "support", "welding"], rng.randint(0, 4))
        ),
        max_project_size=rng.choice([None, rng.uniform(50_000, 20_000_000)]),
        avg_project_size=rng.choice([None, rng.uniform(10_000, 2_000_000)]),
        similar_projects=rng.randint(0, 10),
        current_capacity_percentage=rng.choice([None, rng.uniform(0, 100)]),
        availability=rng.choice([None, *Availability]),
        performance_rating=rng.choice([None, rng.uniform(0, 5)]),
        has_bonding=rng.random() < 0.5,
        has_insurance=rng.random() < 0.7,
        community_involvement=rng.random() < 0.5,
        local_employment_ratio=rng.choice([None, rng.random()]),
        sustainability_certified=rng.random() < 0.3,
    )


@pytest.fixture
def make_opportunity():
    return build_opportunity


@pytest.fixture
def make_candidate():
    return build_candidate


@pytest.fixture
def rng() -> random.Random:
    return random.Random(20260302)


# ── Worked scenarios ─────────────────────────────────────────────────────────


@pytest.fixture
def designated_opportunity() -> Opportunity:
    """High-complexity IT opportunity that mandates a designated supplier."""
    return build_opportunity(
        id="opp-designated",
        location=Location(province="ON"),
        requires_designated_supplier=True,
        required_certifications=frozenset({"ISO9001"}),
        min_years_experience=5,
        complexity=Complexity.HIGH,
    )


@pytest.fixture
def strong_candidate() -> Candidate:
    return build_candidate(
        id="biz-strong",
        name="Strong IT",
        is_designated_supplier=True,
        designated_supplier_certified=True,
        employee_count=50,
        years_in_business=10,
        certifications=(Certification(type="ISO9001", valid=True),),
        max_project_size=5_000_000,
    )


@pytest.fixture
def partnership_opportunity() -> Opportunity:
    return build_opportunity(
        id="opp-partner",
        title="Secure cloud migration",
        location=Location(province="ON"),
        estimated_value=400_000,
        required_certifications=frozenset({"ISO27001"}),
        required_skills=frozenset({"networking", "cloud", "security", "support"}),
        min_years_experience=3,
    )


@pytest.fixture
def gapped_primary() -> Candidate:
    """Same industry, no ISO27001, one of four skills: technical 55."""
    return build_candidate(
        id="biz-primary",
        name="Primary Networks",
        employee_count=30,
        years_in_business=6,
        capabilities=frozenset({"networking"}),
        max_project_size=1_000_000,
        is_designated_supplier=True,
    )


@pytest.fixture
def covering_partner() -> Candidate:
    """Related industry, holds ISO27001, one of four skills: technical 85."""
    return build_candidate(
        id="biz-partner",
        name="Partner Consulting",
        industry="Consulting",
        employee_count=30,
        years_in_business=6,
        capabilities=frozenset({"cloud"}),
        certifications=(Certification(type="ISO27001", valid=True),),
        max_project_size=1_000_000,
        is_designated_supplier=True,
    )


@pytest.fixture
def gen_opportunity():
    return random_opportunity


@pytest.fixture
def gen_candidate():
    return random_candidate


@pytest.fixture
def now() -> datetime:
    return NOW
