"""Tests for partnership synthesis and facilitation."""

import dataclasses
from datetime import timedelta

import pytest

from rfq_match.models import PartnershipNeed, PartnershipStructure, ScoreDimension
from rfq_match.modules.partnerships.facilitation import NEXT_STEPS, PartnershipFacilitator
from rfq_match.modules.partnerships.synthesizer import (
    PartnershipSynthesizer,
    combine,
    gap_coverage,
    identify_needs,
    recommend_structure,
)
from rfq_match.modules.scoring.algorithm import ScoreBreakdown, ScoringModel
from rfq_match.modules.scoring.gaps import GapAnalysis
from rfq_match.modules.scoring.match import build_match
from rfq_match.modules.scoring.weights import DIMENSION_ORDER, Thresholds


def _matches(opportunity, *candidates):
    model = ScoringModel()
    return [build_match(c, opportunity, model) for c in candidates]


def _breakdown(**values):
    dims = {d: 70.0 for d in DIMENSION_ORDER}
    dims.update({ScoreDimension(k): v for k, v in values.items()})
    return ScoreBreakdown.from_dimensions(dims)


# ── Building blocks ──────────────────────────────────────────────────────────


class TestNeedsAndCoverage:
    def test_needs_include_missing_certifications(self, gapped_primary, partnership_opportunity):
        (primary,) = _matches(partnership_opportunity, gapped_primary)
        assert identify_needs(primary) == (
            PartnershipNeed.TECHNICAL_EXPERTISE,
            PartnershipNeed.CERTIFICATIONS,
        )

    def test_partner_covers_both_needs(
        self, gapped_primary, covering_partner, partnership_opportunity
    ):
        primary, partner = _matches(partnership_opportunity, gapped_primary, covering_partner)
        coverage = gap_coverage(partner, identify_needs(primary))
        assert coverage.coverage == 1.0
        assert coverage.details[PartnershipNeed.CERTIFICATIONS] == "Has required certifications"

    def test_primary_does_not_cover_itself(self, gapped_primary, partnership_opportunity):
        (primary,) = _matches(partnership_opportunity, gapped_primary)
        assert gap_coverage(primary, identify_needs(primary)).coverage == 0.0

    def test_experience_and_cultural_gaps_need_no_partner(
        self, gapped_primary, covering_partner, partnership_opportunity
    ):
        primary, partner = _matches(partnership_opportunity, gapped_primary, covering_partner)
        primary = dataclasses.replace(
            primary,
            analysis=GapAnalysis(
                strengths=(), gaps=(ScoreDimension.EXPERIENCE, ScoreDimension.CULTURAL)
            ),
            missing_certifications=(),
        )
        assert identify_needs(primary) == ()
        synthesizer = PartnershipSynthesizer()
        assert synthesizer.synthesize(partnership_opportunity, primary, [primary, partner]) is None


class TestCombine:
    def test_max_per_dimension_and_pooled_capacity(self):
        primary = _breakdown(technical=55, capacity=50, location=90)
        partner = _breakdown(technical=85, capacity=40, location=60)
        combined = combine(primary, partner)
        assert combined.technical == 85
        assert combined.location == 90
        assert combined.capacity == pytest.approx(78.0)

    def test_capacity_capped(self):
        combined = combine(_breakdown(capacity=80), _breakdown(capacity=80))
        assert combined.capacity == 100


class TestStructure:
    def test_larger_primary_is_prime(self, make_candidate):
        big, small = make_candidate(employee_count=100), make_candidate(employee_count=20)
        assert recommend_structure(big, small) is PartnershipStructure.PRIME_SUB_PRIMARY_AS_PRIME
        assert recommend_structure(small, big) is PartnershipStructure.PRIME_SUB_PARTNER_AS_PRIME

    def test_comparable_sizes_joint_venture(self, make_candidate):
        a, b = make_candidate(employee_count=30), make_candidate(employee_count=60)
        assert recommend_structure(a, b) is PartnershipStructure.JOINT_VENTURE


# ── Synthesizer ──────────────────────────────────────────────────────────────


class TestIdentifyOpportunities:
    def test_gap_driven_partnership(
        self, gapped_primary, covering_partner, partnership_opportunity
    ):
        matches = _matches(partnership_opportunity, covering_partner, gapped_primary)
        primary = next(m for m in matches if m.candidate.id == "biz-primary")
        assert primary.breakdown.technical == 55
        assert matches[0].breakdown.technical == 85

        partnerships = PartnershipSynthesizer().identify_opportunities(
            partnership_opportunity, matches
        )

        assert len(partnerships) == 1
        p = partnerships[0]
        assert p.primary.candidate.id == "biz-primary"
        assert p.partner.match.candidate.id == "biz-partner"
        assert p.combined_score > primary.overall
        assert p.viability >= 70
        assert p.structure is PartnershipStructure.JOINT_VENTURE
        assert "Strong local presence" in p.benefits
        assert p.to_dict()["partner_id"] == "biz-partner"

    def test_no_gaps_no_partnership(self, strong_candidate, designated_opportunity):
        matches = _matches(designated_opportunity, strong_candidate)
        assert PartnershipSynthesizer().identify_opportunities(designated_opportunity, matches) == []

    def test_incompatible_partner_rejected(
        self, gapped_primary, covering_partner, partnership_opportunity
    ):
        distant = covering_partner.model_copy(
            update={"province": "BC", "is_designated_supplier": False, "employee_count": 400}
        )
        matches = _matches(partnership_opportunity, gapped_primary, distant)
        assert PartnershipSynthesizer().identify_opportunities(partnership_opportunity, matches) == []

    def test_viability_floor_rejects(
        self, gapped_primary, covering_partner, partnership_opportunity
    ):
        strict = Thresholds(viability_min=99)
        matches = _matches(partnership_opportunity, gapped_primary, covering_partner)
        synthesizer = PartnershipSynthesizer(thresholds=strict)
        assert synthesizer.identify_opportunities(partnership_opportunity, matches) == []


class TestPartnershipProperties:
    def test_viability_and_coverage_invariants(self, rng, gen_candidate, gen_opportunity):
        synthesizer = PartnershipSynthesizer()
        for round_ in range(40):
            opportunity = gen_opportunity(rng, round_)
            pool = [gen_candidate(rng, round_ * 100 + i) for i in range(15)]
            matches = _matches(opportunity, *pool)
            partnerships = synthesizer.identify_opportunities(opportunity, matches)

            scores = [p.combined_score for p in partnerships]
            assert scores == sorted(scores, reverse=True)
            for p in partnerships:
                assert p.viability >= 70
                assert p.partner.coverage.coverage >= 0.6
                assert p.compatibility.score >= 0.7
                assert 50 <= p.primary.overall < 80
                assert p.partner.match.candidate.id != p.primary.candidate.id


# ── Facilitation ─────────────────────────────────────────────────────────────


class TestFacilitation:
    @pytest.fixture
    def partnership(self, gapped_primary, covering_partner, partnership_opportunity):
        matches = _matches(partnership_opportunity, gapped_primary, covering_partner)
        (p,) = PartnershipSynthesizer().identify_opportunities(partnership_opportunity, matches)
        return p

    @pytest.fixture
    def facilitator(self, now):
        counter = iter(range(1, 100))
        return PartnershipFacilitator(
            limit=5, clock=lambda: now, id_factory=lambda prefix: f"{prefix}_{next(counter)}"
        )

    def test_record_and_introduction(self, facilitator, partnership, partnership_opportunity, now):
        (record,) = facilitator.facilitate(partnership_opportunity, [partnership])

        assert record.status == "initiated"
        assert record.target_agreement_at - record.initiated_at == timedelta(days=7)
        assert record.initiated_at == now

        intro = record.introduction
        assert [p.role for p in intro.parties] == ["primary", "partner"]
        assert intro.next_steps == NEXT_STEPS
        assert intro.structure == "Joint Venture (Equal Partnership)"
        assert "Primary Networks" in intro.message and "Partner Consulting" in intro.message
        assert "$400,000" in intro.message
        assert intro.to_dict()["value_proposition"]["viability"].endswith("%")

        assert facilitator.partnerships_created == 1
        assert record.id in facilitator.ledger

    def test_limit(self, now, partnership, partnership_opportunity):
        facilitator = PartnershipFacilitator(limit=2, clock=lambda: now)
        records = facilitator.facilitate(partnership_opportunity, [partnership] * 4)
        assert len(records) == 2
        assert facilitator.partnerships_created == 2

    def test_outcomes_and_success_rate(self, facilitator, partnership, partnership_opportunity):
        assert facilitator.success_rate() == 0.0
        won, lost = facilitator.facilitate(partnership_opportunity, [partnership, partnership])
        facilitator.record_outcome(won.id, won=True, value=400_000)
        facilitator.record_outcome(lost.id, won=False, value=400_000)
        assert facilitator.success_rate() == 50.0
        assert facilitator.total_value_won == 400_000
        with pytest.raises(KeyError):
            facilitator.record_outcome("fac_missing", won=True)
