"""Tests for the compatibility evaluator."""

import math

import pytest

from rfq_match.modules.compatibility.evaluator import (
    COMPATIBILITY_WEIGHTS,
    evaluate,
    recommendation_for,
)
from rfq_match.modules.matching.repository import InMemoryCollaborationHistory


class TestCompatibilityWeights:
    def test_sum_to_one(self):
        assert math.fsum(COMPATIBILITY_WEIGHTS.values()) == 1.0


class TestEvaluate:
    def test_same_everything_without_history(self, make_candidate):
        a = make_candidate(id="a", is_designated_supplier=True)
        b = make_candidate(id="b", is_designated_supplier=True)
        result = evaluate(a, b)
        # 0.25 * 1.0 + 0.20 * 1.0 + 0.20 * 0.9 + 0.20 * 0.9 + 0.15 * 0
        assert result.score == pytest.approx(0.81)
        assert result.factors["past_collaboration"] == 0.0
        assert result.recommendation == "Excellent partnership potential"

    def test_history_lookup(self, make_candidate):
        history = InMemoryCollaborationHistory({("a", "b"): 0.9})
        a, b = make_candidate(id="a"), make_candidate(id="b")
        result = evaluate(b, a, history)
        assert result.factors["past_collaboration"] == 0.9
        # 0.25 + 0.20 + 0.14 + 0.18 + 0.135
        assert result.score == pytest.approx(0.905)

    def test_related_industry_and_national_reach(self, make_candidate):
        a = make_candidate(id="a", industry="Consulting", province="ON")
        b = make_candidate(id="b", industry="Management", province="BC", operates_nationally=True)
        result = evaluate(a, b)
        assert result.factors["industry_alignment"] == 0.7
        assert result.factors["geographic_synergy"] == 0.7
        assert result.factors["culture_fit"] == 0.7

    def test_unrelated_distant_and_mismatched_size(self, make_candidate):
        a = make_candidate(id="a", industry="Construction", province="ON", employee_count=5)
        b = make_candidate(id="b", industry="Software", province="BC", employee_count=500)
        result = evaluate(a, b)
        assert result.factors["industry_alignment"] == 0.4
        assert result.factors["size_compatibility"] == 0.3
        assert result.factors["geographic_synergy"] == 0.4
        # 0.1 + 0.06 + 0.14 + 0.08
        assert result.score == pytest.approx(0.38)
        assert result.recommendation == "Consider alternative partners"

    def test_unknown_sizes_default_to_ten(self, make_candidate):
        a = make_candidate(id="a", employee_count=None)
        b = make_candidate(id="b", employee_count=20)
        assert evaluate(a, b).factors["size_compatibility"] == 0.5

    def test_symmetric(self, rng, gen_candidate):
        for i in range(50):
            a, b = gen_candidate(rng, i), gen_candidate(rng, i + 1000)
            assert evaluate(a, b).score == pytest.approx(evaluate(b, a).score)
            assert 0 <= evaluate(a, b).score <= 1


class TestRecommendationTiers:
    @pytest.mark.parametrize(
        "score,text",
        [
            (0.8, "Excellent partnership potential"),
            (0.75, "Good partnership potential"),
            (0.6, "Moderate partnership potential"),
            (0.59, "Consider alternative partners"),
        ],
    )
    def test_tiers(self, score, text):
        assert recommendation_for(score) == text
