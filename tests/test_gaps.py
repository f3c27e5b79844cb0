"""Tests for gap analysis and templated recommendations."""

from rfq_match.models import ScoreDimension
from rfq_match.modules.scoring.algorithm import ScoreBreakdown
from rfq_match.modules.scoring.gaps import analyze, gap_labels, recommendations_for, strength_labels
from rfq_match.modules.scoring.weights import DIMENSION_ORDER, Thresholds


def _breakdown(**values):
    dims = {d: 70.0 for d in DIMENSION_ORDER}
    dims.update({ScoreDimension(k): v for k, v in values.items()})
    return ScoreBreakdown.from_dimensions(dims)


class TestAnalyze:
    def test_threshold_boundaries(self):
        analysis = analyze(_breakdown(technical=80, financial=79.99, experience=60, capacity=59.99))
        assert analysis.strengths == (ScoreDimension.TECHNICAL,)
        assert analysis.gaps == (ScoreDimension.CAPACITY,)

    def test_dimension_order_preserved(self):
        analysis = analyze(_breakdown(cultural=10, technical=10, location=95, financial=90))
        assert analysis.gaps == (ScoreDimension.TECHNICAL, ScoreDimension.CULTURAL)
        assert analysis.strengths == (ScoreDimension.FINANCIAL, ScoreDimension.LOCATION)

    def test_custom_thresholds(self):
        analysis = analyze(_breakdown(), Thresholds(strength_min=70, gap_below=71))
        assert len(analysis.strengths) == 6
        assert len(analysis.gaps) == 6

    def test_to_dict(self):
        data = analyze(_breakdown(location=20)).to_dict()
        assert data == {"strengths": [], "gaps": ["location"]}


class TestLabels:
    def test_labels_carry_rounded_score(self):
        b = _breakdown(technical=91.6, capacity=42.4)
        analysis = analyze(b)
        assert strength_labels(analysis, b) == ["Strong technical capabilities (92%)"]
        assert gap_labels(analysis, b) == ["Capacity constraints (42%)"]


class TestRecommendations:
    def test_capped_at_three(self):
        recs = recommendations_for(list(DIMENSION_ORDER))
        assert len(recs) == 3

    def test_generation_order_follows_dimensions(self):
        recs = recommendations_for([ScoreDimension.LOCATION, ScoreDimension.FINANCIAL])
        assert recs == [
            "Consider a joint venture for larger capacity",
            "Obtain bonding/insurance if required",
            "Establish a local partnership or presence",
        ]

    def test_deduplicated(self):
        recs = recommendations_for([ScoreDimension.TECHNICAL, ScoreDimension.TECHNICAL], limit=10)
        assert len(recs) == len(set(recs)) == 2

    def test_no_gaps(self):
        assert recommendations_for([]) == []
