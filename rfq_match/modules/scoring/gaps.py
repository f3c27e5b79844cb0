"""Gap Analyzer: threshold classification of a score breakdown."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from rfq_match.models.enums import ScoreDimension
from rfq_match.modules.scoring.algorithm import ScoreBreakdown
from rfq_match.modules.scoring.weights import (
    DIMENSION_ORDER,
    GAP_LABELS,
    RECOMMENDATION_TEMPLATES,
    STRENGTH_LABELS,
    THRESHOLDS,
    Thresholds,
)


@dataclass(frozen=True)
class GapAnalysis:
    strengths: tuple[ScoreDimension, ...]
    gaps: tuple[ScoreDimension, ...]

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "strengths": [d.value for d in self.strengths],
            "gaps": [d.value for d in self.gaps],
        }


def analyze(breakdown: ScoreBreakdown, thresholds: Thresholds = THRESHOLDS) -> GapAnalysis:
    """Strengths are dimensions >= 80, gaps are dimensions < 60, in dimension order."""
    strengths = tuple(
        d for d in DIMENSION_ORDER if breakdown.get(d) >= thresholds.strength_min
    )
    gaps = tuple(d for d in DIMENSION_ORDER if breakdown.get(d) < thresholds.gap_below)
    return GapAnalysis(strengths=strengths, gaps=gaps)


def strength_labels(analysis: GapAnalysis, breakdown: ScoreBreakdown) -> list[str]:
    return [f"{STRENGTH_LABELS[d]} ({round(breakdown.get(d))}%)" for d in analysis.strengths]


def gap_labels(analysis: GapAnalysis, breakdown: ScoreBreakdown) -> list[str]:
    return [f"{GAP_LABELS[d]} ({round(breakdown.get(d))}%)" for d in analysis.gaps]


def recommendations_for(
    gaps: Iterable[ScoreDimension], limit: int = THRESHOLDS.max_recommendations
) -> list[str]:
    """Templated advice per gap, deduplicated and capped, in generation order."""
    gap_set = set(gaps)
    ordered = [d for d in DIMENSION_ORDER if d in gap_set]
    recommendations: list[str] = []
    for dimension in ordered:
        for text in RECOMMENDATION_TEMPLATES[dimension]:
            if text not in recommendations:
                recommendations.append(text)
    return recommendations[:limit]
