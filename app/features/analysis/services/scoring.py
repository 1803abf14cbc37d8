"""
Weighted overall score, potential-score estimate and percentile band.

Weights are integer percentages so the weighted sum is computed exactly and
rounded once, independent of the order the terms are added in.
"""

from typing import Dict, Tuple

from app.features.analysis.schemas.analysis import OverallScore, ScoreBreakdown
from app.features.performance.schemas.performance import PerformanceMetrics
from app.features.seo.schemas.seo import SEOAnalysis

WEIGHTS: Dict[str, int] = {
    "content": 35,
    "seo": 30,
    "performance": 20,
    "mobile": 15,
}

# (minimum total, label, color), highest band first
BANDS: Tuple[Tuple[int, str, str], ...] = (
    (90, "Excellent", "green"),
    (75, "Good", "yellow"),
    (50, "Fair", "orange"),
    (0, "Poor", "red"),
)

PERCENTILES: Tuple[Tuple[int, int], ...] = ((90, 15), (75, 35), (50, 65))
LOWEST_PERCENTILE = 85

CRITICAL_UPLIFT = 5
HIGH_UPLIFT = 3
IMAGE_UPLIFT_PER_IMAGE = 2
IMAGE_UPLIFT_CAP = 10
CONTENT_UPLIFT = 12
CONTENT_UPLIFT_BELOW = 85


def _clamp_score(value: int) -> int:
    return max(0, min(100, value))


def score_band(total: int) -> Tuple[str, str]:
    for minimum, label, color in BANDS:
        if total >= minimum:
            return label, color
    return BANDS[-1][1], BANDS[-1][2]


def calculate_overall_score(
    seo: SEOAnalysis,
    performance: PerformanceMetrics,
    content_quality_score: int,
) -> OverallScore:
    breakdown = ScoreBreakdown(
        content=_clamp_score(content_quality_score),
        seo=_clamp_score(seo.score),
        performance=_clamp_score(performance.overall_score),
        mobile=_clamp_score(performance.mobile.score),
    )
    weighted = sum(getattr(breakdown, name) * weight for name, weight in WEIGHTS.items())
    # Integer half-up rounding of weighted / 100.
    total = (weighted + 50) // 100
    label, color = score_band(total)
    return OverallScore(total=total, breakdown=breakdown, label=label, color=color)


def estimate_potential_score(current: OverallScore, seo: SEOAnalysis, performance: PerformanceMetrics) -> int:
    """Current total plus a non-negative uplift for each fixable issue, capped at 100."""
    uplift = CRITICAL_UPLIFT * len(seo.open_issues("critical"))
    uplift += HIGH_UPLIFT * len(seo.open_issues("high"))

    unoptimized = performance.images.unoptimized_count
    if unoptimized > 0:
        uplift += min(unoptimized * IMAGE_UPLIFT_PER_IMAGE, IMAGE_UPLIFT_CAP)

    if current.breakdown.content < CONTENT_UPLIFT_BELOW:
        uplift += CONTENT_UPLIFT

    return max(0, min(100, current.total + uplift))


def calculate_percentile(total: int) -> int:
    """Rough "top N%" position of a total score."""
    for minimum, percentile in PERCENTILES:
        if total >= minimum:
            return percentile
    return LOWEST_PERCENTILE
