from typing import List

from app.features.analysis.schemas.analysis import (
    EstimatedImpact,
    OverallScore,
    PriorityItem,
    RecommendationsSummary,
)
from app.features.content.schemas.content import ContentEnhancement
from app.features.performance.schemas.performance import PerformanceMetrics
from app.features.seo.schemas.seo import SEOAnalysis


def _traffic_improvement(score_improvement: int) -> str:
    if score_improvement > 20:
        return "35-50%"
    if score_improvement > 10:
        return "20-35%"
    return "10-20%"


def _implementation_time(priority_count: int) -> str:
    if priority_count > 5:
        return "~60 minutes"
    if priority_count > 2:
        return "~45 minutes"
    return "~30 minutes"


def generate_recommendations(
    seo: SEOAnalysis,
    performance: PerformanceMetrics,
    enhancement: ContentEnhancement,
    overall: OverallScore,
    potential: int,
) -> RecommendationsSummary:
    priority: List[PriorityItem] = [
        PriorityItem(type="critical", message=check.message, impact="+15 SEO points")
        for check in seo.open_issues("critical")
    ]
    priority.extend(
        PriorityItem(type="high", message=check.message, impact="+8 SEO points")
        for check in seo.open_issues("high")
    )

    images = performance.images
    if images.unoptimized_count > 0:
        size_mb = images.total_size / 1024 / 1024
        priority.append(
            PriorityItem(
                type="high",
                message=f"Optimize {images.unoptimized_count} images (reduce {size_mb:.1f}MB to ~400KB)",
                impact="+10 Performance points",
            )
        )

    quick_wins: List[str] = []
    if enhancement.title.enhanced and enhancement.title.enhanced != enhancement.title.current:
        quick_wins.append("Copy enhanced title (30 seconds)")
    extra_features = len(enhancement.features.enhanced) - len(enhancement.features.current)
    if extra_features > 0:
        quick_wins.append(f"Add {extra_features} bullet points from suggestions (2 minutes)")
    if enhancement.meta_description.enhanced and enhancement.meta_description.enhanced != enhancement.meta_description.current:
        quick_wins.append("Replace meta description with the suggested one (1 minute)")

    score_improvement = potential - overall.total
    return RecommendationsSummary(
        priority=priority,
        quick_wins=quick_wins,
        estimated_impact=EstimatedImpact(
            score_improvement=score_improvement,
            traffic_improvement=_traffic_improvement(score_improvement),
            implementation_time=_implementation_time(len(priority)),
        ),
    )
