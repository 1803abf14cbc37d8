import pytest
from pydantic import ValidationError

from app.features.analysis.schemas.analysis import OverallScore, ScoreBreakdown
from app.features.analysis.services.scoring import (
    calculate_overall_score,
    calculate_percentile,
    estimate_potential_score,
    score_band,
)
from app.features.performance.schemas.performance import (
    FALLBACK_NOT_CONFIGURED,
    DeviceMetrics,
    ImageMetrics,
    PerformanceMetrics,
)
from app.features.seo.schemas.seo import SEOAnalysis, SEOCheckResult


def performance(overall: int, mobile: int, unoptimized: int = 0) -> PerformanceMetrics:
    return PerformanceMetrics(
        mobile=DeviceMetrics(score=mobile),
        desktop=DeviceMetrics(score=overall),
        images=ImageMetrics(unoptimized_count=unoptimized),
        overall_score=overall,
    )


def check(priority: str, status: str = "fail") -> SEOCheckResult:
    return SEOCheckResult(name="Check", status=status, message="msg", priority=priority, score=0)


def overall(total: int, content: int) -> OverallScore:
    return OverallScore(
        total=total,
        breakdown=ScoreBreakdown(content=content, seo=total, performance=total, mobile=total),
        label="Fair",
        color="orange",
    )


class TestOverallScore:
    def test_weighted_total_and_band(self):
        result = calculate_overall_score(SEOAnalysis(score=70), performance(60, 50), 80)

        assert result.breakdown == ScoreBreakdown(content=80, seo=70, performance=60, mobile=50)
        assert result.total == 69
        assert (result.label, result.color) == ("Fair", "orange")

    def test_half_rounds_up(self):
        # 60*.35 + 40*.30 + 50*.20 + 50*.15 = 50.5
        result = calculate_overall_score(SEOAnalysis(score=40), performance(50, 50), 60)
        assert result.total == 51

    def test_perfect_page(self):
        result = calculate_overall_score(SEOAnalysis(score=100), performance(100, 100), 100)
        assert result.total == 100
        assert result.label == "Excellent"

    def test_out_of_range_content_score_is_clamped(self):
        result = calculate_overall_score(SEOAnalysis(score=0), performance(0, 0), 180)
        assert result.breakdown.content == 100
        assert result.total == 35

    def test_sub_scores_are_weighted_unrounded(self):
        # 1*.35 rounds to 0 on its own, 2*.35 rounds to 1
        assert calculate_overall_score(SEOAnalysis(score=0), performance(0, 0), 1).total == 0
        assert calculate_overall_score(SEOAnalysis(score=0), performance(0, 0), 2).total == 1
        # 1*.35 + 1*.30 + 1*.20 + 1*.15 = 1
        assert calculate_overall_score(SEOAnalysis(score=1), performance(1, 1), 1).total == 1

    def test_fractional_sub_score_is_rejected(self):
        with pytest.raises(ValidationError):
            calculate_overall_score(SEOAnalysis(score=0), performance(0, 0), 72.5)

    def test_fallback_performance_contributes(self):
        result = calculate_overall_score(SEOAnalysis(score=0), FALLBACK_NOT_CONFIGURED, 50)
        # 50*.35 + 0 + 50*.20 + 50*.15
        assert result.total == 35

    @pytest.mark.parametrize(
        "total,label,color",
        [(100, "Excellent", "green"), (90, "Excellent", "green"), (89, "Good", "yellow"),
         (75, "Good", "yellow"), (74, "Fair", "orange"), (50, "Fair", "orange"), (49, "Poor", "red"), (0, "Poor", "red")],
    )
    def test_bands(self, total, label, color):
        assert score_band(total) == (label, color)


class TestPotentialScore:
    def test_uplift_per_issue(self):
        seo = SEOAnalysis(score=40, checks=[check("critical"), check("critical"), check("high"), check("medium")])
        # 2 critical (+10), 1 high (+3), 3 images (+6), weak content (+12)
        assert estimate_potential_score(overall(40, 70), seo, performance(40, 40, unoptimized=3)) == 71

    def test_image_uplift_is_capped(self):
        seo = SEOAnalysis(score=90)
        assert estimate_potential_score(overall(60, 90), seo, performance(60, 60, unoptimized=12)) == 70

    def test_passing_checks_add_nothing(self):
        seo = SEOAnalysis(score=100, checks=[check("critical", status="pass")])
        assert estimate_potential_score(overall(88, 90), seo, performance(88, 88)) == 88

    def test_capped_at_100(self):
        seo = SEOAnalysis(score=0, checks=[check("critical")] * 6)
        assert estimate_potential_score(overall(80, 10), seo, performance(80, 80, unoptimized=5)) == 100

    def test_never_below_current(self):
        seo = SEOAnalysis(score=50)
        assert estimate_potential_score(overall(55, 90), seo, performance(55, 55)) >= 55


@pytest.mark.parametrize("total,percentile", [(95, 15), (90, 15), (80, 35), (60, 65), (49, 85), (0, 85)])
def test_percentile_bands(total, percentile):
    assert calculate_percentile(total) == percentile
