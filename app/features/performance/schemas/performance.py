from typing import List, Literal, Optional

from pydantic import ConfigDict, Field

from app.platform.schemas import CamelModel, Text

MetricsSource = Literal["measured", "not_configured", "unavailable", "unexpected"]


class DeviceMetrics(CamelModel):
    """Lighthouse performance score (0-100) and timings in milliseconds for one device profile."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(default=0, ge=0, le=100)
    fcp: float = 0
    lcp: float = 0
    ttfb: float = 0
    load_time: float = 0
    speed_index: float = 0


class ImageOptimizationItem(CamelModel):
    model_config = ConfigDict(frozen=True)

    url: Text = ""
    total_bytes: int = 0
    wasted_bytes: int = 0
    format: Text = ""
    width: Optional[int] = None
    height: Optional[int] = None


class ImageFormatItem(CamelModel):
    model_config = ConfigDict(frozen=True)

    url: Text = ""
    wasted_bytes: int = 0
    format: Text = ""
    webp_savings_bytes: Optional[int] = None
    avif_savings_bytes: Optional[int] = None


class ImageMetrics(CamelModel):
    model_config = ConfigDict(frozen=True)

    total_size: int = 0
    unoptimized_count: int = 0
    total_count: int = 0
    optimization_opportunities: List[ImageOptimizationItem] = Field(default_factory=list)
    format_optimization: List[ImageFormatItem] = Field(default_factory=list)


class SEOCategory(CamelModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(default=0, ge=0, le=100)


class PerformanceMetrics(CamelModel):
    """
    Always fully populated: either measured, or one of the fallback constants below.

    ``source`` records which of the two produced the value.
    """

    model_config = ConfigDict(frozen=True)

    desktop: DeviceMetrics = Field(default_factory=DeviceMetrics)
    mobile: DeviceMetrics = Field(default_factory=DeviceMetrics)
    images: ImageMetrics = Field(default_factory=ImageMetrics)
    seo: SEOCategory = Field(default_factory=SEOCategory)
    overall_score: int = Field(default=0, ge=0, le=100)
    source: MetricsSource = "measured"


def _fallback(score: int, images: ImageMetrics, source: MetricsSource) -> PerformanceMetrics:
    device = DeviceMetrics(score=score)
    return PerformanceMetrics(
        desktop=device,
        mobile=device,
        images=images,
        seo=SEOCategory(score=0),
        overall_score=score,
        source=source,
    )


# No credential: nothing was measured, assume an average page.
FALLBACK_NOT_CONFIGURED = _fallback(
    50,
    ImageMetrics(total_size=1_500_000, unoptimized_count=3, total_count=5),
    "not_configured",
)

# Both device profiles failed after retries.
FALLBACK_UNAVAILABLE = _fallback(
    30,
    ImageMetrics(total_size=3_000_000, unoptimized_count=5, total_count=8),
    "unavailable",
)

# Internal error while combining results.
FALLBACK_UNEXPECTED = _fallback(
    50,
    ImageMetrics(total_size=1_500_000, unoptimized_count=3, total_count=5),
    "unexpected",
)
