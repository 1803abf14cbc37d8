from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.features.content.schemas.content import ContentEnhancement
from app.features.extraction.schemas.snapshot import ProductImage, TechnicalSEOData
from app.features.performance.schemas.performance import DeviceMetrics, PerformanceMetrics
from app.features.seo.schemas.seo import SEOAnalysis
from app.platform.schemas import CamelModel, Text, TextList

ScoreLabel = Literal["Excellent", "Good", "Fair", "Poor"]
ScoreColor = Literal["green", "yellow", "orange", "red"]


class AnalyzeRequest(BaseModel):
    url: str = Field(..., description="Product page URL to analyze")


class ScoreBreakdown(CamelModel):
    model_config = ConfigDict(frozen=True)

    content: int = Field(ge=0, le=100)
    seo: int = Field(ge=0, le=100)
    performance: int = Field(ge=0, le=100)
    mobile: int = Field(ge=0, le=100)


class OverallScore(CamelModel):
    model_config = ConfigDict(frozen=True)

    total: int = Field(ge=0, le=100)
    breakdown: ScoreBreakdown
    label: ScoreLabel
    color: ScoreColor


class PriorityItem(CamelModel):
    type: Literal["critical", "high"]
    message: str
    impact: str


class EstimatedImpact(CamelModel):
    score_improvement: int
    traffic_improvement: str
    implementation_time: str


class RecommendationsSummary(CamelModel):
    priority: List[PriorityItem] = Field(default_factory=list)
    quick_wins: List[str] = Field(default_factory=list)
    estimated_impact: EstimatedImpact


class ProductInfo(CamelModel):
    title: Text = ""
    product_type: Text = ""
    category: Text = ""


class ContentSection(CamelModel):
    score: int
    enhancement: ContentEnhancement


class SEOSection(CamelModel):
    score: int
    analysis: SEOAnalysis


class PerformanceSection(CamelModel):
    score: int
    metrics: PerformanceMetrics


class MobileSection(CamelModel):
    score: int
    metrics: DeviceMetrics


class AnalysisBreakdown(CamelModel):
    content: ContentSection
    seo: SEOSection
    performance: PerformanceSection
    mobile: MobileSection


class ScrapedData(CamelModel):
    meta_title: Text = ""
    meta_description: Text = ""
    h1: Text = ""
    images: List[ProductImage] = Field(default_factory=list)
    features: TextList = Field(default_factory=list)
    has_schema: bool = False
    technical_seo: TechnicalSEOData = Field(default_factory=TechnicalSEOData, alias="technicalSEO")


class AnalysisResult(CamelModel):
    """Everything one analysis request produces, serialized in camelCase."""

    success: bool = True
    url: str
    product_info: ProductInfo
    overall_score: OverallScore
    potential_score: int = Field(ge=0, le=100)
    percentile: int
    breakdown: AnalysisBreakdown
    recommendations: RecommendationsSummary
    scraped_data: ScrapedData
    full_enhancement: ContentEnhancement
    # Branches that fell back to defaults instead of real data.
    degraded: List[str] = Field(default_factory=list)
