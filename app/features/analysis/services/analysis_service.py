import asyncio
from typing import Any, List, Optional

from app.features.analysis.schemas.analysis import (
    AnalysisBreakdown,
    AnalysisResult,
    ContentSection,
    MobileSection,
    PerformanceSection,
    ProductInfo,
    ScrapedData,
    SEOSection,
)
from app.features.analysis.services.recommendations import generate_recommendations
from app.features.analysis.services.scoring import (
    calculate_overall_score,
    calculate_percentile,
    estimate_potential_score,
)
from app.features.content.schemas.content import ContentEnhancement, ProductFields, default_enhancement
from app.features.content.services.content_service import ContentService
from app.features.extraction.schemas.snapshot import ProductPageSnapshot, TechnicalSEOData
from app.features.extraction.services.extractor_service import PageFetcher, extract_technical_seo
from app.features.extraction.services.snapshot_builder import SnapshotBuilder
from app.features.performance.schemas.performance import FALLBACK_UNEXPECTED, PerformanceMetrics
from app.features.performance.services.performance_client import PerformanceClient
from app.features.seo.schemas.seo import DEFAULT_SEO_ANALYSIS, SEOAnalysis
from app.features.seo.services.seo_analyzer import analyze_seo
from app.platform.config import Settings, settings as default_settings
from app.platform.error_handler import log_error
from app.platform.logger import StructuredLogger, get_structured_logger
from app.platform.retry import RetryPolicy


class AnalysisService:
    """
    Runs the full analysis of one product page.

    Process:
    1. Extract technical SEO from the HTML (retried once when transient)
    2. Extract product fields with the text-generation service
    3. Merge both into a snapshot
    4. Run SEO checks, performance measurement and content enhancement concurrently
    5. Score, estimate potential and summarize recommendations

    Any step after the first two degrades to a named default instead of failing.
    The request only fails when neither extraction pass produced anything.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        fetcher: Optional[PageFetcher] = None,
        content_service: Optional[ContentService] = None,
        performance_client: Optional[PerformanceClient] = None,
        snapshot_builder: Optional[SnapshotBuilder] = None,
        fetch_retry_policy: Optional[RetryPolicy] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.settings = settings or default_settings
        self.logger = logger or get_structured_logger(__name__)
        self.fetcher = fetcher or PageFetcher(settings=self.settings, logger=self.logger)
        self.content_service = content_service or ContentService(settings=self.settings, logger=self.logger)
        self.performance_client = performance_client or PerformanceClient(settings=self.settings, logger=self.logger)
        self.snapshot_builder = snapshot_builder or SnapshotBuilder(logger=self.logger)
        self.fetch_retry_policy = fetch_retry_policy or RetryPolicy(max_retries=self.settings.PAGE_FETCH_MAX_RETRIES)

    async def _extract_technical(self, url: str) -> TechnicalSEOData:
        return await self.fetch_retry_policy.run(
            lambda: extract_technical_seo(url, fetcher=self.fetcher, logger=self.logger),
            logger=self.logger,
            context="analysis.technical_retry",
        )

    async def _analyze_seo(self, snapshot: ProductPageSnapshot) -> SEOAnalysis:
        return analyze_seo(snapshot)

    async def extract(self, url: str, degraded: List[str]) -> ProductPageSnapshot:
        """
        Both extraction passes merged into one snapshot.

        Raises:
            The page-fetch error, when the product-data pass failed as well.
        """
        technical: Optional[TechnicalSEOData] = None
        technical_error: Optional[Exception] = None
        try:
            technical = await self._extract_technical(url)
        except Exception as e:
            technical_error = e
            degraded.append("technical_seo")
            log_error(e, "analysis.technical_extraction", self.logger, url=url)

        product: Optional[ProductFields] = None
        try:
            product = await self.content_service.extract_product_data(url, technical)
        except Exception as e:
            degraded.append("product_data")
            log_error(
                e,
                "analysis.product_extraction",
                self.logger,
                url=url,
                has_technical=technical is not None,
            )
            if technical_error is not None:
                raise technical_error

        return self.snapshot_builder.build(url, technical, product)

    def _settle(self, branch: str, result: Any, fallback: Any, degraded: List[str], url: str) -> Any:
        if isinstance(result, Exception):
            degraded.append(branch)
            log_error(result, f"analysis.{branch}", self.logger, url=url)
            return fallback
        if isinstance(result, BaseException):
            raise result
        return result

    async def analyze(self, url: str) -> AnalysisResult:
        degraded: List[str] = []
        self.logger.info("analysis.start", url=url)

        snapshot = await self.extract(url, degraded)
        technical = snapshot.technical_seo if "technical_seo" not in degraded else None

        seo_result, performance_result, enhancement_result = await asyncio.gather(
            self._analyze_seo(snapshot),
            self.performance_client.fetch_performance_metrics(url),
            self.content_service.enhance_content(snapshot, url, technical),
            return_exceptions=True,
        )
        seo: SEOAnalysis = self._settle("seo_analysis", seo_result, DEFAULT_SEO_ANALYSIS, degraded, url)
        performance: PerformanceMetrics = self._settle(
            "performance", performance_result, FALLBACK_UNEXPECTED, degraded, url
        )
        enhancement: ContentEnhancement = self._settle(
            "content_enhancement", enhancement_result, default_enhancement(snapshot), degraded, url
        )
        if performance.source != "measured" and "performance" not in degraded:
            degraded.append("performance")

        overall = calculate_overall_score(seo, performance, enhancement.content_quality_score)
        potential = estimate_potential_score(overall, seo, performance)

        result = AnalysisResult(
            url=url,
            product_info=ProductInfo(
                title=snapshot.title,
                product_type=snapshot.product_type,
                category=snapshot.category,
            ),
            overall_score=overall,
            potential_score=potential,
            percentile=calculate_percentile(overall.total),
            breakdown=AnalysisBreakdown(
                content=ContentSection(score=overall.breakdown.content, enhancement=enhancement),
                seo=SEOSection(score=overall.breakdown.seo, analysis=seo),
                performance=PerformanceSection(score=overall.breakdown.performance, metrics=performance),
                mobile=MobileSection(score=overall.breakdown.mobile, metrics=performance.mobile),
            ),
            recommendations=generate_recommendations(seo, performance, enhancement, overall, potential),
            scraped_data=ScrapedData(
                meta_title=snapshot.meta_title,
                meta_description=snapshot.meta_description,
                h1=snapshot.h1,
                images=snapshot.images,
                features=snapshot.features,
                has_schema=snapshot.schema_data is not None,
                technical_seo=snapshot.technical_seo,
            ),
            full_enhancement=enhancement,
            degraded=degraded,
        )
        self.logger.info(
            "analysis.done",
            url=url,
            overall_score=overall.total,
            potential_score=potential,
            degraded=degraded,
        )
        return result
