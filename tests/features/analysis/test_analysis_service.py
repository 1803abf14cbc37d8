from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from app.features.analysis.services.analysis_service import AnalysisService
from app.features.content.schemas.content import ContentEnhancement, ProductFields
from app.features.extraction.services.extractor_service import PageFetcher
from app.features.performance.schemas.performance import (
    FALLBACK_NOT_CONFIGURED,
    FALLBACK_UNEXPECTED,
    DeviceMetrics,
    PerformanceMetrics,
)
from app.features.seo.schemas.seo import DEFAULT_SEO_ANALYSIS
from app.platform.errors import FetchError, RemoteJobTimeout, UnparsableResponse
from app.platform.retry import RetryPolicy

URL = "https://shop.example.com/products/blue-widget"

HTML = """
<html><head>
  <title>Blue Widget - Waterproof Everyday Gadget | Shop</title>
  <meta name="description" content="Buy the blue widget.">
  <script type="application/ld+json">{"@type": "Product", "name": "Blue Widget"}</script>
</head><body><h1>Blue Widget</h1></body></html>
"""

PRODUCT = ProductFields(
    title="Blue Widget",
    description="A sturdy blue widget. " * 15,
    features=["Waterproof", "Light", "Blue"],
    category="Widgets",
)

MEASURED = PerformanceMetrics(
    mobile=DeviceMetrics(score=60),
    desktop=DeviceMetrics(score=80),
    overall_score=68,
    source="measured",
)

ENHANCEMENT = ContentEnhancement.model_validate(
    {"title": {"current": "Blue Widget", "enhanced": "Blue Widget | Waterproof"}, "contentQualityScore": 70}
)


async def no_sleep(_delay):
    return None


def html_fetcher(status=200, body=HTML):
    transport = httpx.MockTransport(lambda request: httpx.Response(status, text=body))
    return PageFetcher(client=httpx.AsyncClient(transport=transport))


def make_service(test_settings, fetcher=None, product=PRODUCT, enhancement=ENHANCEMENT, performance=MEASURED):
    content_service = MagicMock()
    content_service.extract_product_data = AsyncMock(
        side_effect=product if isinstance(product, Exception) else None,
        return_value=None if isinstance(product, Exception) else product,
    )
    content_service.enhance_content = AsyncMock(
        side_effect=enhancement if isinstance(enhancement, Exception) else None,
        return_value=None if isinstance(enhancement, Exception) else enhancement,
    )
    performance_client = MagicMock()
    performance_client.fetch_performance_metrics = AsyncMock(
        side_effect=performance if isinstance(performance, Exception) else None,
        return_value=None if isinstance(performance, Exception) else performance,
    )
    return AnalysisService(
        settings=test_settings,
        fetcher=fetcher or html_fetcher(),
        content_service=content_service,
        performance_client=performance_client,
        fetch_retry_policy=RetryPolicy(max_retries=1, base_delay=0, max_delay=0, sleep=no_sleep),
        logger=MagicMock(),
    )


class TestAnalysisService:
    @pytest.mark.asyncio
    async def test_full_analysis(self, test_settings):
        service = make_service(test_settings)

        result = await service.analyze(URL)

        assert result.success is True
        assert result.degraded == []
        assert result.product_info.title == "Blue Widget"
        assert result.product_info.product_type == "Product"
        assert result.scraped_data.has_schema is True
        assert result.scraped_data.meta_description == "Buy the blue widget."
        assert result.breakdown.content.score == 70
        assert result.breakdown.performance.score == 68
        assert result.breakdown.mobile.score == 60
        assert result.breakdown.seo.score == result.breakdown.seo.analysis.score
        assert result.potential_score >= result.overall_score.total
        assert result.full_enhancement == ENHANCEMENT

        enhance_args = service.content_service.enhance_content.call_args[0]
        assert enhance_args[0].meta_title == "Blue Widget - Waterproof Everyday Gadget | Shop"
        assert enhance_args[2].h1 == "Blue Widget"

    @pytest.mark.asyncio
    async def test_serializes_to_camel_case(self, test_settings):
        payload = (await make_service(test_settings).analyze(URL)).to_json_dict()

        assert {"overallScore", "potentialScore", "percentile", "breakdown", "recommendations",
                "scrapedData", "fullEnhancement", "productInfo"} <= set(payload)
        assert payload["scrapedData"]["technicalSEO"]["h1"] == "Blue Widget"
        assert payload["breakdown"]["content"]["enhancement"]["contentQualityScore"] == 70

    @pytest.mark.asyncio
    async def test_page_fetch_failure_degrades_to_product_data(self, test_settings):
        service = make_service(test_settings, fetcher=html_fetcher(status=404))

        result = await service.analyze(URL)

        assert result.degraded == ["technical_seo"]
        assert result.scraped_data.h1 == "Blue Widget"
        assert result.scraped_data.has_schema is False
        assert service.content_service.extract_product_data.call_args[0][1] is None

    @pytest.mark.asyncio
    async def test_product_data_failure_degrades_to_html(self, test_settings):
        service = make_service(test_settings, product=UnparsableResponse("no json"))

        result = await service.analyze(URL)

        assert result.degraded == ["product_data"]
        assert result.product_info.title == "Blue Widget"
        assert result.scraped_data.features == []

    @pytest.mark.asyncio
    async def test_both_extractions_failing_raises_fetch_error(self, test_settings):
        service = make_service(
            test_settings,
            fetcher=html_fetcher(status=500),
            product=RemoteJobTimeout("Prediction timed out"),
        )

        with pytest.raises(FetchError):
            await service.analyze(URL)

    @pytest.mark.asyncio
    async def test_transient_page_fetch_is_retried_once(self, test_settings):
        responses = [httpx.Response(503), httpx.Response(200, text=HTML)]
        transport = httpx.MockTransport(lambda request: responses.pop(0))
        fetcher = PageFetcher(client=httpx.AsyncClient(transport=transport))
        service = make_service(test_settings, fetcher=fetcher)

        result = await service.analyze(URL)

        assert result.degraded == []
        assert responses == []

    @pytest.mark.asyncio
    async def test_enhancement_failure_uses_default(self, test_settings):
        service = make_service(test_settings, enhancement=RemoteJobTimeout("Prediction timed out"))

        result = await service.analyze(URL)

        assert result.degraded == ["content_enhancement"]
        assert result.full_enhancement.content_quality_score == 50
        assert result.full_enhancement.title.current == "Blue Widget"

    @pytest.mark.asyncio
    async def test_performance_fallback_is_reported(self, test_settings):
        service = make_service(test_settings, performance=FALLBACK_NOT_CONFIGURED)

        result = await service.analyze(URL)

        assert result.degraded == ["performance"]
        assert result.breakdown.performance.metrics.source == "not_configured"

    @pytest.mark.asyncio
    async def test_performance_exception_uses_unexpected_fallback(self, test_settings):
        service = make_service(test_settings, performance=RuntimeError("boom"))

        result = await service.analyze(URL)

        assert result.degraded == ["performance"]
        assert result.breakdown.performance.metrics == FALLBACK_UNEXPECTED

    @pytest.mark.asyncio
    async def test_seo_failure_uses_default(self, test_settings, monkeypatch):
        service = make_service(test_settings)
        monkeypatch.setattr(service, "_analyze_seo", AsyncMock(side_effect=ValueError("broken check")))

        result = await service.analyze(URL)

        assert result.degraded == ["seo_analysis"]
        assert result.breakdown.seo.analysis == DEFAULT_SEO_ANALYSIS
        assert all(item.impact != "+15 SEO points" for item in result.recommendations.priority)
