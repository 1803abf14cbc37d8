"""
Page performance measurement through the PageSpeed Insights API.

``fetch_performance_metrics`` never raises. A missing credential, failed
profiles or an internal error each map to one of the fallback constants in
``app.features.performance.schemas.performance``.
"""

import asyncio
import re
from typing import Any, Dict, List, Optional

import httpx

from app.features.performance.schemas.performance import (
    FALLBACK_NOT_CONFIGURED,
    FALLBACK_UNAVAILABLE,
    FALLBACK_UNEXPECTED,
    DeviceMetrics,
    ImageFormatItem,
    ImageMetrics,
    ImageOptimizationItem,
    PerformanceMetrics,
    SEOCategory,
)
from app.platform.config import Settings, settings as default_settings
from app.platform.error_handler import log_error
from app.platform.errors import PerformanceFetchError, RequestTimeoutError
from app.platform.logger import StructuredLogger, get_structured_logger
from app.platform.retry import RetryPolicy
from app.platform.utils.http import request_with_timeout
from app.platform.utils.rounding import round_half_up

STRATEGIES = ("mobile", "desktop")
RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
API_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]{20,}$")

MOBILE_WEIGHT = 0.6
DESKTOP_WEIGHT = 0.4

# (average performance score below, total size, unoptimized count, total count)
IMAGE_ESTIMATES = (
    (0.5, 3_000_000, 5, 8),
    (0.7, 1_500_000, 3, 5),
)
IMAGE_ESTIMATE_GOOD = (500_000, 0, 3)


def has_valid_credential(api_key: Optional[str]) -> bool:
    return bool(api_key) and bool(API_KEY_PATTERN.match(api_key))


def is_retryable_profile_error(error: BaseException) -> bool:
    """Retry throttling, gateway statuses, timeouts and dropped connections; nothing else."""
    if isinstance(error, PerformanceFetchError):
        return error.status_code in RETRYABLE_STATUSES
    return isinstance(error, (RequestTimeoutError, httpx.TransportError))


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _category_score(lighthouse: Dict[str, Any], category: str) -> Optional[float]:
    score = _as_dict(_as_dict(lighthouse.get("categories")).get(category)).get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return None
    return float(score)


def _to_percent(fraction: float) -> int:
    return max(0, min(100, round_half_up(fraction * 100)))


def _audit_value(audits: Dict[str, Any], key: str) -> float:
    return _number(_as_dict(audits.get(key)).get("numericValue"))


def device_metrics(lighthouse: Dict[str, Any]) -> DeviceMetrics:
    audits = _as_dict(lighthouse.get("audits"))
    return DeviceMetrics(
        score=_to_percent(_category_score(lighthouse, "performance") or 0),
        fcp=_audit_value(audits, "first-contentful-paint"),
        lcp=_audit_value(audits, "largest-contentful-paint"),
        ttfb=_audit_value(audits, "server-response-time"),
        load_time=_audit_value(audits, "load-time") or _audit_value(audits, "total-blocking-time"),
        speed_index=_audit_value(audits, "speed-index"),
    )


def seo_score(mobile: Dict[str, Any], desktop: Dict[str, Any]) -> int:
    """SEO category score from the mobile report, then desktop, else 0."""
    for lighthouse in (mobile, desktop):
        score = _category_score(lighthouse, "seo")
        if score is not None:
            return _to_percent(score)
    return 0


def _audit_items(mobile: Dict[str, Any], desktop: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    audit = _as_dict(mobile.get("audits")).get(key) or _as_dict(desktop.get("audits")).get(key)
    items = _as_dict(_as_dict(audit).get("details")).get("items")
    return [item for item in items if isinstance(item, dict)] if isinstance(items, list) else []


def _optional_int(value: Any) -> Optional[int]:
    return int(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else None


def image_metrics(mobile: Dict[str, Any], desktop: Dict[str, Any]) -> ImageMetrics:
    opportunities = [
        ImageOptimizationItem(
            url=item.get("url"),
            total_bytes=int(_number(item.get("totalBytes"))),
            wasted_bytes=int(_number(item.get("wastedBytes"))),
            format=item.get("mimeType"),
            width=_optional_int(item.get("width")),
            height=_optional_int(item.get("height")),
        )
        for item in _audit_items(mobile, desktop, "uses-optimized-images")
    ]
    formats = [
        ImageFormatItem(
            url=item.get("url"),
            wasted_bytes=int(_number(item.get("wastedBytes"))),
            format=item.get("mimeType"),
            webp_savings_bytes=_optional_int(item.get("webpSavingsBytes")),
            avif_savings_bytes=_optional_int(item.get("avifSavingsBytes")),
        )
        for item in _audit_items(mobile, desktop, "modern-image-formats")
    ]

    if not opportunities and not formats:
        return estimate_image_metrics(mobile, desktop)

    unoptimized = len(opportunities)
    return ImageMetrics(
        total_size=sum(item.total_bytes for item in opportunities),
        unoptimized_count=unoptimized,
        total_count=max(unoptimized, len(formats)),
        optimization_opportunities=opportunities,
        format_optimization=formats,
    )


def estimate_image_metrics(mobile: Dict[str, Any], desktop: Dict[str, Any]) -> ImageMetrics:
    """Size/count estimate keyed off the average performance score when no itemized data exists."""
    average = (
        (_category_score(mobile, "performance") or 0) + (_category_score(desktop, "performance") or 0)
    ) / 2
    for threshold, total_size, unoptimized, total in IMAGE_ESTIMATES:
        if average < threshold:
            return ImageMetrics(total_size=total_size, unoptimized_count=unoptimized, total_count=total)
    total_size, unoptimized, total = IMAGE_ESTIMATE_GOOD
    return ImageMetrics(total_size=total_size, unoptimized_count=unoptimized, total_count=total)


def combine_reports(mobile: Dict[str, Any], desktop: Dict[str, Any]) -> PerformanceMetrics:
    mobile_metrics = device_metrics(mobile)
    desktop_metrics = device_metrics(desktop)
    return PerformanceMetrics(
        desktop=desktop_metrics,
        mobile=mobile_metrics,
        images=image_metrics(mobile, desktop),
        seo=SEOCategory(score=seo_score(mobile, desktop)),
        overall_score=round_half_up(mobile_metrics.score * MOBILE_WEIGHT + desktop_metrics.score * DESKTOP_WEIGHT),
        source="measured",
    )


class PerformanceClient:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.settings = settings or default_settings
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy(
            max_retries=self.settings.PAGESPEED_MAX_RETRIES,
            base_delay=self.settings.PAGESPEED_RETRY_BASE_DELAY,
            max_delay=self.settings.PAGESPEED_RETRY_MAX_DELAY,
            is_transient=is_retryable_profile_error,
        )
        self.logger = logger or get_structured_logger(__name__)

    async def fetch_performance_metrics(self, url: str) -> PerformanceMetrics:
        api_key = self.settings.PAGESPEED_API_KEY
        if not has_valid_credential(api_key):
            self.logger.warning(
                "performance.not_configured",
                url=url,
                has_api_key=bool(api_key),
                api_key_length=len(api_key or ""),
            )
            return FALLBACK_NOT_CONFIGURED

        try:
            if self.client is not None:
                return await self._measure(self.client, url, api_key)
            async with httpx.AsyncClient() as client:
                return await self._measure(client, url, api_key)
        except Exception as e:
            log_error(e, "performance.unexpected", self.logger, url=url)
            return FALLBACK_UNEXPECTED

    async def _measure(self, client: httpx.AsyncClient, url: str, api_key: str) -> PerformanceMetrics:
        mobile, desktop = await asyncio.gather(
            *(self._fetch_profile(client, url, api_key, strategy) for strategy in STRATEGIES),
            return_exceptions=True,
        )

        failed = []
        for strategy, result in zip(STRATEGIES, (mobile, desktop)):
            if isinstance(result, BaseException):
                failed.append(strategy)
                log_error(result, "performance.profile_failed", self.logger, url=url, strategy=strategy)

        if len(failed) == len(STRATEGIES):
            return FALLBACK_UNAVAILABLE
        if "mobile" in failed:
            mobile = desktop
        elif "desktop" in failed:
            desktop = mobile
        if failed:
            self.logger.warning("performance.profile_duplicated", url=url, missing=failed[0])

        metrics = combine_reports(mobile, desktop)
        self.logger.info(
            "performance.done",
            url=url,
            overall_score=metrics.overall_score,
            mobile_score=metrics.mobile.score,
            desktop_score=metrics.desktop.score,
        )
        return metrics

    async def _fetch_profile(self, client: httpx.AsyncClient, url: str, api_key: str, strategy: str) -> Dict[str, Any]:
        return await self.retry_policy.run(
            lambda: self._request_profile(client, url, api_key, strategy),
            logger=self.logger,
            context=f"performance.retry.{strategy}",
        )

    async def _request_profile(self, client: httpx.AsyncClient, url: str, api_key: str, strategy: str) -> Dict[str, Any]:
        response = await request_with_timeout(
            client,
            "GET",
            self.settings.PAGESPEED_API_URL,
            self.settings.PAGESPEED_TIMEOUT,
            params=[
                ("url", url),
                ("strategy", strategy),
                ("category", "performance"),
                ("category", "seo"),
            ],
            headers={"X-Goog-Api-Key": api_key},
        )
        if not response.is_success:
            raise PerformanceFetchError(
                f"Performance service error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise PerformanceFetchError("Invalid performance analysis response: body is not JSON") from e

        lighthouse = _as_dict(data).get("lighthouseResult")
        if not isinstance(lighthouse, dict):
            raise PerformanceFetchError("Invalid performance analysis response: missing data")
        return lighthouse
