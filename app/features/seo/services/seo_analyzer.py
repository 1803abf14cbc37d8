"""
Rule-based technical SEO checks for a product page snapshot.

Pure and deterministic: eight checks, 85 raw points at most, normalized to
a 0-100 score.
"""

from typing import Callable, List, Tuple

from app.features.extraction.schemas.snapshot import ProductPageSnapshot
from app.features.extraction.services.extractor_service import is_clean_url
from app.features.seo.schemas.seo import SEOAnalysis, SEOCheckResult
from app.platform.utils.rounding import round_half_up

MAX_RAW_SCORE = 85
TARGET_SCALE = 100


def _check(name: str, status: str, message: str, priority: str, score: int) -> SEOCheckResult:
    return SEOCheckResult(name=name, status=status, message=message, priority=priority, score=score)


def check_meta_title(snapshot: ProductPageSnapshot) -> SEOCheckResult:
    name = "Meta Title"
    length = len(snapshot.meta_title)
    if not snapshot.meta_title.strip():
        return _check(name, "fail", "Meta title is missing", "critical", 0)
    if length < 30:
        return _check(name, "warning", f"Meta title is too short ({length} chars, aim for 50-60)", "high", 5)
    if length > 60:
        return _check(name, "warning", f"Meta title is too long ({length} chars, aim for 50-60)", "medium", 7)
    return _check(name, "pass", f"Meta title is optimal ({length} chars)", "low", 10)


def check_meta_description(snapshot: ProductPageSnapshot) -> SEOCheckResult:
    name = "Meta Description"
    length = len(snapshot.meta_description)
    if not snapshot.meta_description.strip():
        return _check(name, "fail", "Meta description is missing", "critical", 0)
    if length < 120:
        return _check(name, "warning", f"Meta description is too short ({length} chars, aim for 150-160)", "high", 5)
    if length > 160:
        return _check(
            name, "warning", f"Meta description may be truncated ({length} chars, aim for 150-160)", "medium", 7
        )
    return _check(name, "pass", f"Meta description is optimal ({length} chars)", "low", 10)


def check_h1(snapshot: ProductPageSnapshot) -> SEOCheckResult:
    name = "H1 Tag"
    if not snapshot.h1.strip():
        return _check(name, "fail", "H1 tag is missing", "critical", 0)
    if snapshot.h1_count > 1:
        return _check(
            name, "warning", f"Multiple H1 tags found ({snapshot.h1_count}), should have only one", "high", 5
        )
    return _check(name, "pass", "Single, well-structured H1 tag found", "low", 10)


def check_product_schema(snapshot: ProductPageSnapshot) -> SEOCheckResult:
    name = "Product Schema"
    if not snapshot.schema_data:
        return _check(name, "fail", "Product schema markup not detected", "critical", 0)
    return _check(name, "pass", "Product schema markup detected", "low", 15)


def check_https(snapshot: ProductPageSnapshot) -> SEOCheckResult:
    name = "HTTPS"
    if not snapshot.url.lower().startswith("https://"):
        return _check(name, "fail", "Page is not using HTTPS", "critical", 0)
    return _check(name, "pass", "HTTPS enabled and valid", "low", 10)


def check_url_structure(snapshot: ProductPageSnapshot) -> SEOCheckResult:
    name = "URL Structure"
    if not is_clean_url(snapshot.url):
        return _check(name, "warning", "URL contains query parameters or special characters", "medium", 5)
    return _check(name, "pass", "Clean, descriptive URL structure", "low", 10)


def check_content_length(snapshot: ProductPageSnapshot) -> SEOCheckResult:
    name = "Content Length"
    length = len(snapshot.description.strip())
    if length == 0:
        return _check(name, "fail", "Product description is missing or could not be extracted", "critical", 0)
    if length < 200:
        return _check(name, "warning", f"Product description is too short ({length} chars, aim for 300+)", "high", 5)
    if length < 500:
        return _check(name, "pass", f"Product description length is adequate ({length} chars)", "low", 10)
    return _check(name, "pass", f"Product description is comprehensive ({length} chars)", "low", 10)


def check_features(snapshot: ProductPageSnapshot) -> SEOCheckResult:
    name = "Key Features"
    count = len(snapshot.features)
    if count == 0:
        return _check(name, "warning", "No key features or bullet points found", "high", 3)
    if count < 3:
        return _check(name, "warning", f"Only {count} feature(s) found, aim for 5-7", "medium", 6)
    return _check(name, "pass", f"{count} key features found", "low", 10)


CHECKS: Tuple[Callable[[ProductPageSnapshot], SEOCheckResult], ...] = (
    check_meta_title,
    check_meta_description,
    check_h1,
    check_product_schema,
    check_https,
    check_url_structure,
    check_content_length,
    check_features,
)


def normalize_score(raw: int) -> int:
    return max(0, min(TARGET_SCALE, round_half_up(raw / MAX_RAW_SCORE * TARGET_SCALE)))


def build_recommendations(checks: List[SEOCheckResult]) -> List[str]:
    critical = [f"Critical: {c.message}" for c in checks if c.priority == "critical" and c.is_open_issue]
    high = [f"High: {c.message}" for c in checks if c.priority == "high" and c.is_open_issue]
    return critical + high


def analyze_seo(snapshot: ProductPageSnapshot) -> SEOAnalysis:
    checks = [check(snapshot) for check in CHECKS]
    return SEOAnalysis(
        score=normalize_score(sum(check.score for check in checks)),
        checks=checks,
        recommendations=build_recommendations(checks),
    )
