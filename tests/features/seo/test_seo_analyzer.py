import pytest

from app.features.extraction.schemas.snapshot import ProductPageSnapshot
from app.features.seo.services.seo_analyzer import (
    analyze_seo,
    check_content_length,
    check_features,
    check_h1,
    check_meta_description,
    check_meta_title,
    normalize_score,
)

OPTIMAL = ProductPageSnapshot(
    url="https://shop.example.com/products/blue-widget",
    meta_title="Blue Widget - Waterproof Everyday Gadget | Shop",
    meta_description="x" * 155,
    h1="Blue Widget",
    h1_count=1,
    schema={"@type": "Product"},
    description="d" * 350,
    features=["One", "Two", "Three"],
)

EMPTY = ProductPageSnapshot(url="http://shop.example.com/p?id=7")


class TestAnalyzeSeo:
    def test_every_check_passing_scores_100(self):
        analysis = analyze_seo(OPTIMAL)

        assert sum(check.score for check in analysis.checks) == 85
        assert analysis.score == 100
        assert all(check.status == "pass" for check in analysis.checks)
        assert analysis.recommendations == []

    def test_well_formed_product_page_scores_100(self):
        snapshot = ProductPageSnapshot(
            url="https://shop.example.com/products/trail-runner",
            meta_title="t" * 45,
            meta_description="m" * 140,
            h1="Trail Runner",
            h1_count=1,
            schema={"@type": "Product", "name": "Trail Runner"},
            description="d" * 600,
            features=["Grippy sole", "Breathable mesh", "Cushioned", "Lightweight", "Vegan"],
        )

        analysis = analyze_seo(snapshot)

        assert [check.score for check in analysis.checks] == [10, 10, 10, 15, 10, 10, 10, 10]
        assert sum(check.score for check in analysis.checks) == 85
        assert analysis.score == 100

    def test_checks_run_in_fixed_order(self):
        names = [check.name for check in analyze_seo(OPTIMAL).checks]
        assert names == [
            "Meta Title",
            "Meta Description",
            "H1 Tag",
            "Product Schema",
            "HTTPS",
            "URL Structure",
            "Content Length",
            "Key Features",
        ]

    def test_empty_page(self):
        analysis = analyze_seo(EMPTY)

        # only the URL warning (5) and the missing-features warning (3) earn points
        assert analysis.score == 9
        assert analysis.recommendations == [
            "Critical: Meta title is missing",
            "Critical: Meta description is missing",
            "Critical: H1 tag is missing",
            "Critical: Product schema markup not detected",
            "Critical: Page is not using HTTPS",
            "Critical: Product description is missing or could not be extracted",
            "High: No key features or bullet points found",
        ]

    def test_open_issues_by_priority(self):
        analysis = analyze_seo(EMPTY)

        assert len(analysis.open_issues("critical")) == 6
        assert [check.name for check in analysis.open_issues("medium")] == ["URL Structure"]

    def test_is_deterministic(self):
        assert analyze_seo(OPTIMAL) == analyze_seo(OPTIMAL)

    def test_serializes_camel_case(self):
        payload = analyze_seo(EMPTY).to_json_dict()
        assert payload["score"] == 9
        assert set(payload["checks"][0]) == {"name", "status", "message", "priority", "score"}


class TestIndividualChecks:
    @pytest.mark.parametrize(
        "title,status,score",
        [
            ("", "fail", 0),
            ("Short title", "warning", 5),
            ("t" * 45, "pass", 10),
            ("t" * 61, "warning", 7),
        ],
    )
    def test_meta_title(self, title, status, score):
        result = check_meta_title(ProductPageSnapshot(meta_title=title))
        assert (result.status, result.score) == (status, score)

    def test_meta_title_message_reports_length(self):
        assert check_meta_title(ProductPageSnapshot(meta_title="Short title")).message == (
            "Meta title is too short (11 chars, aim for 50-60)"
        )

    @pytest.mark.parametrize(
        "length,status,priority,score",
        [(0, "fail", "critical", 0), (80, "warning", "high", 5), (150, "pass", "low", 10), (200, "warning", "medium", 7)],
    )
    def test_meta_description(self, length, status, priority, score):
        result = check_meta_description(ProductPageSnapshot(meta_description="m" * length))
        assert (result.status, result.priority, result.score) == (status, priority, score)

    def test_multiple_h1(self):
        result = check_h1(ProductPageSnapshot(h1="Blue Widget", h1_count=3))
        assert result.status == "warning"
        assert result.message == "Multiple H1 tags found (3), should have only one"

    def test_content_length_bands(self):
        assert check_content_length(ProductPageSnapshot(description="d" * 150)).priority == "high"
        assert "adequate" in check_content_length(ProductPageSnapshot(description="d" * 300)).message
        assert "comprehensive" in check_content_length(ProductPageSnapshot(description="d" * 600)).message

    def test_features_bands(self):
        assert check_features(ProductPageSnapshot(features=["a", "b"])).score == 6
        assert check_features(ProductPageSnapshot(features=["a", "b"])).message == "Only 2 feature(s) found, aim for 5-7"
        assert check_features(ProductPageSnapshot(features=["a", "b", "c"])).message == "3 key features found"


def test_normalize_score_rounds_half_up_and_clamps():
    assert normalize_score(85) == 100
    assert normalize_score(0) == 0
    assert normalize_score(8) == 9
    assert normalize_score(200) == 100
