from bs4 import BeautifulSoup

from app.features.extraction.services.image_filter import (
    ImageContext,
    context_from_tag,
    image_dimensions,
    is_likely_product_image,
    matches_exclusion,
)


def _img(html):
    return BeautifulSoup(html, "html.parser").find("img")


class TestIsLikelyProductImage:
    def test_small_logo_svg_is_excluded(self):
        assert is_likely_product_image(ImageContext(src="/icons/logo.svg", width=40, height=40)) is False

    def test_large_descriptive_product_shot_is_included(self):
        image = ImageContext(
            src="/cdn/products/widget-front.jpg",
            alt="Blue ceramic widget, front view",
            width=800,
            height=800,
        )
        assert is_likely_product_image(image) is True

    def test_blocklisted_parent_class_excludes(self):
        assert is_likely_product_image(ImageContext(src="/img/x.jpg", parent_class="social-share")) is False

    def test_tiny_image_excluded_even_with_product_url(self):
        assert is_likely_product_image(ImageContext(src="/products/dot.png", width=1, height=1)) is False

    def test_data_uri_excluded(self):
        assert is_likely_product_image(ImageContext(src="data:image/png;base64,AAAA")) is False

    def test_product_container_includes(self):
        image = ImageContext(src="/x/1.webp", parent_class="product-gallery")
        assert is_likely_product_image(image) is True

    def test_medium_unlabelled_image_outside_product_context_excluded(self):
        assert is_likely_product_image(ImageContext(src="/x/1.webp", width=150, height=150)) is False

    def test_no_signal_defaults_to_include(self):
        assert is_likely_product_image(ImageContext(src="/x/1.webp")) is True


class TestMatchesExclusion:
    def test_short_patterns_need_whole_token(self):
        assert matches_exclusion("/uploads/shoes.jpg") is False
        assert matches_exclusion("/ad/shoes.jpg") is True
        assert matches_exclusion("main-nav") is True

    def test_long_patterns_match_substrings(self):
        assert matches_exclusion("/static/site-logo-dark.png") is True


class TestTagHelpers:
    def test_dimensions_from_attributes(self):
        assert image_dimensions(_img('<img src="a.jpg" width="640" height="480">')) == (640, 480)

    def test_dimensions_from_inline_style(self):
        assert image_dimensions(_img('<img src="a.jpg" style="width: 300px; height:200px">')) == (300, 200)

    def test_unknown_dimensions_are_zero(self):
        assert image_dimensions(_img('<img src="a.jpg">')) == (0, 0)

    def test_context_reads_parent(self):
        img = BeautifulSoup(
            '<div class="Product-Image" id="hero"><img src="a.jpg" alt=" Red shoe " class="main"></div>',
            "html.parser",
        ).find("img")
        context = context_from_tag(img, "a.jpg")
        assert context.alt == "Red shoe"
        assert context.img_class == "main"
        assert context.parent_class == "product-image"
        assert context.parent_id == "hero"
