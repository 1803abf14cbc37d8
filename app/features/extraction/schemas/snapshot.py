from typing import Any, Dict, List, Literal, Optional

from pydantic import ConfigDict, Field

from app.platform.schemas import CamelModel, Text, TextList


class ProductImage(CamelModel):
    model_config = ConfigDict(frozen=True)

    src: Text = ""
    alt: Text = ""


class SocialTags(CamelModel):
    """Open Graph / Twitter Card title, description and image, verbatim."""

    model_config = ConfigDict(frozen=True)

    title: Text = ""
    description: Text = ""
    image: Text = ""


class TechnicalSEOData(CamelModel):
    """Signals extracted deterministically from the page HTML."""

    model_config = ConfigDict(frozen=True)

    meta_title: Text = ""
    meta_description: Text = ""
    h1: Text = ""
    h1_count: int = Field(default=0, ge=0)
    h2_tags: TextList = Field(default_factory=list, max_length=20)
    images: List[ProductImage] = Field(default_factory=list)
    schema_data: Optional[Dict[str, Any]] = Field(default=None, alias="schema")
    canonical_url: Text = ""
    og_tags: SocialTags = Field(default_factory=SocialTags)
    twitter_tags: SocialTags = Field(default_factory=SocialTags)
    breadcrumbs: TextList = Field(default_factory=list)
    has_canonical: bool = False
    url_structure: Literal["clean", "needs-improvement"] = "needs-improvement"


class ProductPageSnapshot(CamelModel):
    """
    Immutable view of one product page at one instant.

    Built once per request from the HTML pass (structural facts) and the
    text-generation pass (semantic content), never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    url: Text = ""
    title: Text = ""
    description: Text = ""
    meta_title: Text = ""
    meta_description: Text = ""
    h1: Text = ""
    h1_count: int = Field(default=0, ge=0)
    features: TextList = Field(default_factory=list)
    images: List[ProductImage] = Field(default_factory=list)
    price: Text = ""
    schema_data: Optional[Dict[str, Any]] = Field(default=None, alias="schema")
    product_type: Text = ""
    category: Text = ""
    cta_text: Text = ""
    brand: Text = ""
    sku: Text = ""
    availability: Text = ""
    technical_seo: TechnicalSEOData = Field(default_factory=TechnicalSEOData, alias="technicalSEO")


DEFAULT_PRODUCT_TYPE = "Product"
DEFAULT_CTA_TEXT = "Add to Cart"
DEFAULT_AVAILABILITY = "In Stock"


def default_snapshot(url: str, technical: Optional[TechnicalSEOData] = None) -> ProductPageSnapshot:
    """The single minimal-scrape fallback, used whenever extraction comes back empty-handed."""
    technical = technical or TechnicalSEOData()
    return ProductPageSnapshot(
        url=url,
        title=technical.h1,
        description=technical.meta_description,
        meta_title=technical.meta_title,
        meta_description=technical.meta_description,
        h1=technical.h1,
        h1_count=technical.h1_count,
        images=technical.images,
        schema=technical.schema_data,
        product_type=DEFAULT_PRODUCT_TYPE,
        cta_text=DEFAULT_CTA_TEXT,
        availability=DEFAULT_AVAILABILITY,
        technical_seo=technical,
    )
