import math
from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from app.features.extraction.schemas.snapshot import ProductPageSnapshot
from app.platform.schemas import CamelModel, Text, TextList
from app.platform.utils.rounding import round_half_up

NOT_AVAILABLE = "Not available"
NO_FEATURES = "No features listed"
DEFAULT_QUALITY_SCORE = 50


class ProductFields(CamelModel):
    """Semantic product data read off the page by the text-generation pass."""

    model_config = ConfigDict(frozen=True)

    title: Text = ""
    description: Text = ""
    features: TextList = Field(default_factory=list)
    product_type: Text = ""
    category: Text = ""
    brand: Text = ""
    sku: Text = ""
    price: Text = ""
    original_price: Text = ""
    currency: Text = ""
    availability: Text = ""
    cta_text: Text = ""
    platform: Text = ""


class FieldEnhancement(CamelModel):
    current: Text = ""
    enhanced: Text = ""
    reasoning: Text = ""
    improvement: Text = ""


class FeaturesEnhancement(CamelModel):
    current: TextList = Field(default_factory=list)
    enhanced: TextList = Field(default_factory=list)
    reasoning: Text = ""
    improvement: Text = ""


class ContentSummary(CamelModel):
    overall_assessment: Text = ""
    strengths: TextList = Field(default_factory=list)
    weaknesses: TextList = Field(default_factory=list)
    priority_recommendations: TextList = Field(default_factory=list)


class ContentEnhancement(CamelModel):
    """
    Proposed rewrites for the four content fields plus a 0-100 quality score.

    Sub-objects the remote model leaves out are synthesized empty, never None.
    """

    summary: ContentSummary = Field(default_factory=ContentSummary)
    title: FieldEnhancement = Field(default_factory=FieldEnhancement)
    meta_description: FieldEnhancement = Field(default_factory=FieldEnhancement)
    description: FieldEnhancement = Field(default_factory=FieldEnhancement)
    features: FeaturesEnhancement = Field(default_factory=FeaturesEnhancement)
    content_quality_score: int = Field(default=DEFAULT_QUALITY_SCORE, ge=0, le=100)

    @field_validator("summary", "title", "meta_description", "description", "features", mode="before")
    @classmethod
    def _object_or_default(cls, value):
        return value if isinstance(value, dict) or isinstance(value, CamelModel) else {}

    @field_validator("content_quality_score", mode="before")
    @classmethod
    def _clamp_score(cls, value):
        if isinstance(value, bool):
            return DEFAULT_QUALITY_SCORE
        try:
            number = float(value)
        except (TypeError, ValueError, OverflowError):
            return DEFAULT_QUALITY_SCORE
        if not math.isfinite(number):
            return DEFAULT_QUALITY_SCORE
        return max(0, min(100, round_half_up(number)))

    def with_current(self, snapshot: ProductPageSnapshot) -> "ContentEnhancement":
        """Back-fill every empty ``current`` from the snapshot the caller already holds."""
        return self.model_copy(
            update={
                "title": _fill(self.title, snapshot.title or NOT_AVAILABLE),
                "meta_description": _fill(self.meta_description, snapshot.meta_description or NOT_AVAILABLE),
                "description": _fill(self.description, snapshot.description or NOT_AVAILABLE),
                "features": self.features
                if self.features.current
                else self.features.model_copy(update={"current": list(snapshot.features) or [NO_FEATURES]}),
            }
        )


def _fill(field: FieldEnhancement, current: str) -> FieldEnhancement:
    if field.current:
        return field
    return field.model_copy(update={"current": current})


def default_enhancement(snapshot: Optional[ProductPageSnapshot] = None) -> ContentEnhancement:
    """The single enhancement fallback: nothing proposed, current content echoed back."""
    enhancement = ContentEnhancement(
        summary=ContentSummary(
            overall_assessment="Content analysis is temporarily unavailable for this page.",
        ),
    )
    return enhancement.with_current(snapshot or ProductPageSnapshot())
