from typing import Optional

from app.features.content.schemas.content import ProductFields
from app.features.extraction.schemas.snapshot import (
    DEFAULT_AVAILABILITY,
    DEFAULT_CTA_TEXT,
    DEFAULT_PRODUCT_TYPE,
    ProductPageSnapshot,
    TechnicalSEOData,
)
from app.platform.logger import StructuredLogger, get_structured_logger

SHORT_DESCRIPTION = 200


class SnapshotBuilder:
    """
    Merges the HTML pass and the text-generation pass into one snapshot.

    HTML wins for structural facts (meta tags, H1, images, structured data);
    the text-generation pass wins for semantic content.
    """

    def __init__(self, logger: Optional[StructuredLogger] = None):
        self.logger = logger or get_structured_logger(__name__)

    def build(
        self,
        url: str,
        technical: Optional[TechnicalSEOData],
        product: Optional[ProductFields],
    ) -> ProductPageSnapshot:
        technical = technical or TechnicalSEOData()
        product = product or ProductFields()

        description = product.description
        if not description:
            self.logger.warning(
                "snapshot.empty_description",
                url=url,
                has_title=bool(product.title),
                has_meta_description=bool(technical.meta_description),
                feature_count=len(product.features),
            )
            description = technical.meta_description
        elif len(description) < SHORT_DESCRIPTION:
            self.logger.warning("snapshot.short_description", url=url, description_length=len(description))

        return ProductPageSnapshot(
            url=url,
            meta_title=technical.meta_title or product.title,
            meta_description=technical.meta_description,
            h1=technical.h1 or product.title,
            h1_count=technical.h1_count,
            images=technical.images,
            schema=technical.schema_data,
            title=product.title or technical.h1,
            description=description,
            features=product.features,
            price=product.price,
            product_type=product.product_type or DEFAULT_PRODUCT_TYPE,
            category=product.category,
            cta_text=product.cta_text or DEFAULT_CTA_TEXT,
            brand=product.brand,
            sku=product.sku,
            availability=product.availability or DEFAULT_AVAILABILITY,
            technical_seo=technical,
        )
