from typing import Any, Dict, Optional

from app.features.content.schemas.content import ContentEnhancement, ProductFields
from app.features.content.services.prompts import (
    ENHANCE_SYSTEM_PROMPT,
    EXTRACT_SYSTEM_PROMPT,
    build_enhance_prompt,
    build_extract_prompt,
)
from app.features.content.services.text_generation_client import GenerationRequest, TextGenerationClient
from app.features.extraction.schemas.snapshot import ProductPageSnapshot, TechnicalSEOData
from app.platform.config import Settings, settings as default_settings
from app.platform.error_handler import log_error
from app.platform.errors import UnparsableResponse
from app.platform.logger import StructuredLogger, get_structured_logger
from app.platform.utils.json_repair import parse_robust

REQUIRED_ENHANCEMENT_KEYS = ("summary", "title", "description")


class ContentService:
    """
    Product data extraction and content enhancement on top of the text-generation client.

    A response that cannot be parsed into a JSON object fails the call. Missing
    sub-objects inside an otherwise valid enhancement are synthesized instead.
    """

    def __init__(
        self,
        client: Optional[TextGenerationClient] = None,
        settings: Optional[Settings] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.settings = settings or default_settings
        self.logger = logger or get_structured_logger(__name__)
        self.client = client or TextGenerationClient(settings=self.settings, logger=self.logger)

    def _parse_object(self, response: str, context: str) -> Dict[str, Any]:
        try:
            data = parse_robust(response)
            if not isinstance(data, dict):
                raise UnparsableResponse(
                    f"Response is not a JSON object (got {type(data).__name__})"
                )
        except UnparsableResponse as e:
            log_error(
                e,
                context,
                self.logger,
                response_length=len(response),
                response_preview=response[:500],
            )
            raise
        return data

    async def extract_product_data(self, url: str, technical: Optional[TechnicalSEOData] = None) -> ProductFields:
        """
        Read the product's semantic fields off the page.

        Raises:
            UnparsableResponse: if the response holds no JSON object.
            Any error raised by ``TextGenerationClient.generate``.
        """
        response = await self.client.generate(
            GenerationRequest(
                prompt=build_extract_prompt(url, technical),
                system_prompt=EXTRACT_SYSTEM_PROMPT,
                max_tokens=self.settings.LLM_EXTRACT_MAX_TOKENS,
                json_mode=True,
            )
        )
        fields = ProductFields.model_validate(self._parse_object(response, "content.extract_parse"))
        self.logger.info(
            "content.extracted",
            url=url,
            has_title=bool(fields.title),
            description_length=len(fields.description),
            feature_count=len(fields.features),
        )
        return fields

    async def enhance_content(
        self,
        snapshot: ProductPageSnapshot,
        url: str,
        technical: Optional[TechnicalSEOData] = None,
    ) -> ContentEnhancement:
        """Propose rewrites for title, meta description, description and features."""
        response = await self.client.generate(
            GenerationRequest(
                prompt=build_enhance_prompt(snapshot, url, technical),
                system_prompt=ENHANCE_SYSTEM_PROMPT,
                max_tokens=self.settings.LLM_ENHANCE_MAX_TOKENS,
                json_mode=True,
            )
        )
        data = self._parse_object(response, "content.enhance_parse")

        missing = [key for key in REQUIRED_ENHANCEMENT_KEYS if not isinstance(data.get(key), dict)]
        if missing:
            self.logger.warning("content.enhance_partial", url=url, missing=missing)

        enhancement = ContentEnhancement.model_validate(data).with_current(snapshot)
        self.logger.info("content.enhanced", url=url, content_quality_score=enhancement.content_quality_score)
        return enhancement
