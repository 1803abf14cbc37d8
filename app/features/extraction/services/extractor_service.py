import json
import re
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup, Tag

from app.features.extraction.schemas.snapshot import ProductImage, SocialTags, TechnicalSEOData
from app.features.extraction.services.image_filter import context_from_tag, is_likely_product_image
from app.platform.config import Settings, settings as default_settings
from app.platform.errors import FetchError, ParseError
from app.platform.logger import StructuredLogger, get_structured_logger
from app.platform.utils.http import request_with_timeout

CLEAN_PATH = re.compile(r"^/[a-z0-9\-/]+$", re.IGNORECASE)

LAZY_SRC_ATTRIBUTES = ("src", "data-src", "data-lazy-src", "data-original")

BREADCRUMB_SELECTOR = 'nav[aria-label*="breadcrumb" i] a, ol.breadcrumb a, .breadcrumb a'


def is_clean_url(url: str) -> bool:
    """A URL is clean when its path is lowercase-ish words and dashes with no query string."""
    parsed = urlparse(url)
    return bool(CLEAN_PATH.match(parsed.path)) and not parsed.query


class PageFetcher:
    """Plain HTTP GET of the target page with a browser-like identity."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.settings = settings or default_settings
        self.client = client
        self.logger = logger or get_structured_logger(__name__)

    def _headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.settings.PAGE_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Upgrade-Insecure-Requests": "1",
        }

    async def fetch(self, url: str) -> str:
        if self.client is not None:
            return await self._fetch(self.client, url)
        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await self._fetch(client, url)

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> str:
        self.logger.info("page_fetch.start", url=url, url_length=len(url))
        try:
            response = await request_with_timeout(
                client, "GET", url, self.settings.PAGE_FETCH_TIMEOUT, headers=self._headers()
            )
        except httpx.TransportError as e:
            raise FetchError(f"Connection error while fetching page: {e}") from e

        if not response.is_success:
            raise FetchError(
                f"Failed to fetch page: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        html = response.text
        self.logger.info("page_fetch.done", url=url, html_length=len(html))
        return html


class ExtractorService:
    """Deterministic extraction of technical SEO signals from raw HTML."""

    H2_LIMIT = 20
    SHORT_BODY_TEXT = 100

    @staticmethod
    def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
        tag = soup.find("meta", attrs=attrs)
        if tag is None:
            return ""
        return (tag.get("content") or "").strip()

    @staticmethod
    def _extract_title(soup: BeautifulSoup) -> str:
        title = soup.find("title")
        return title.get_text(strip=True) if title else ""

    @staticmethod
    def _extract_description(soup: BeautifulSoup) -> str:
        return (
            ExtractorService._meta_content(soup, name="description")
            or ExtractorService._meta_content(soup, property="og:description")
        )

    @staticmethod
    def extract_headings(soup: BeautifulSoup) -> Dict[str, List[str]]:
        return {
            "h1": [h.get_text(strip=True) for h in soup.find_all("h1")],
            "h2": [h.get_text(strip=True) for h in soup.find_all("h2")][: ExtractorService.H2_LIMIT],
        }

    @staticmethod
    def _resolve_src(src: str, page_url: str) -> str:
        if src.startswith("//"):
            return f"{urlparse(page_url).scheme}:{src}"
        if src.startswith("http"):
            return src
        return urljoin(page_url, src)

    @staticmethod
    def extract_images(soup: BeautifulSoup, page_url: str, logger: Optional[StructuredLogger] = None) -> List[ProductImage]:
        images: List[ProductImage] = []
        for img in soup.find_all("img"):
            src = next((img.get(attr).strip() for attr in LAZY_SRC_ATTRIBUTES if (img.get(attr) or "").strip()), "")
            if not src:
                continue
            try:
                absolute_src = ExtractorService._resolve_src(src, page_url)
            except ValueError as e:
                if logger:
                    logger.warning("extractor.image_url", src=src[:100], error=str(e))
                continue
            if is_likely_product_image(context_from_tag(img, src)):
                images.append(ProductImage(src=absolute_src, alt=(img.get("alt") or "").strip()))
        return images

    @staticmethod
    def _json_ld_documents(soup: BeautifulSoup, logger: Optional[StructuredLogger] = None) -> Iterator[Any]:
        for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
            raw = script.string or script.get_text()
            if not raw or not raw.strip():
                continue
            try:
                yield json.loads(raw)
            except json.JSONDecodeError as e:
                if logger:
                    logger.warning("extractor.json_ld", error=str(e), excerpt=raw[:200])

    @staticmethod
    def _has_type(node: Any, schema_type: str) -> bool:
        if not isinstance(node, dict):
            return False
        declared = node.get("@type")
        if isinstance(declared, list):
            return schema_type in declared
        return declared == schema_type

    @staticmethod
    def find_schema_node(documents: List[Any], schema_type: str) -> Optional[Dict[str, Any]]:
        """First node of ``schema_type`` across top-level, array and ``@graph`` shapes."""
        for document in documents:
            if ExtractorService._has_type(document, schema_type):
                return document
            candidates: List[Any] = []
            if isinstance(document, list):
                candidates = document
            elif isinstance(document, dict) and isinstance(document.get("@graph"), list):
                candidates = document["@graph"]
            for node in candidates:
                if ExtractorService._has_type(node, schema_type):
                    return node
        return None

    @staticmethod
    def _breadcrumbs_from_schema(node: Optional[Dict[str, Any]]) -> List[str]:
        if not node or not isinstance(node.get("itemListElement"), list):
            return []
        names: List[str] = []
        for entry in node["itemListElement"]:
            if not isinstance(entry, dict):
                continue
            item = entry.get("item")
            name = item.get("name") if isinstance(item, dict) else None
            name = name or entry.get("name")
            if isinstance(name, str) and name.strip():
                names.append(name.strip())
        return names

    @staticmethod
    def extract_breadcrumbs(soup: BeautifulSoup, documents: List[Any]) -> List[str]:
        crumbs = ExtractorService._breadcrumbs_from_schema(
            ExtractorService.find_schema_node(documents, "BreadcrumbList")
        )
        if crumbs:
            return crumbs
        return [a.get_text(strip=True) for a in soup.select(BREADCRUMB_SELECTOR) if a.get_text(strip=True)]

    @staticmethod
    def _extract_open_graph(soup: BeautifulSoup) -> SocialTags:
        return SocialTags(
            title=ExtractorService._meta_content(soup, property="og:title"),
            description=ExtractorService._meta_content(soup, property="og:description"),
            image=ExtractorService._meta_content(soup, property="og:image"),
        )

    @staticmethod
    def _extract_twitter(soup: BeautifulSoup) -> SocialTags:
        def twitter(field: str) -> str:
            key = f"twitter:{field}"
            return (
                ExtractorService._meta_content(soup, name=key)
                or ExtractorService._meta_content(soup, property=key)
            )

        return SocialTags(title=twitter("title"), description=twitter("description"), image=twitter("image"))

    @staticmethod
    def _extract_canonical_url(soup: BeautifulSoup) -> str:
        link = soup.find("link", rel="canonical")
        return (link.get("href") or "").strip() if link else ""

    @staticmethod
    def parse_technical_seo(
        url: str,
        html: str,
        logger: Optional[StructuredLogger] = None,
    ) -> TechnicalSEOData:
        """
        Parse the page once and pull every technical SEO signal from it.

        Raises:
            ParseError: if the document is empty or cannot be parsed.
        """
        if not html or not html.strip():
            raise ParseError("Failed to parse page: document is empty")
        try:
            soup = BeautifulSoup(html, "html.parser")
        except Exception as e:
            raise ParseError(f"Failed to parse page: {e}") from e

        body = soup.find("body")
        body_text = body.get_text(strip=True) if isinstance(body, Tag) else ""
        if logger and len(body_text) < ExtractorService.SHORT_BODY_TEXT:
            logger.warning("extractor.short_body", url=url, body_text_length=len(body_text))

        headings = ExtractorService.extract_headings(soup)
        documents = list(ExtractorService._json_ld_documents(soup, logger))
        canonical_url = ExtractorService._extract_canonical_url(soup)

        return TechnicalSEOData(
            meta_title=ExtractorService._extract_title(soup),
            meta_description=ExtractorService._extract_description(soup),
            h1=headings["h1"][0] if headings["h1"] else "",
            h1_count=len(headings["h1"]),
            h2_tags=headings["h2"],
            images=ExtractorService.extract_images(soup, url, logger),
            schema=ExtractorService.find_schema_node(documents, "Product"),
            canonical_url=canonical_url,
            og_tags=ExtractorService._extract_open_graph(soup),
            twitter_tags=ExtractorService._extract_twitter(soup),
            breadcrumbs=ExtractorService.extract_breadcrumbs(soup, documents),
            has_canonical=bool(canonical_url),
            url_structure="clean" if is_clean_url(url) else "needs-improvement",
        )


async def extract_technical_seo(
    url: str,
    fetcher: Optional[PageFetcher] = None,
    logger: Optional[StructuredLogger] = None,
) -> TechnicalSEOData:
    """
    Fetch ``url`` and extract its technical SEO signals. No retries at this layer.

    Raises:
        FetchError: the page could not be retrieved.
        RequestTimeoutError: the page did not answer within the fetch timeout.
        ParseError: the document could not be parsed.
    """
    logger = logger or get_structured_logger(__name__)
    fetcher = fetcher or PageFetcher(logger=logger)
    html = await fetcher.fetch(url)
    data = ExtractorService.parse_technical_seo(url, html, logger)
    logger.info(
        "extractor.done",
        url=url,
        h1_count=data.h1_count,
        image_count=len(data.images),
        has_schema=data.schema_data is not None,
        url_structure=data.url_structure,
    )
    return data
