"""
Heuristic separation of product imagery from icons, logos and decoration.

Best effort. When the signals are inconclusive the image is included.
"""

import re
from dataclasses import dataclass
from typing import Optional

from bs4 import Tag

EXCLUDE_PATTERNS = (
    "icon", "logo", "favicon", "sprite", "spacer", "pixel",
    "button", "badge", "flag", "social", "share", "avatar",
    "thumbnail", "thumb", "placeholder", "loading", "spinner",
    "arrow", "chevron", "close", "menu", "hamburger", "nav",
    "ad", "advertisement", "banner", "promo",
)

PRODUCT_URL_PATTERNS = (
    "product", "item", "goods", "merchandise", "catalog",
    "media", "image", "photo", "picture", "gallery",
    "cdn", "assets", "uploads", "images", "pics",
)

PRODUCT_CONTAINER_PATTERNS = (
    "product", "gallery", "carousel", "slider", "main-image",
    "featured", "hero", "banner-image", "product-image",
)

MIN_DIMENSION = 100
CONFIDENT_DIMENSION = 200
DESCRIPTIVE_ALT_LENGTH = 10

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")
_CSS_DIMENSION = re.compile(r"(?:^|;)\s*(width|height)\s*:\s*(\d+)", re.IGNORECASE)
_LEADING_INT = re.compile(r"^\s*(\d+)")


@dataclass(frozen=True)
class ImageContext:
    """Everything the heuristic looks at for a single <img>."""

    src: str
    alt: str = ""
    width: int = 0
    height: int = 0
    img_class: str = ""
    img_id: str = ""
    parent_class: str = ""
    parent_id: str = ""

    @property
    def has_dimensions(self) -> bool:
        return self.width > 0 and self.height > 0


def _parse_int(value: Optional[str]) -> int:
    if not value:
        return 0
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def _attr_text(tag: Optional[Tag], name: str) -> str:
    if tag is None:
        return ""
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return (value or "").lower()


def image_dimensions(img: Tag) -> tuple:
    """Width/height from attributes, falling back to inline ``style``; 0 when unknown."""
    width = _parse_int(img.get("width"))
    height = _parse_int(img.get("height"))
    if not width or not height:
        for prop, value in _CSS_DIMENSION.findall(img.get("style") or ""):
            if prop.lower() == "width" and not width:
                width = int(value)
            elif prop.lower() == "height" and not height:
                height = int(value)
    return width, height


def context_from_tag(img: Tag, src: str) -> ImageContext:
    width, height = image_dimensions(img)
    parent = img.parent if isinstance(img.parent, Tag) else None
    return ImageContext(
        src=src,
        alt=(img.get("alt") or "").strip(),
        width=width,
        height=height,
        img_class=_attr_text(img, "class"),
        img_id=_attr_text(img, "id"),
        parent_class=_attr_text(parent, "class"),
        parent_id=_attr_text(parent, "id"),
    )


def matches_exclusion(text: str) -> bool:
    """Substring match, except very short patterns ("ad", "nav") which must be whole tokens."""
    tokens = set(_TOKEN_SPLIT.split(text))
    for pattern in EXCLUDE_PATTERNS:
        if len(pattern) <= 3:
            if pattern in tokens:
                return True
        elif pattern in text:
            return True
    return False


def is_likely_product_image(image: ImageContext) -> bool:
    src_lower = image.src.lower()
    combined = " ".join(
        (src_lower, image.img_class, image.img_id, image.parent_class, image.parent_id)
    )

    if matches_exclusion(combined):
        return False

    if image.has_dimensions and (image.width < MIN_DIMENSION or image.height < MIN_DIMENSION):
        return False

    if src_lower.startswith("data:") or "base64" in src_lower:
        return False

    if src_lower.endswith(".svg") and (image.width < CONFIDENT_DIMENSION or image.height < CONFIDENT_DIMENSION):
        return False

    if any(pattern in src_lower for pattern in PRODUCT_URL_PATTERNS):
        return True

    if any(
        pattern in image.parent_class or pattern in image.parent_id
        for pattern in PRODUCT_CONTAINER_PATTERNS
    ):
        return True

    alt_lower = image.alt.lower()
    if len(image.alt) > DESCRIPTIVE_ALT_LENGTH and not matches_exclusion(alt_lower):
        return True

    if image.has_dimensions:
        return image.width >= CONFIDENT_DIMENSION and image.height >= CONFIDENT_DIMENSION

    return True
