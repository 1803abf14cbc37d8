from typing import Optional

from app.features.extraction.schemas.snapshot import ProductPageSnapshot, TechnicalSEOData

JSON_MODE_SUFFIX = """

STRICT JSON OUTPUT:
- Return ONLY one valid JSON object
- Start with { and end with }
- No markdown code fences
- No explanations before or after the JSON
- No comments and no trailing commas"""

EXTRACT_SYSTEM_PROMPT = """You are an e-commerce product page analyst. Extract REAL, ACCURATE data from the page at the given URL.

Rules:
1. Analyze the actual page content
2. Extract only what is visible on the page; never invent or infer data
3. Use "" or [] when information is missing
4. Work with any e-commerce platform (Shopify, WooCommerce, Amazon, eBay, Etsy, custom stores)
5. Return only valid JSON"""

ENHANCE_SYSTEM_PROMPT = """You are an e-commerce SEO and conversion optimization expert. Analyze the real product page and propose production-ready content improvements.

For every enhancement return ONLY:
- enhanced: the optimized version, ready to publish
- reasoning: why this improves search visibility or conversions
- improvement: the quantified expected impact (e.g. "+30% CTR potential")

Do NOT return "current" values. The caller already has them."""

EXTRACT_SCHEMA = """{
  "title": "Exact product title visible on page",
  "description": "Full product description, all paragraphs, not summarized",
  "features": ["Feature 1", "Feature 2"],
  "productType": "Product type",
  "category": "Specific category if visible",
  "brand": "Brand name or empty string",
  "sku": "SKU or empty string",
  "price": "Price exactly as shown",
  "originalPrice": "Original price if on sale, else empty string",
  "currency": "Currency code if visible, else empty string",
  "availability": "Availability text as shown",
  "ctaText": "Purchase button text",
  "platform": "Detected e-commerce platform"
}"""

ENHANCE_SCHEMA = """{
  "summary": {
    "overallAssessment": "2-3 sentence assessment",
    "strengths": ["Strength 1", "Strength 2", "Strength 3"],
    "weaknesses": ["Weakness 1", "Weakness 2", "Weakness 3"],
    "priorityRecommendations": ["Recommendation 1", "Recommendation 2", "Recommendation 3"]
  },
  "title": {"enhanced": "50-60 chars", "reasoning": "...", "improvement": "..."},
  "metaDescription": {"enhanced": "150-160 chars", "reasoning": "...", "improvement": "..."},
  "description": {"enhanced": "200-300 words", "reasoning": "...", "improvement": "..."},
  "features": {"enhanced": ["Feature 1", "Feature 2", "Feature 3"], "reasoning": "...", "improvement": "..."},
  "contentQualityScore": 75
}"""


def with_json_mode(prompt: str) -> str:
    return f"{prompt}{JSON_MODE_SUFFIX}"


def technical_context(technical: Optional[TechnicalSEOData], include_images: bool = False) -> str:
    """One-line reference of what the HTML pass already found."""
    if technical is None:
        return ""
    context = (
        f'Ref: Title="{technical.meta_title}", Desc="{technical.meta_description}", '
        f'H1="{technical.h1}" ({technical.h1_count}), Schema={technical.schema_data is not None}'
    )
    if include_images:
        context += f", Images={len(technical.images)}"
    return context


def build_extract_prompt(url: str, technical: Optional[TechnicalSEOData]) -> str:
    lines = [f"URL: {url}"]
    context = technical_context(technical)
    if context:
        lines.append(f"Context: {context}")
    lines.extend(
        [
            "",
            'Extract ONLY visible data from this page. Use "" or [] if missing.',
            "Return the complete description text without truncation.",
            "",
            "Return ONLY valid JSON in this shape:",
            "",
            EXTRACT_SCHEMA,
        ]
    )
    return "\n".join(lines)


def build_enhance_prompt(
    snapshot: ProductPageSnapshot,
    url: str,
    technical: Optional[TechnicalSEOData],
) -> str:
    lines = [f"URL: {url}"]
    context = technical_context(technical, include_images=True)
    if context:
        lines.append(f"Context: {context}")
    lines.extend(
        [
            f'Product: {snapshot.product_type} | {snapshot.category} | Title: "{snapshot.title}" | CTA: "{snapshot.cta_text}"',
            "",
            "Provide enhancements:",
            "1. summary: overallAssessment, strengths (3-5), weaknesses (3-5), priorityRecommendations (3-5)",
            "2. title: enhanced (50-60 chars, keyword-rich)",
            "3. metaDescription: enhanced (150-160 chars, benefits and call to action)",
            "4. description: enhanced (200-300 words, benefit-focused)",
            "5. features: enhanced (5-7 items, benefit-focused)",
            "6. contentQualityScore: 0-100",
            "",
            'Return ONLY valid JSON with no "current" fields:',
            "",
            ENHANCE_SCHEMA,
        ]
    )
    return "\n".join(lines)
