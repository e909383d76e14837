"""Image/article relevance checks.

A deterministic brand-confusion table runs first (an article about Chipotle
must never carry a McDonald's photo); the AI reviewer handles everything else.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from cardinalnews.ai.gateway import AIGateway
from cardinalnews.ai.json_repair import extract_json_object
from cardinalnews.errors import UpstreamError, require_key

logger = logging.getLogger(__name__)

# (brands mentioned by the article, competitor names that must not appear on the image)
BRAND_CONFUSIONS: Tuple[Tuple[Tuple[str, ...], Tuple[str, ...]], ...] = (
    (("mcdonalds", "mcdonald's", "mcd"), ("chipotle", "chipotles", "cmg")),
    (("chipotle", "chipotles", "cmg"), ("mcdonalds", "mcdonald's", "mcd", "burger king", "wendys", "taco bell")),
    (("burger king", "bk"), ("mcdonalds", "wendys", "wendy's")),
    (("coca cola", "coke", "cocacola"), ("pepsi", "pepsico")),
    (("pepsi", "pepsico"), ("coca cola", "coke", "cocacola")),
    (("nike",), ("adidas", "reebok", "under armour")),
    (("adidas",), ("nike", "reebok", "puma")),
    (("apple", "aapl"), ("samsung", "google", "microsoft")),
    (("samsung",), ("apple", "lg", "sony")),
    (("google", "googl"), ("apple", "microsoft", "amazon")),
    (("amazon", "amzn"), ("walmart", "target", "alibaba")),
    (("tesla", "tsla"), ("ford", "gm", "toyota", "rivian")),
    (("starbucks", "sbux"), ("dunkin", "costa coffee", "peets")),
)

VALIDATION_SYSTEM_PROMPT = "You are an image validation expert. Always respond with valid JSON only."

VALIDATION_PROMPT = """You are a strict image validation system for a news website.

Article Title: "{title}"
Article Content (first 500 chars): "{content}"
Image Credit: "{credit}"
Image URL: "{url}"

Task: Determine if this image is appropriate and relevant for this article.

CRITICAL CHECKS:
1. Brand Accuracy: If the article is about a specific company (e.g., Chipotle, Apple, Tesla), the image MUST be from that exact company. Images from competitors are NEVER acceptable.
2. Topic Relevance: The image must be directly related to the main topic of the article.
3. No Generic Stock Photos: Reject generic "business concept" or "office" images for specific company articles.
4. Visual Coherence: The image should enhance understanding of the article, not confuse readers.

Respond in JSON format ONLY:
{{
  "valid": true/false,
  "confidence": 0-100,
  "reason": "brief explanation",
  "brands_detected": ["list of brands mentioned in article"],
  "image_brand": "brand shown in image if identifiable",
  "recommendation": "keep" or "replace"
}}"""


def find_brand_conflict(
    title: str,
    content: Optional[str],
    credit: Optional[str],
    url: Optional[str],
    *,
    table: Sequence = BRAND_CONFUSIONS,
) -> Optional[Dict[str, str]]:
    """Return {brand, conflict} when the image belongs to a competitor of a brand the article covers."""
    title_l = (title or "").lower()
    content_l = (content or "").lower()[:1000]
    credit_l = (credit or "").lower()
    url_l = (url or "").lower()
    for brands, conflicts in table:
        if not any(b in title_l or b in content_l for b in brands):
            continue
        for c in conflicts:
            if c in credit_l or c in url_l:
                return {"brand": brands[0], "conflict": c}
    return None


def brand_mismatch_response(brand: str) -> Dict[str, Any]:
    return {
        "valid": False,
        "reason": "brand_mismatch",
        "message": f"Image is from wrong brand. Article is about {brand}, but image appears to be from a competitor.",
        "suggested_action": "generate_new_image",
    }


@dataclass
class ImageValidator:
    gateway: AIGateway

    def validate(
        self,
        article_title: str,
        image_credit: Optional[str] = None,
        image_url: Optional[str] = None,
        article_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        require_key(self.gateway.api_key, "LOVABLE_API_KEY")
        title = article_title or ""
        logger.info(f"Validating image for article: {title}")

        conflict = find_brand_conflict(title, article_content, image_credit, image_url)
        if conflict:
            logger.error(
                f"BRAND MISMATCH DETECTED: Article about {conflict['brand']} has image from {conflict['conflict']}"
            )
            return brand_mismatch_response(conflict["brand"])

        prompt = VALIDATION_PROMPT.format(
            title=title,
            content=(article_content or "")[:500] or "N/A",
            credit=image_credit or "Unknown",
            url=image_url or "N/A",
        )
        try:
            answer = self.gateway.chat(
                [
                    {"role": "system", "content": VALIDATION_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.3,
            )
        except UpstreamError as e:
            logger.error(f"AI validation failed: {e}")
            return {
                "valid": True,
                "confidence": 50,
                "reason": "AI validation unavailable, proceeding with caution",
                "warning": "Manual review recommended",
            }

        validation = extract_json_object(answer)
        if validation is None:
            logger.error(f"Failed to parse AI validation response: {answer[:200]}")
            return {
                "valid": True,
                "confidence": 60,
                "reason": "Basic validation passed, AI parsing failed",
                "warning": "Manual review recommended",
            }

        logger.info(
            f"Image validation complete: {'VALID' if validation.get('valid') else 'INVALID'} "
            f"(confidence: {validation.get('confidence')}%)"
        )
        result = dict(validation)
        result["article_title"] = article_title
        result["image_credit"] = image_credit
        return result
