"""Editor helper: fill in slug, category, SEO and social fields for a hand-written article."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from cardinalnews.ai.gateway import AIGateway
from cardinalnews.contracts.article_metadata import ARTICLE_METADATA_TOOL, validate_article_metadata
from cardinalnews.errors import InvalidRequestError, UpstreamError
from cardinalnews.seo.schema_markup import full_news_article_schema

logger = logging.getLogger(__name__)

METADATA_SYSTEM_PROMPT = (
    "You are an expert SEO and metadata specialist for a professional news organization. "
    "Generate precise, optimized metadata that follows journalism best practices and maximizes discoverability."
)

METADATA_PROMPT = """Analyze this news article and generate comprehensive metadata for it.

TITLE: {title}

CONTENT: {content}

Generate the following fields with professional journalism standards:
1. URL Slug: SEO-friendly, lowercase, hyphenated (max 80 chars)
2. Category: Choose ONE from [world, business, technology, entertainment, sports, science, lifestyle, politics, ai_innovation]
3. Excerpt: Compelling 2-3 sentence summary (120-160 chars)
4. Hashtags: 5-8 relevant trending hashtags (no # symbol)
5. Meta Title: SEO optimized (50-60 chars)
6. Meta Description: Search engine snippet (150-160 chars)
7. Meta Keywords: 8-12 relevant keywords (comma separated)
8. News Keywords: 5-7 news-specific keywords (comma separated)
9. Open Graph Title: Social media optimized (max 60 chars)
10. Open Graph Description: Social sharing snippet (max 200 chars)

Be precise, professional, and optimize for news discovery and SEO."""


@dataclass
class MetadataAutoPopulator:
    gateway: AIGateway

    def populate(self, title: Optional[str], content: Optional[str]) -> Dict[str, Any]:
        if not title or not content:
            raise InvalidRequestError("Title and content are required")
        logger.info(f"Auto-populating article fields for: {title[:50]}")

        metadata = self.gateway.tool_call(
            [
                {"role": "system", "content": METADATA_SYSTEM_PROMPT},
                {"role": "user", "content": METADATA_PROMPT.format(title=title, content=content[:3000])},
            ],
            ARTICLE_METADATA_TOOL,
        )
        if metadata is None:
            raise UpstreamError("AI did not return expected metadata structure")
        errors = validate_article_metadata(metadata)
        if errors:
            logger.error(f"Metadata tool output failed validation: {errors}")
            raise UpstreamError("AI did not return expected metadata structure")

        schema = full_news_article_schema(
            headline=title,
            description=metadata["excerpt"],
            content=content,
            slug=metadata["slug"],
            category=metadata["category"],
            news_keywords=metadata["newsKeywords"],
        )
        return {
            "slug": metadata["slug"],
            "category": metadata["category"],
            "excerpt": metadata["excerpt"],
            "tags": metadata["hashtags"],
            "metaTitle": metadata["metaTitle"],
            "metaDescription": metadata["metaDescription"],
            "metaKeywords": metadata["metaKeywords"],
            "newsKeywords": metadata["newsKeywords"],
            "ogTitle": metadata["ogTitle"],
            "ogDescription": metadata["ogDescription"],
            "schemaMarkup": json.dumps(schema, indent=2),
        }
