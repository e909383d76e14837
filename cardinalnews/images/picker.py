"""Image fallback chain: real news photo, then an AI illustration, then nothing."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import requests

from cardinalnews.errors import CardinalError
from cardinalnews.images.ai_images import AIImageGenerator
from cardinalnews.images.news_images import NewsImageFinder

logger = logging.getLogger(__name__)

AI_CREDIT = "AI Generated by Cardinal News"


@dataclass
class ArticleImagePicker:
    news: NewsImageFinder
    ai: AIImageGenerator

    def pick(
        self,
        *,
        topic: str,
        title: str,
        category: Optional[str] = None,
        excerpt: Optional[str] = None,
        exclude_urls: Iterable[str] = (),
    ) -> Optional[Dict[str, Any]]:
        """Return {imageUrl, imageCredit, method} or None when every source failed."""
        exclude = set(exclude_urls)
        try:
            found = self.news.find(topic, category, exclude_urls=exclude)
            if found.get("success") and found.get("imageUrl"):
                logger.info(f"Real news image sourced: {found.get('imageCredit')}")
                return {"imageUrl": found["imageUrl"], "imageCredit": found.get("imageCredit"), "method": "news-search"}
            logger.info("News image fetch failed, using AI generation")
        except (CardinalError, requests.RequestException) as e:
            logger.error(f"Image fetch failed: {e}")

        try:
            generated = self.ai.generate(title, category, excerpt)
            logger.info("Generated AI image successfully")
            return {"imageUrl": generated["imageUrl"], "imageCredit": AI_CREDIT, "method": "ai-generation"}
        except (CardinalError, requests.RequestException) as e:
            logger.error(f"AI image generation also failed: {e}")
        return None
