"""Admin clean-up jobs over the article table."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from cardinalnews.errors import InvalidRequestError, UpstreamError
from cardinalnews.images.ai_images import AIImageGenerator
from cardinalnews.images.news_images import NewsImageFinder
from cardinalnews.images.validation import ImageValidator
from cardinalnews.newsroom.generation import DEFAULT_AUTHOR
from cardinalnews.scoring.similarity import find_duplicate_pairs
from cardinalnews.storage.postgres_articles import PostgresArticleStore

logger = logging.getLogger(__name__)

REPLACED_AUTHORS = ("Cardinal AI",)

PROBLEMATIC_IMAGE_KEYWORDS = (
    "business-files",
    "business_files",
    "documents",
    "paperwork",
    "generic",
    "stock-photo",
    "placeholder",
    "template",
)

# stock and placeholder images that should be replaced with a per-article image
FALLBACK_IMAGE_PATTERNS = (
    "/assets/",
    "placeholder",
    "default",
    "fallback",
    "https://images.unsplash.com",
    "hero-news",
    "comet",
    "sauce-wood",
)
AI_IMAGE_CREDIT = "AI Generated Image | Cardinal News"


def images_to_remove(articles: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Articles sharing an image (all but the first user) plus any with a junk image URL."""
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for article in articles:
        url = article.get("image_url")
        if url:
            groups.setdefault(url, []).append(article)

    flagged: Dict[str, Dict[str, Any]] = {}
    for url, users in groups.items():
        if len(users) > 1:
            logger.info(f"Duplicate image found: {url} (used {len(users)} times)")
            for article in users[1:]:
                flagged.setdefault(article["id"], article)
        lowered = url.lower()
        if any(k in lowered for k in PROBLEMATIC_IMAGE_KEYWORDS):
            logger.info(f"Problematic image found: {url}")
            for article in users:
                flagged.setdefault(article["id"], article)
    return list(flagged.values())


@dataclass
class ArticleMaintenance:
    articles: PostgresArticleStore
    news_images: Optional[NewsImageFinder] = None
    ai_images: Optional[AIImageGenerator] = None
    regenerate_delay: float = 2.0
    image_validator: Optional[ImageValidator] = None

    def check_duplicates(self) -> Dict[str, Any]:
        logger.info("Scanning for duplicate articles...")
        pairs = find_duplicate_pairs(self.articles.list_for_duplicate_check())
        logger.info(f"Found {len(pairs)} duplicate(s)")
        return {"success": True, "duplicatesFound": len(pairs), "duplicates": [p.to_dict() for p in pairs]}

    def cleanup_articles(self) -> Dict[str, Any]:
        deleted = self.articles.delete_without_image()
        logger.info(f"Deleted {len(deleted)} articles without images")
        return {
            "success": True,
            "message": f"Deleted {len(deleted)} articles without images",
            "deleted": len(deleted),
            "articles": deleted,
        }

    def fix_duplicate_images(self) -> Dict[str, Any]:
        with_images = self.articles.list_with_images()
        if not with_images:
            return {"success": True, "message": "No articles to process", "fixed": 0}

        doomed = images_to_remove(with_images)
        if doomed:
            self.articles.delete_articles([a["id"] for a in doomed])
            logger.info(f"Deleted {len(doomed)} articles with duplicate/problematic images")
        return {
            "success": True,
            "message": f"Fixed {len(doomed)} articles with duplicate/problematic images",
            "fixed": len(doomed),
            "deletedArticles": [{"id": a["id"], "title": a["title"], "image": a["image_url"]} for a in doomed],
        }

    def _new_image(self, article: Dict[str, Any]) -> Dict[str, Any]:
        if self.news_images is not None:
            try:
                found = self.news_images.find(article["title"], article.get("category"))
                if found.get("success") and found.get("imageUrl"):
                    return {
                        "imageUrl": found["imageUrl"],
                        "imageCredit": found.get("imageCredit") or "News Source",
                        "method": "news-search",
                    }
            except Exception as e:
                logger.warning(f"News image lookup failed for {article['id']}: {e}")
        if self.ai_images is not None:
            logger.info(f"Generating AI image for: {article['title']}")
            generated = self.ai_images.generate(article["title"], article.get("category"), article.get("excerpt"))
            return {
                "imageUrl": generated["imageUrl"],
                "imageCredit": generated.get("imageCredit") or "AI Generated",
                "method": "ai-generation",
            }
        return {}

    def regenerate_images(self, article_ids: Optional[List[str]] = None) -> Dict[str, Any]:
        targets = self.articles.list_for_image_refresh(article_ids, limit=50)
        if not targets:
            return {"success": True, "message": "No articles need image regeneration", "updated": 0}

        results: List[Dict[str, Any]] = []
        for article in targets:
            try:
                image = self._new_image(article)
                if image.get("imageUrl"):
                    url = image["imageUrl"]
                    self.articles.update_article(
                        article["id"],
                        {"image_url": url, "featured_image": url, "og_image": url, "image_credit": image["imageCredit"]},
                    )
                    results.append(
                        {"id": article["id"], "title": article["title"], "success": True, "method": image["method"], "imageUrl": url}
                    )
                else:
                    results.append(
                        {"id": article["id"], "title": article["title"], "success": False, "error": "Failed to generate or fetch image"}
                    )
            except Exception as e:
                logger.error(f"Error processing article {article['id']}: {e}", exc_info=True)
                results.append({"id": article["id"], "title": article["title"], "success": False, "error": str(e)})
            if self.regenerate_delay:
                time.sleep(self.regenerate_delay)

        ok = sum(1 for r in results if r["success"])
        logger.info(f"Regeneration complete: {ok}/{len(targets)} successful")
        return {
            "success": True,
            "message": f"Updated {ok} of {len(targets)} articles",
            "updated": ok,
            "total": len(targets),
            "results": results,
        }

    def _set_image(self, article_id: str, url: str, credit: Optional[str]) -> None:
        self.articles.update_article(
            article_id, {"featured_image": url, "image_url": url, "og_image": url, "image_credit": credit}
        )

    def _rejected(self, article: Dict[str, Any], url: str, credit: str) -> bool:
        if self.image_validator is None:
            return False
        verdict = self.image_validator.validate(article["title"], credit, url, article.get("content"))
        return not verdict.get("valid", True) and (verdict.get("confidence") or 0) > 70

    def _replacement_image(self, article: Dict[str, Any]) -> Dict[str, Any]:
        category = article.get("category") or "news"
        found = self.news_images.find(article["title"], category) if self.news_images is not None else {}
        if found.get("success") and found.get("imageUrl"):
            logger.info(f"Found news image: {found.get('imageCredit')}")
            return {"imageUrl": found["imageUrl"], "imageCredit": found.get("imageCredit") or "Image Source"}
        if self.ai_images is None:
            return {}
        logger.info(f"News image fetch failed, using AI generation for \"{article['title']}\"")
        generated = self.ai_images.generate(article["title"], article.get("category"), article.get("excerpt"))
        return {"imageUrl": generated["imageUrl"], "imageCredit": AI_IMAGE_CREDIT}

    def fix_missing_images(self) -> Dict[str, Any]:
        """Give every article with no image, or a stock placeholder, its own validated image."""
        targets = self.articles.list_image_candidates(FALLBACK_IMAGE_PATTERNS)
        logger.info(f"Found {len(targets)} articles needing unique images")
        ok: List[Dict[str, Any]] = []
        failed: List[Dict[str, Any]] = []
        for article in targets:
            try:
                image = self._replacement_image(article)
                if not image.get("imageUrl"):
                    failed.append({"id": article["id"], "title": article["title"], "reason": "Both image fetch and AI generation failed"})
                    continue
                url, credit = image["imageUrl"], image["imageCredit"]
                if self._rejected(article, url, credit) and self.news_images is not None:
                    logger.info(f"Image validation failed for \"{article['title']}\", trying again")
                    topic = f"{article.get('category') or 'news'} {(article.get('excerpt') or '')[:100]}"
                    retry = self.news_images.find(topic, article.get("category") or "news")
                    if retry.get("success") and retry.get("imageUrl"):
                        url, credit = retry["imageUrl"], retry.get("imageCredit")
                self._set_image(article["id"], url, credit)
                ok.append({"id": article["id"], "title": article["title"], "imageCredit": credit})
            except Exception as e:
                logger.error(f"Error processing article \"{article['title']}\": {e}", exc_info=True)
                failed.append({"id": article["id"], "title": article["title"], "reason": str(e)})
            if self.regenerate_delay:
                time.sleep(self.regenerate_delay)

        logger.info(f"Image fix complete: {len(ok)} updated, {len(failed)} failed")
        return {
            "success": True,
            "summary": {"total": len(targets), "successful": len(ok), "failed": len(failed)},
            "details": {"success": ok, "failed": failed},
        }

    def attach_news_image(self, article_id: Optional[str], title: Optional[str], category: Optional[str] = None) -> Dict[str, Any]:
        """Source a real news photo for one article; no AI fallback."""
        if not article_id or not title:
            raise InvalidRequestError("Article ID and title are required")
        if self.news_images is None:
            raise UpstreamError("Failed to fetch news image from web")
        logger.info(f"Searching for real news images for article: {title}")
        found = self.news_images.find(title, category or "news")
        if not found.get("success") or not found.get("imageUrl"):
            raise UpstreamError("Failed to fetch news image from web")
        self._set_image(article_id, found["imageUrl"], found.get("imageCredit"))
        return {
            "success": True,
            "imageUrl": found["imageUrl"],
            "credit": found.get("imageCredit"),
            "sourceUrl": found.get("sourceUrl"),
        }

    def update_author(self) -> Dict[str, Any]:
        updated = self.articles.reassign_author(DEFAULT_AUTHOR, replace=REPLACED_AUTHORS)
        logger.info(f"Updated {len(updated)} articles to author {DEFAULT_AUTHOR}")
        return {"success": True, "updated": len(updated), "articles": updated}
