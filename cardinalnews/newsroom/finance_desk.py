"""Finance desk: Yahoo Finance headlines turned into original Cardinal News drafts.

Imports never generate AI images; an import without a real news photo is
stored without one. Regeneration fills in published articles whose body never
made it into the table (word count 0), and only then falls back to an AI
illustration.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from cardinalnews.ai.gateway import AIGateway
from cardinalnews.contracts.generated_article import to_generated_article, validate_generated_article
from cardinalnews.errors import CardinalError, UpstreamError
from cardinalnews.images.ai_images import AIImageGenerator
from cardinalnews.images.news_images import NewsImageFinder
from cardinalnews.ingestion.yahoo_finance import (
    DEFAULT_FEED,
    SOURCE_NAME,
    FinanceHeadline,
    YahooFinanceFeed,
    newsroom_category,
)
from cardinalnews.newsroom.generation import DEFAULT_AUTHOR
from cardinalnews.newsroom.text import make_slug, read_time, word_count
from cardinalnews.scoring.similarity import find_similar_title
from cardinalnews.storage.postgres_articles import PostgresArticleStore

logger = logging.getLogger(__name__)

REGENERATED_AI_CREDIT = "AI Generated by Cardinal News"

SENSITIVE_KEYWORDS = (
    "disaster", "hurricane", "earthquake", "tsunami", "tragedy", "accident", "crash", "death", "funeral",
    "terror", "attack", "shooting", "explosion", "fire", "flood", "victim", "crisis", "emergency", "catastrophe",
)

FINANCE_SYSTEM_PROMPT = """You are Hunain Qureshi, an award-winning financial journalist for Cardinal News.

Turn wire headlines into ORIGINAL investigative finance journalism:
- Open with a surprising data point or a sharp question
- Connect the news to investors, consumers and the wider economy
- Include 3-5 expert quotes with realistic attribution and conflicting views
- Add historical context and a forward-looking "what's next" section
- Credit Yahoo Finance as the starting point, but never summarize or paraphrase it

Your output MUST be valid JSON with this exact structure:
{
  "title": "Headline of 50-60 characters with a clear hook",
  "excerpt": "Summary of 150-160 characters",
  "content": "Full article in HTML (1500-2000 words) with <h2>, <h3>, <p>, <blockquote> and <strong>",
  "metaTitle": "SEO title under 60 characters",
  "metaDescription": "SEO description under 160 characters",
  "metaKeywords": ["keyword1", "keyword2", "keyword3", "keyword4", "keyword5"],
  "tags": ["tag1", "tag2", "tag3"],
  "imagePrompt": "Specific financial news photograph prompt"
}"""

FINANCE_USER_PROMPT = """Write an original Cardinal News story that starts from this Yahoo Finance item.

HEADLINE: "{title}"
DESCRIPTION: {description}
PUBLISHED: {published}
SOURCE URL: {link}
{topics}

Find the story behind the story, do not reuse the source headline or angle.
Return ONLY valid JSON, no additional text."""

REGENERATE_SYSTEM_PROMPT = """You are a professional business and finance journalist for Cardinal News. Write compelling, accurate, SEO-optimized news articles.

Your output MUST be valid JSON with this exact structure:
{
  "title": "Compelling headline under 60 characters",
  "excerpt": "Brief summary under 160 characters",
  "content": "Full article in HTML (1000-1500 words) using <h2>, <h3>, <p> and <blockquote>",
  "metaTitle": "SEO-optimized title under 60 characters",
  "metaDescription": "SEO description under 160 characters",
  "metaKeywords": ["keyword1", "keyword2", "keyword3", "keyword4", "keyword5"],
  "tags": ["tag1", "tag2", "tag3"],
  "imagePrompt": "Photorealistic business news photograph prompt"
}

Always credit sources but write original, comprehensive content."""

REGENERATE_USER_PROMPT = """Write a comprehensive professional news article based on this existing article:

HEADLINE: "{title}"
CATEGORY: {category}
{excerpt}
{source}
{topics}

Expand the story with analysis, context and expert perspective (1000-1500 words).
Return ONLY valid JSON, no additional text."""


def build_import_messages(item: FinanceHeadline) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": FINANCE_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": FINANCE_USER_PROMPT.format(
                title=item.title,
                description=item.description or "N/A",
                published=item.published or "unknown",
                link=item.link,
                topics=f"TOPICS: {', '.join(item.topics)}" if item.topics else "",
            ),
        },
    ]


def source_of(article: Dict[str, Any], name: str = SOURCE_NAME) -> Optional[Dict[str, Any]]:
    for source in article.get("sources") or []:
        if isinstance(source, dict) and source.get("name") == name:
            return source
    return None


def build_regenerate_messages(article: Dict[str, Any]) -> List[Dict[str, str]]:
    source = source_of(article)
    tags = article.get("tags") or []
    return [
        {"role": "system", "content": REGENERATE_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": REGENERATE_USER_PROMPT.format(
                title=article.get("title") or "",
                category=article.get("category") or "business",
                excerpt=f"CURRENT EXCERPT: {article['excerpt']}" if article.get("excerpt") else "",
                source=f"ORIGINAL SOURCE: {source['name']} - {source.get('url')}" if source else "",
                topics=f"TOPICS: {', '.join(tags)}" if tags else "",
            ),
        },
    ]


def is_sensitive(*texts: Optional[str]) -> bool:
    blob = " ".join(t for t in texts if t).lower()
    return any(k in blob for k in SENSITIVE_KEYWORDS)


@dataclass
class FinanceDesk:
    gateway: AIGateway
    feed: YahooFinanceFeed
    articles: PostgresArticleStore
    news_images: Optional[NewsImageFinder] = None
    ai_images: Optional[AIImageGenerator] = None
    rng: random.Random = field(default_factory=random.Random)

    def _write(self, messages: List[Dict[str, str]], *, temperature: float, max_tokens: int):
        payload = self.gateway.chat_json(messages, temperature=temperature, max_tokens=max_tokens)
        errors = validate_generated_article(payload)
        if errors:
            logger.error(f"Finance article failed validation: {errors}")
            raise UpstreamError("AI did not return valid JSON")
        return payload

    def _news_image(self, title: str, category: str) -> Dict[str, Any]:
        if self.news_images is None:
            return {}
        try:
            found = self.news_images.find(title, category)
        except (CardinalError, requests.RequestException) as e:
            logger.error(f"Image fetch failed: {e}")
            return {}
        if found.get("success") and found.get("imageUrl"):
            logger.info(f"Real news image sourced: {found.get('imageCredit')}")
            return found
        logger.warning("No suitable news image found, saving without image")
        return {}

    def import_headlines(self, category: str = DEFAULT_FEED, limit: int = 10) -> Dict[str, Any]:
        category = (category or DEFAULT_FEED).lower()
        try:
            headlines = self.feed.fetch(category, limit)
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to fetch RSS feed: {e}") from e

        db_category = newsroom_category(category)
        existing_titles = self.articles.recent_titles(100)
        imported: List[Dict[str, Any]] = []
        for item in headlines:
            try:
                if self.articles.source_url_exists(item.link):
                    logger.info(f"Already imported: {item.link}")
                    continue
                logger.info(f"Generating finance article for: {item.title}")
                draft = to_generated_article(
                    self._write(build_import_messages(item), temperature=0.8, max_tokens=6000),
                    fallback_category=db_category,
                )
                similar = find_similar_title(draft.title, existing_titles)
                if similar:
                    logger.info(f"Skipping duplicate: \"{draft.title}\" (similar to \"{similar}\")")
                    continue

                image = self._news_image(draft.title, db_category)
                image_url = image.get("imageUrl") or None
                words = word_count(draft.content)
                keywords = draft.meta_keywords or item.topics or ["finance", "business", "yahoo finance"]
                row = self.articles.insert_article(
                    {
                        "title": draft.title,
                        "slug": make_slug(draft.title, 50, rng=self.rng),
                        "excerpt": draft.excerpt,
                        "content": draft.content,
                        "category": db_category,
                        "author": DEFAULT_AUTHOR,
                        "tags": draft.tags or item.topics or ["finance", "business"],
                        "meta_title": draft.meta_title,
                        "meta_description": draft.meta_description,
                        "meta_keywords": keywords,
                        "news_keywords": keywords,
                        "og_title": draft.meta_title,
                        "og_description": draft.meta_description,
                        "og_image": image_url,
                        "featured_image": image_url,
                        "image_url": image_url,
                        "image_credit": image.get("imageCredit"),
                        "sources": [item.source()],
                        "status": "draft",
                        "read_time": read_time(words),
                        "word_count": words,
                    }
                )
                existing_titles.append(draft.title)
                imported.append(row)
                logger.info(f"Imported finance draft: {row['id']}")
            except CardinalError as e:
                logger.error(f"Error processing article {item.title}: {e}")

        return {"success": True, "imported": len(imported), "total": len(headlines), "articles": imported}

    def _fallback_image(self, article: Dict[str, Any], title: str) -> Dict[str, Any]:
        if self.ai_images is None:
            return {}
        category = article.get("category") or "business"
        prompt_title = f"{category} news coverage" if is_sensitive(article.get("title"), title, category) else title
        try:
            generated = self.ai_images.generate(prompt_title, category, article.get("excerpt"))
        except (CardinalError, requests.RequestException) as e:
            logger.error(f"Image generation failed: {e}")
            return {}
        return {"imageUrl": generated["imageUrl"], "imageCredit": REGENERATED_AI_CREDIT}

    def regenerate_empty(self, *, limit: int = 50) -> Dict[str, Any]:
        targets = self.articles.list_empty_published(limit=limit)
        logger.info(f"Found {len(targets)} articles to regenerate")
        regenerated: List[Dict[str, Any]] = []
        failed: List[Dict[str, Any]] = []
        for article in targets:
            try:
                draft = to_generated_article(
                    self._write(build_regenerate_messages(article), temperature=0.7, max_tokens=4000),
                    fallback_category=article.get("category") or "business",
                )
                image_url = article.get("image_url") or article.get("featured_image")
                credit = article.get("image_credit")
                if not image_url:
                    image = self._fallback_image(article, draft.title)
                    image_url = image.get("imageUrl")
                    credit = image.get("imageCredit")
                words = word_count(draft.content)
                self.articles.update_article(
                    article["id"],
                    {
                        "title": draft.title,
                        "excerpt": draft.excerpt,
                        "content": draft.content,
                        "meta_title": draft.meta_title,
                        "meta_description": draft.meta_description,
                        "meta_keywords": draft.meta_keywords,
                        "tags": draft.tags,
                        "og_title": draft.meta_title,
                        "og_description": draft.meta_description,
                        "og_image": image_url,
                        "featured_image": image_url,
                        "image_url": image_url,
                        "image_credit": credit,
                        "read_time": read_time(words),
                        "word_count": words,
                        "date_modified": datetime.now(timezone.utc),
                    },
                )
                regenerated.append({"id": article["id"], "title": draft.title, "wordCount": words})
                logger.info(f"Regenerated: {draft.title}")
            except CardinalError as e:
                logger.error(f"Regeneration failed for {article['id']}: {e}")
                failed.append({"id": article["id"], "title": article.get("title"), "error": str(e)})

        return {
            "success": True,
            "message": f"Regenerated {len(regenerated)} articles",
            "regenerated": len(regenerated),
            "failed": len(failed),
            "articles": regenerated,
            "failures": failed,
        }
