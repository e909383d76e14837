"""Trend-driven article writer.

One trending topic in, one draft article out: prompt the AI writer, validate
its JSON, refuse near-duplicate headlines, attach an image, store the draft and
hand it to the verification pipeline.
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from cardinalnews.ai.gateway import AIGateway
from cardinalnews.contracts.generated_article import to_generated_article, validate_generated_article
from cardinalnews.errors import DuplicateArticleError, InvalidRequestError, NotFoundError, UpstreamError
from cardinalnews.images.picker import ArticleImagePicker
from cardinalnews.newsroom.text import make_slug, read_time, word_count
from cardinalnews.newsroom.verification import ArticleVerifier
from cardinalnews.scoring.similarity import find_similar_title
from cardinalnews.seo.schema_markup import news_article_schema
from cardinalnews.storage.postgres_articles import PostgresArticleStore
from cardinalnews.storage.postgres_jobs import JobLog
from cardinalnews.storage.postgres_topics import PostgresTopicStore

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR = "Hunain Qureshi"

FRAMEWORKS = (
    "investigative analysis",
    "expert roundtable",
    "data-driven report",
    "comprehensive overview",
    "critical examination",
    "industry insider view",
    "breaking coverage",
    "impact study",
    "trend forecast",
    "detailed investigation",
)

WRITER_SYSTEM_PROMPT = """You are an ELITE investigative journalist for Cardinal News with expertise across multiple domains. You synthesize complex information into compelling, accurate narratives.

CORE PRINCIPLES:
- ACCURACY IS PARAMOUNT: every fact must be verifiable
- ORIGINALITY REQUIRED: unique angle, fresh perspective, novel insights
- DEPTH OVER BREADTH: comprehensive analysis over surface coverage
- JOURNALISTIC INTEGRITY: balanced, fair, ethical reporting

GENERATION PARAMETERS:
- Framework: {framework}
- Timestamp: {timestamp}

Your output MUST be valid JSON with this exact structure:
{{
  "title": "UNIQUE and compelling headline under 60 characters",
  "excerpt": "Brief summary with fresh perspective under 160 characters",
  "content": "Full article in HTML (1000-1500 words). Use <h2> for main sections, <h3> for subsections, <p> for paragraphs and <blockquote> for key quotes.",
  "metaTitle": "SEO-optimized title under 60 characters",
  "metaDescription": "SEO description under 160 characters",
  "metaKeywords": ["keyword1", "keyword2", "keyword3", "keyword4", "keyword5"],
  "tags": ["tag1", "tag2", "tag3"],
  "category": "one of: world, business, technology, sports, entertainment, science, politics, ai_innovation, lifestyle",
  "sources": [
    {{"name": "Primary Source Name", "url": "https://source1.com", "credibility": "high"}},
    {{"name": "Secondary Source Name", "url": "https://source2.com", "credibility": "medium"}}
  ],
  "imagePrompt": "Specific news photograph prompt: subject, setting, lighting, composition, mood",
  "data_points": [
    {{"metric": "Key statistic", "value": "X", "source": "verified source"}}
  ]
}}

FACT-CHECKING PROTOCOL:
- Every statistic MUST have a source
- Verify dates, names, locations, numbers
- Include uncertainty language where appropriate ("according to...", "reports suggest...")
- Cite at least 3-4 HIGH-CREDIBILITY sources

WRITING:
- Hook readers in the first 2 sentences
- Active voice, strong verbs, varied sentence length
- Include quotes from relevant experts
- End with a forward-looking perspective"""

WRITER_USER_PROMPT = """Write a professional news article about this trending topic: "{topic}".
Region: {region}
Keywords: {keywords}
Related queries: {related}
{context}
{existing}

Framework: {framework}

Make it comprehensive, engaging, and SEO-optimized with proper source citations.
CRITICAL: Your article MUST present a unique angle not covered in existing articles.
Return ONLY valid JSON, no additional text."""


def uniqueness_context(existing_titles: List[str], *, show: int = 10) -> str:
    if not existing_titles:
        return ""
    listed = "\n".join(existing_titles[:show])
    return (
        "CRITICAL UNIQUENESS REQUIREMENT: These titles already exist in our system - your article MUST have "
        f"a completely different headline and unique angle:\n{listed}\n\n"
        "You MUST find a fresh perspective that makes your article stand out from these existing pieces."
    )


def build_writer_messages(topic: Dict[str, Any], existing_titles: List[str], framework: str) -> List[Dict[str, str]]:
    trend_data = topic.get("trend_data")
    return [
        {
            "role": "system",
            "content": WRITER_SYSTEM_PROMPT.format(
                framework=framework, timestamp=datetime.now(timezone.utc).isoformat()
            ),
        },
        {
            "role": "user",
            "content": WRITER_USER_PROMPT.format(
                topic=topic["topic"],
                region=topic.get("region") or "global",
                keywords=", ".join(topic.get("keywords") or []) or "N/A",
                related=", ".join(topic.get("related_queries") or []) or "N/A",
                context=f"Additional context: {json.dumps(trend_data)}" if trend_data else "",
                existing=uniqueness_context(existing_titles),
                framework=framework,
            ),
        },
    ]


@dataclass
class ArticleGenerator:
    gateway: AIGateway
    images: ArticleImagePicker
    articles: PostgresArticleStore
    topics: PostgresTopicStore
    jobs: JobLog
    verifier: Optional[ArticleVerifier] = None
    rng: random.Random = field(default_factory=random.Random)

    def generate(self, trending_topic_id: Optional[str], *, verify: bool = True) -> Dict[str, Any]:
        if not trending_topic_id:
            raise InvalidRequestError("trendingTopicId is required")
        with self.jobs.track("generate_article", {"trendingTopicId": trending_topic_id}):
            return self._generate(trending_topic_id, verify=verify)

    def _generate(self, trending_topic_id: str, *, verify: bool) -> Dict[str, Any]:
        logger.info(f"Generating article for trending topic: {trending_topic_id}")
        existing_titles = self.articles.recent_titles(100)
        topic = self.topics.get_topic(trending_topic_id)
        if not topic:
            raise NotFoundError("Trending topic not found")

        framework = self.rng.choice(FRAMEWORKS)
        payload = self.gateway.chat_json(
            build_writer_messages(topic, existing_titles, framework), temperature=0.25, max_tokens=4000
        )
        errors = validate_generated_article(payload)
        if errors:
            logger.error(f"Generated article failed validation: {errors}")
            raise UpstreamError("AI did not return valid JSON")
        draft = to_generated_article(payload, fallback_category=topic.get("category") or "world")

        similar = find_similar_title(draft.title, existing_titles)
        if similar:
            logger.warning(f"Skipping duplicate/similar article: '{draft.title}' (similar to: '{similar}')")
            raise DuplicateArticleError(f'Article title too similar to existing: "{similar}"')

        image = self.images.pick(
            topic=topic["topic"], title=draft.title, category=draft.category, excerpt=draft.excerpt
        ) or {}
        image_url = image.get("imageUrl") or None

        words = word_count(draft.content)
        article = self.articles.insert_article(
            {
                "title": draft.title,
                "slug": make_slug(draft.title, 50, rng=self.rng),
                "excerpt": draft.excerpt,
                "content": draft.content,
                "category": draft.category,
                "author": DEFAULT_AUTHOR,
                "tags": draft.tags,
                "meta_title": draft.meta_title,
                "meta_description": draft.meta_description,
                "meta_keywords": draft.meta_keywords,
                "schema_markup": news_article_schema(
                    headline=draft.title, description=draft.excerpt, keywords=draft.meta_keywords
                ),
                "og_title": draft.meta_title,
                "og_description": draft.meta_description,
                "og_image": image_url,
                "featured_image": image_url,
                "image_url": image_url,
                "image_credit": image.get("imageCredit"),
                "sources": draft.sources,
                "trending_topic_id": trending_topic_id,
                "status": "draft",
                "read_time": read_time(words),
                "word_count": words,
            }
        )
        logger.info(f"Article created (draft): '{draft.title}' (ID: {article['id']})")

        if verify and self.verifier is not None:
            try:
                result = self.verifier.verify_and_publish(article["id"])
                logger.info(f"Verification complete: {result['decision']}")
                article["status"] = result["article_status"]
            except Exception as e:
                logger.error(f"Verification pipeline error, article stays draft: {e}", exc_info=True)

        self.topics.mark_processed(trending_topic_id)
        return {"success": True, "article": article}
