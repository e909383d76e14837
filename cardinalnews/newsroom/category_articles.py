"""Batch writer for the curated category desks (music, movies, science, ...).

Unlike the trend writer, the model answers in raw HTML; the headline comes
from an <h1> when it writes one. Drafts are collected first, bulk inserted,
then each one goes through verification.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from cardinalnews.ai.gateway import AIGateway
from cardinalnews.images.news_images import NewsImageFinder
from cardinalnews.newsroom.generation import DEFAULT_AUTHOR
from cardinalnews.newsroom.text import extract_h1, make_slug, plain_excerpt, read_time, remove_h1, word_count
from cardinalnews.newsroom.verification import PUBLISH, ArticleVerifier
from cardinalnews.scoring.similarity import is_near_duplicate
from cardinalnews.storage.postgres_articles import PostgresArticleStore

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ("music", "movies", "science", "politics", "ai_innovation")
MAX_IMAGE_ATTEMPTS = 5

CATEGORY_TOPICS: Dict[str, List[str]] = {
    "music": [
        "Grammy-winning artist announces surprise album drop",
        "Viral music phenomenon breaks streaming records worldwide",
        "Music festival announces historic lineup for 2025",
        "Rising pop star collaborates with legendary producer",
        "Hip-hop artist's documentary reveals untold story",
        "Classical music reaches new generation through social media",
        "Independent musician revolutionizes music distribution",
        "Global music chart dominated by unexpected genre fusion",
    ],
    "movies": [
        "Oscar contender generates unprecedented box office success",
        "Streaming platform reveals exclusive blockbuster slate",
        "Director's comeback film breaks international records",
        "Superhero franchise announces game-changing reboot",
        "Documentary exposes industry secrets and sparks debate",
        "Indie film festival discovery becomes cultural phenomenon",
        "Animation studio unveils groundbreaking visual technology",
        "Actor's powerful performance redefines career trajectory",
    ],
    "science": [
        "Breakthrough cancer treatment shows remarkable results in trials",
        "NASA mission discovers potential signs of life on distant moon",
        "Climate scientists unveil revolutionary carbon capture method",
        "Quantum computing achieves unprecedented processing milestone",
        "Gene therapy offers hope for previously incurable disease",
        "Archaeological discovery rewrites human migration history",
        "Ocean exploration reveals unknown ecosystem in deep trenches",
        "Neuroscience study unlocks secrets of memory formation",
    ],
    "politics": [
        "Historic bipartisan legislation transforms national policy",
        "Global summit addresses urgent climate action commitments",
        "Election results signal major shift in political landscape",
        "International trade agreement reshapes economic alliances",
        "Supreme Court ruling sets precedent on civil rights issue",
        "Grassroots movement achieves unprecedented policy change",
        "Political leader's bold reform initiative gains momentum",
        "Diplomatic breakthrough eases international tensions",
    ],
    "ai_innovation": [
        "AI model demonstrates human-level reasoning in breakthrough test",
        "Tech giant unveils revolutionary neural network architecture",
        "AI-powered medical diagnosis system outperforms specialists",
        "Ethical AI framework adopted by Fortune 500 companies",
        "Machine learning breakthrough solves decade-old scientific puzzle",
        "AI assistant achieves natural conversation indistinguishable from human",
        "Autonomous vehicle technology reaches Level 5 capability",
        "AI system creates original inventions, raising patent questions",
    ],
}

# One desk per newsroom section, used by the "diverse" batch.
DIVERSE_TOPICS: Dict[str, List[str]] = {
    "world": [
        "Breaking diplomatic breakthrough between major world powers",
        "Global climate summit reaches historic agreement",
        "Humanitarian crisis unfolds in developing nation",
        "International trade deal reshapes global economy",
    ],
    "business": [
        "Tech giant announces revolutionary merger",
        "Stock market reaches all-time high amid economic optimism",
        "Startup disrupts traditional industry with innovative approach",
        "Corporate sustainability initiatives transform business landscape",
    ],
    "technology": [
        "Revolutionary quantum computing breakthrough announced",
        "Next-generation smartphone technology unveiled",
        "Cybersecurity threat prompts global response",
        "AI advancement transforms healthcare industry",
    ],
    "sports": [
        "Underdog team secures championship victory",
        "Olympic athlete breaks world record",
        "Major league announces groundbreaking rule changes",
        "Rising star athlete signs historic contract",
    ],
    "entertainment": [
        "Blockbuster film shatters box office records",
        "Music industry icon announces surprise comeback",
        "Streaming platform reveals exclusive content deal",
        "Award show makes history with unprecedented wins",
    ],
    "science": [
        "Scientists discover potential cure for rare disease",
        "Space exploration mission reveals stunning findings",
        "Breakthrough in renewable energy technology",
        "Archaeological discovery rewrites history books",
    ],
    "politics": [
        "Historic legislation passes with bipartisan support",
        "Election results signal major political shift",
        "Policy reform addresses pressing social issues",
        "International summit tackles global challenges",
    ],
    "ai_innovation": [
        "AI system achieves human-level reasoning capability",
        "Machine learning breakthrough revolutionizes industry",
        "Ethical AI framework adopted by major corporations",
        "Autonomous technology reaches new milestone",
    ],
}

PERSPECTIVES = (
    "exclusive insider access",
    "expert panel insights",
    "investigative deep dive",
    "on-location reporting",
    "comprehensive analysis",
    "breaking coverage",
    "industry veteran perspective",
    "emerging trends spotlight",
    "data-driven investigation",
)

DESK_SYSTEM_PROMPT = """You are an elite Harvard-educated journalist writing for Cardinal News, meeting Google E-E-A-T standards (Experience, Expertise, Authoritativeness, Trustworthiness).

CRITICAL QUALITY STANDARDS:
- Harvard-level writing with sophisticated analysis
- 1200-1800 words of thoroughly researched content
- Unique angle: {perspective}
- Generated at: {timestamp}
- 2-3 expert quotes with realistic attribution
- Data-driven insights with specific statistics
- 100% original content - never generic or templated

HTML FORMATTING REQUIREMENTS:
1. Start with compelling opening <p> (no h1, that's the title)
2. Use <h2> for major sections
3. Include 2-3 <blockquote> with expert perspectives
4. Wrap all text in <p> tags
5. Use <strong> for key facts and statistics
6. Add <ul> or <ol> lists where appropriate
7. End with forward-looking analysis

Make it read like premium journalism from The New York Times, Forbes, or Bloomberg."""

DESK_USER_PROMPT = """Write a comprehensive, expertly researched article about: "{trend}"

Category: {category}
Unique Angle: {perspective}
{existing}

CRITICAL REQUIREMENTS:
- Create a COMPLETELY UNIQUE headline (not similar to trend description)
- Open with a powerful hook that engages immediately
- Include specific data points and statistics throughout
- Feature 2-3 expert quotes with realistic names and credentials
- Provide sophisticated analysis showing deep expertise
- Use varied section headings with compelling titles
- Format with proper HTML: <p>, <h2>, <blockquote>, <strong>, <ul>
- End with implications and future outlook

This must be distinctive, original, and demonstrate exceptional journalistic quality."""


def storage_category(category: str) -> str:
    """Desk name -> articles.category value."""
    return "entertainment" if category in ("music", "movies") else category


def desk_title(content: str, trend: str) -> str:
    return extract_h1(content) or trend[:100]


def build_desk_messages(category: str, trend: str, existing_titles: List[str], perspective: str) -> List[Dict[str, str]]:
    existing = ""
    if existing_titles:
        existing = "\nEXISTING TITLES (make yours completely unique):\n" + "\n".join(existing_titles[-5:])
    return [
        {
            "role": "system",
            "content": DESK_SYSTEM_PROMPT.format(
                perspective=perspective, timestamp=datetime.now(timezone.utc).isoformat()
            ),
        },
        {
            "role": "user",
            "content": DESK_USER_PROMPT.format(
                trend=trend, category=category, perspective=perspective, existing=existing
            ),
        },
    ]


@dataclass
class CategoryArticleWriter:
    gateway: AIGateway
    news_images: Optional[NewsImageFinder]
    articles: PostgresArticleStore
    verifier: Optional[ArticleVerifier] = None
    generation_delay: float = 1.5
    verification_delay: float = 0.5
    image_retry_delay: float = 1.0
    rng: random.Random = field(default_factory=random.Random)

    def _batch_image(self, title: str, category: str, used: Set[str]) -> Dict[str, Any]:
        """Find a news photo not already used by another article in this batch."""
        if self.news_images is None:
            return {}
        for attempt in range(1, MAX_IMAGE_ATTEMPTS + 1):
            try:
                found = self.news_images.find(title, category, exclude_urls=used)
            except Exception as e:
                logger.warning(f"Image fetch failed: {e}")
                return {}
            if not found.get("success"):
                logger.warning("No suitable image found")
                return {}
            original = found.get("originalImageUrl") or found.get("imageUrl")
            if original not in used:
                used.add(original)
                return found
            logger.info(f"Image already used in batch, retrying... ({attempt})")
            if attempt < MAX_IMAGE_ATTEMPTS and self.image_retry_delay:
                time.sleep(self.image_retry_delay)
        logger.warning("Could not find unique image after retries, continuing without image")
        return {}

    def write_draft(self, category: str, trend: str, existing_titles: List[str], used_images: Set[str]) -> Dict[str, Any]:
        perspective = self.rng.choice(PERSPECTIVES)
        content = self.gateway.chat(
            build_desk_messages(category, trend, existing_titles, perspective), temperature=0.3, max_tokens=4000
        )
        title = desk_title(content, trend)
        body = remove_h1(content)
        excerpt = plain_excerpt(body, 200)
        db_category = storage_category(category)

        logger.info(f"Searching for real image: {title}")
        image = self._batch_image(title, db_category, used_images)
        image_url = image.get("imageUrl") or None

        words = word_count(body)
        return {
            "title": title,
            "slug": make_slug(title, 60, rng=self.rng),
            "content": body,
            "excerpt": excerpt,
            "category": db_category,
            "word_count": words,
            "read_time": read_time(words),
            "author": DEFAULT_AUTHOR,
            "status": "draft",
            "published_at": None,
            "featured_image": image_url,
            "image_url": image_url,
            "image_credit": image.get("imageCredit"),
            "og_image": image_url,
            "meta_title": title,
            "meta_description": excerpt,
            "meta_keywords": [db_category, category, "breaking news", "trending"],
            "tags": [db_category, category, "featured", "trending"],
        }

    def generate(
        self,
        categories: Optional[List[str]] = None,
        articles_per_category: int = 3,
        *,
        desk_topics: Optional[Dict[str, List[str]]] = None,
    ) -> Dict[str, Any]:
        desk_topics = desk_topics or CATEGORY_TOPICS
        wanted = list(categories or (DEFAULT_CATEGORIES if desk_topics is CATEGORY_TOPICS else desk_topics))
        logger.info(f"Generating {articles_per_category} articles for categories: {wanted}")

        existing_titles = self.articles.recent_titles(100)
        drafts: List[Dict[str, Any]] = []
        results: List[Dict[str, Any]] = []
        used_images: Set[str] = set()

        for category in wanted:
            trends = desk_topics.get(category)
            if not trends:
                logger.warning(f"Unknown category: {category}")
                continue
            for trend in trends[: max(0, int(articles_per_category))]:
                try:
                    logger.info(f"Generating: [{category}] {trend}")
                    draft = self.write_draft(category, trend, existing_titles, used_images)
                    if is_near_duplicate(draft["title"], existing_titles):
                        logger.info(f"Skipping duplicate: \"{draft['title']}\"")
                        results.append({"category": category, "trend": trend, "status": "skipped_duplicate"})
                    else:
                        existing_titles.append(draft["title"])
                        drafts.append(draft)
                        results.append(
                            {"category": category, "trend": trend, "title": draft["title"], "status": "generated"}
                        )
                        logger.info(f"Generated: {draft['title']}")
                    if self.generation_delay:
                        time.sleep(self.generation_delay)
                except Exception as e:
                    logger.error(f"Error generating [{category}] {trend}: {e}", exc_info=True)
                    results.append({"category": category, "trend": trend, "status": "failed", "error": str(e)})

        if drafts:
            inserted = self.articles.insert_articles(drafts)
            logger.info(f"Inserted {len(inserted)} draft articles, now verifying...")
            self._verify_all(inserted)

        return {
            "success": True,
            "message": f"Generated {len(drafts)} unique articles across {len(wanted)} categories",
            "results": results,
            "totalArticles": len(drafts),
            "categories": wanted,
        }

    def _verify_all(self, inserted: List[Dict[str, Any]]) -> None:
        if self.verifier is None:
            return
        published = rejected = 0
        for article in inserted:
            try:
                outcome = self.verifier.verify_and_publish(article["id"])
                if outcome.get("decision") == PUBLISH:
                    published += 1
                else:
                    rejected += 1
            except Exception as e:
                logger.error(f"Verification failed for {article['title']}: {e}", exc_info=True)
                rejected += 1
            if self.verification_delay:
                time.sleep(self.verification_delay)
        logger.info(f"Verification complete: {published} published, {rejected} rejected/review")

    def generate_diverse(self, articles_per_category: int = 3) -> Dict[str, Any]:
        """Spread a batch over every newsroom section instead of the curated desks."""
        return self.generate(None, articles_per_category, desk_topics=DIVERSE_TOPICS)
