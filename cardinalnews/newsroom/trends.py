"""Trending topic intake: live Google Trends fetches and the curated seed set."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from cardinalnews.ingestion.google_trends import GoogleTrendsIngestor
from cardinalnews.ingestion.seed_topics import seed_candidates, seed_categories
from cardinalnews.newsroom.generation import ArticleGenerator
from cardinalnews.storage.postgres_jobs import JobLog
from cardinalnews.storage.postgres_topics import PostgresTopicStore

logger = logging.getLogger(__name__)

TOPIC_MAX_AGE_HOURS = 48
RECENT_FETCH_HOURS = 6
SEED_SKIP_THRESHOLD = 5


@dataclass
class TrendsService:
    ingestor: GoogleTrendsIngestor
    topics: PostgresTopicStore
    jobs: JobLog
    generator: Optional[ArticleGenerator] = None
    seed_delay: float = 2.0
    rng: random.Random = field(default_factory=random.Random)

    def _generate_for(self, topic_id: str, *, verify: bool = True) -> Optional[Dict[str, Any]]:
        if self.generator is None:
            return None
        try:
            return self.generator.generate(topic_id, verify=verify)
        except Exception as e:
            logger.error(f"Error generating article for topic {topic_id}: {e}", exc_info=True)
            return None

    def fetch_trends(
        self, region: str = "global", limit: int = 10, *, generate: bool = True, verify: bool = True
    ) -> Dict[str, Any]:
        region = region or "global"
        limit = max(0, int(limit))
        with self.jobs.track("fetch_trends", {"region": region, "limit": limit}):
            logger.info(f"Fetching trends for region: {region}, limit: {limit}")
            removed = self.topics.delete_older_than(hours=TOPIC_MAX_AGE_HOURS)
            if removed:
                logger.info(f"Deleted {removed} trending topics older than {TOPIC_MAX_AGE_HOURS}h")

            inserted: List[Dict[str, Any]] = []
            for candidate in self.ingestor.fetch(region)[:limit]:
                if self.topics.fetched_recently(candidate.topic, hours=RECENT_FETCH_HOURS):
                    continue
                row = self.topics.insert_topic(candidate.to_row())
                inserted.append(row)
                logger.info(f"Added trending topic: {candidate.topic}")
                if generate:
                    self._generate_for(row["id"], verify=verify)

            logger.info(f"Successfully added {len(inserted)} new trending topics")
            return {
                "success": True,
                "message": f"Added {len(inserted)} new trending topics",
                "topicsAdded": len(inserted),
                "topics": inserted,
            }

    def seed(self, *, force_refresh: bool = False, articles_per_topic: int = 1) -> Dict[str, Any]:
        existing = self.topics.count()
        if existing > SEED_SKIP_THRESHOLD and not force_refresh:
            return {
                "success": True,
                "message": f"Already have {existing} trending topics. Use forceRefresh=true to reseed.",
                "topicsCount": existing,
            }
        if force_refresh:
            logger.info("Clearing old trends...")
            self.topics.delete_all()

        candidates = seed_candidates()
        self.rng.shuffle(candidates)

        inserted = 0
        generated: List[Dict[str, Any]] = []
        for candidate in candidates:
            if self.topics.topic_exists(candidate.topic):
                continue
            row = self.topics.insert_topic(candidate.to_row())
            inserted += 1
            logger.info(f"Inserted: {candidate.topic}")

            for _ in range(max(0, int(articles_per_topic))):
                result = self._generate_for(row["id"])
                if result:
                    generated.append(
                        {
                            "topic": candidate.topic,
                            "category": candidate.category,
                            "articleId": (result.get("article") or {}).get("id"),
                        }
                    )
                if self.seed_delay:
                    time.sleep(self.seed_delay)

        return {
            "success": True,
            "message": f"Seeded {inserted} diverse trending topics",
            "topicsInserted": inserted,
            "articlesGenerated": len(generated),
            "categoriesRepresented": seed_categories(),
            "generatedArticles": generated,
        }
