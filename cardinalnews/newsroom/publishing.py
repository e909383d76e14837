"""Immediate and scheduled publication."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from cardinalnews.errors import InvalidRequestError, NotFoundError
from cardinalnews.storage.postgres_articles import PostgresArticleStore
from cardinalnews.storage.postgres_verifications import PostgresPublicationQueue

logger = logging.getLogger(__name__)


def parse_schedule(value: Any) -> Optional[datetime]:
    """ISO-8601 timestamp -> aware datetime (naive input is treated as UTC)."""
    if value in (None, ""):
        return None
    s = str(value).strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(s)
    except ValueError as e:
        raise InvalidRequestError(f"Invalid scheduleFor timestamp: {value}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Publisher:
    articles: PostgresArticleStore
    queue: PostgresPublicationQueue

    def publish(self, article_id: Optional[str], schedule_for: Any = None) -> Dict[str, Any]:
        if not article_id:
            raise InvalidRequestError("articleId is required")
        when = parse_schedule(schedule_for)
        if when is not None:
            if not self.articles.get_article(article_id):
                raise NotFoundError("Article not found")
            entry = self.queue.enqueue(article_id, when.isoformat())
            logger.info(f"Article {article_id} scheduled for {when.isoformat()}")
            return {"success": True, "scheduled": True, "queue": entry}

        article = self.articles.update_article(
            article_id, {"status": "published", "published_at": datetime.now(timezone.utc)}
        )
        if not article:
            raise NotFoundError("Article not found")
        logger.info(f"Article published: {article['title']}")
        return {"success": True, "article": article}

    def process_queue(self, *, limit: int = 50) -> Dict[str, int]:
        """Publish due queue entries. A failing entry keeps its error and stays queued."""
        published = failed = 0
        for entry in self.queue.due(limit=limit):
            try:
                article = self.articles.update_article(
                    entry["article_id"], {"status": "published", "published_at": datetime.now(timezone.utc)}
                )
                if not article:
                    raise NotFoundError("Article not found")
                self.queue.mark_published(entry["id"])
                published += 1
            except Exception as e:
                logger.error(f"Scheduled publish failed for {entry['article_id']}: {e}", exc_info=True)
                self.queue.mark_failed(entry["id"], str(e))
                failed += 1
        if published or failed:
            logger.info(f"Publication queue: {published} published, {failed} failed")
        return {"published": published, "failed": failed}
