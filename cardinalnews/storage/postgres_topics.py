"""Trending topic persistence."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from cardinalnews.storage.pg import PostgresStore


@dataclass
class PostgresTopicStore(PostgresStore):
    json_columns: tuple = ("trend_data",)

    def insert_topic(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("trending_topics", fields)

    def get_topic(self, topic_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM trending_topics WHERE id = %s", (topic_id,))

    def topic_exists(self, topic: str) -> bool:
        return self._fetch_one("SELECT 1 AS hit FROM trending_topics WHERE topic = %s LIMIT 1", (topic,)) is not None

    def fetched_recently(self, topic: str, *, hours: int = 6) -> bool:
        row = self._fetch_one(
            """
            SELECT 1 AS hit FROM trending_topics
            WHERE topic = %s AND fetched_at >= now() - make_interval(hours => %s)
            LIMIT 1
            """,
            (topic, int(hours)),
        )
        return row is not None

    def delete_older_than(self, *, hours: int = 48) -> int:
        return self._execute(
            "DELETE FROM trending_topics WHERE fetched_at < now() - make_interval(hours => %s)", (int(hours),)
        )

    def delete_all(self) -> int:
        return self._execute("DELETE FROM trending_topics")

    def count(self) -> int:
        row = self._fetch_one("SELECT COUNT(*) AS n FROM trending_topics")
        return int(row["n"] if row else 0)

    def mark_processed(self, topic_id: str) -> None:
        self._execute("UPDATE trending_topics SET processed = TRUE WHERE id = %s", (topic_id,))

    def list_unprocessed(self, *, limit: int = 5) -> List[Dict[str, Any]]:
        return self._fetch_all(
            """
            SELECT * FROM trending_topics
            WHERE processed = FALSE
            ORDER BY trend_strength DESC, fetched_at DESC
            LIMIT %s
            """,
            (int(limit),),
        )

    def top_without_article(self, *, limit: int = 3) -> List[Dict[str, Any]]:
        return self._fetch_all(
            """
            SELECT t.* FROM trending_topics t
            WHERE NOT EXISTS (SELECT 1 FROM articles a WHERE a.trending_topic_id = t.id)
            ORDER BY t.search_volume DESC NULLS LAST, t.trend_strength DESC
            LIMIT %s
            """,
            (int(limit),),
        )

    def list_topics(self, *, limit: int = 20) -> List[Dict[str, Any]]:
        limit = max(1, min(int(limit), 200))
        return self._fetch_all(
            """
            SELECT id, topic, category, trend_strength, region, search_volume, keywords,
                   related_queries, source_url, processed, fetched_at
            FROM trending_topics
            ORDER BY processed ASC, trend_strength DESC, fetched_at DESC
            LIMIT %s
            """,
            (limit,),
        )
