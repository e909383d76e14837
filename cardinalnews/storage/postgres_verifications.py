"""Verification history and the scheduled publication queue."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from cardinalnews.storage.pg import PostgresStore


@dataclass
class PostgresVerificationStore(PostgresStore):
    json_columns: tuple = (
        "fact_check_results",
        "source_credibility",
        "recommendations",
        "verification_data",
    )

    def record(self, article_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        row = dict(fields)
        row["article_id"] = article_id
        return self._insert("article_verifications", row)

    def for_article(self, article_id: str) -> List[Dict[str, Any]]:
        return self._fetch_all(
            "SELECT * FROM article_verifications WHERE article_id = %s ORDER BY created_at DESC", (article_id,)
        )


@dataclass
class PostgresPublicationQueue(PostgresStore):
    def enqueue(self, article_id: str, scheduled_for: str) -> Dict[str, Any]:
        return self._insert("publication_queue", {"article_id": article_id, "scheduled_for": scheduled_for})

    def due(self, *, limit: int = 50) -> List[Dict[str, Any]]:
        return self._fetch_all(
            """
            SELECT * FROM publication_queue
            WHERE published = FALSE AND scheduled_for <= now()
            ORDER BY scheduled_for ASC
            LIMIT %s
            """,
            (int(limit),),
        )

    def mark_published(self, entry_id: str) -> None:
        self._execute("UPDATE publication_queue SET published = TRUE, error_message = NULL WHERE id = %s", (entry_id,))

    def mark_failed(self, entry_id: str, message: str) -> None:
        self._execute("UPDATE publication_queue SET error_message = %s WHERE id = %s", (message[:2000], entry_id))
