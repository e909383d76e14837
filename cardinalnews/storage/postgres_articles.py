"""Postgres-backed article queries for the newsroom pipeline and the read API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from psycopg.types.json import Jsonb

from cardinalnews.storage.pg import PostgresStore, insert_query, row_to_dict

ARTICLE_COLUMNS = frozenset(
    {
        "title",
        "slug",
        "excerpt",
        "content",
        "category",
        "author",
        "tags",
        "meta_title",
        "meta_description",
        "meta_keywords",
        "news_keywords",
        "schema_markup",
        "og_title",
        "og_description",
        "og_image",
        "featured_image",
        "image_url",
        "image_credit",
        "sources",
        "trending_topic_id",
        "status",
        "read_time",
        "word_count",
        "verification_score",
        "verification_status",
        "rejection_reason",
        "publish_at",
        "published_at",
        "date_modified",
    }
)

SUMMARY_COLUMNS = (
    "id, title, slug, excerpt, category, author, tags, image_url, image_credit, status, "
    "read_time, word_count, views_count, published_at, created_at"
)


def _clean_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - ARTICLE_COLUMNS
    if unknown:
        raise ValueError(f"Unknown article columns: {sorted(unknown)}")
    return dict(fields)


@dataclass
class PostgresArticleStore(PostgresStore):
    json_columns: tuple = ("schema_markup", "sources")

    def insert_article(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("articles", _clean_fields(fields))

    def insert_articles(self, items: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert a batch in one transaction; a failing row rolls back the whole batch."""
        rows = [self._adapt(_clean_fields(it)) for it in items]
        if not rows:
            return []
        inserted = []
        with self._transaction() as cur:
            for fields in rows:
                cur.execute(insert_query("articles", fields.keys()), fields)
                inserted.append(row_to_dict(cur.fetchone()))
        return inserted

    def update_article(self, article_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("articles", article_id, _clean_fields(fields))

    def get_article(self, article_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM articles WHERE id = %s", (article_id,))

    def get_published_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        """Fetch a published article and count the view."""
        return self._fetch_one(
            """
            UPDATE articles SET views_count = views_count + 1
            WHERE slug = %s AND status = 'published'
            RETURNING *
            """,
            (slug,),
        )

    def list_articles(
        self,
        *,
        status: Optional[str] = "published",
        category: Optional[str] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        limit = max(1, min(int(limit), 200))
        where = ["1=1"]
        params: List[Any] = []
        if status and status.strip().lower() not in ("all", "any"):
            where.append("status = %s")
            params.append(status.strip().lower())
        if category and category.strip().lower() not in ("all", "any"):
            where.append("category = %s")
            params.append(category.strip().lower())
        return self._fetch_all(
            f"""
            SELECT {SUMMARY_COLUMNS}
            FROM articles
            WHERE {' AND '.join(where)}
            ORDER BY COALESCE(published_at, created_at) DESC
            LIMIT {limit}
            """,
            params,
        )

    def recent_titles(self, limit: int = 100) -> List[str]:
        rows = self._fetch_all("SELECT title FROM articles ORDER BY created_at DESC LIMIT %s", (int(limit),))
        return [r["title"] for r in rows if r.get("title")]

    def has_article_for_topic(self, topic_id: str) -> bool:
        row = self._fetch_one("SELECT 1 AS hit FROM articles WHERE trending_topic_id = %s LIMIT 1", (topic_id,))
        return row is not None

    def list_for_duplicate_check(self) -> List[Dict[str, Any]]:
        return self._fetch_all("SELECT id, title, word_count, created_at FROM articles ORDER BY created_at DESC")

    def list_with_images(self) -> List[Dict[str, Any]]:
        return self._fetch_all(
            "SELECT id, title, image_url, created_at FROM articles WHERE image_url IS NOT NULL ORDER BY created_at ASC"
        )

    def list_for_image_refresh(self, article_ids: Optional[List[str]] = None, *, limit: int = 50) -> List[Dict[str, Any]]:
        if article_ids:
            return self._fetch_all(
                "SELECT id, title, category, excerpt FROM articles WHERE id = ANY(%s::uuid[]) LIMIT %s",
                (list(article_ids), int(limit)),
            )
        return self._fetch_all(
            "SELECT id, title, category, excerpt FROM articles WHERE image_url IS NULL ORDER BY created_at DESC LIMIT %s",
            (int(limit),),
        )

    def list_published_for_sitemap(self) -> List[Dict[str, Any]]:
        return self._fetch_all(
            """
            SELECT slug, updated_at, published_at, category
            FROM articles
            WHERE status = 'published'
            ORDER BY published_at DESC NULLS LAST
            """
        )

    def search_published(self, query: str, *, limit: int = 10) -> List[Dict[str, Any]]:
        pattern = f"%{query}%"
        return self._fetch_all(
            """
            SELECT id, title, slug, excerpt, category, published_at, image_url
            FROM articles
            WHERE status = 'published'
              AND (title ILIKE %s OR excerpt ILIKE %s OR content ILIKE %s OR category ILIKE %s)
            ORDER BY published_at DESC NULLS LAST
            LIMIT %s
            """,
            (pattern, pattern, pattern, pattern, int(limit)),
        )

    def delete_articles(self, article_ids: List[str]) -> int:
        if not article_ids:
            return 0
        return self._execute("DELETE FROM articles WHERE id = ANY(%s::uuid[])", (list(article_ids),))

    def delete_without_image(self) -> List[Dict[str, Any]]:
        return self._fetch_all("DELETE FROM articles WHERE image_url IS NULL RETURNING id, title")

    def reassign_author(self, author: str, *, replace: Iterable[str]) -> List[Dict[str, Any]]:
        return self._fetch_all(
            """
            UPDATE articles SET author = %s, updated_at = now()
            WHERE author IS NULL OR author = ANY(%s)
            RETURNING id, title, author
            """,
            (author, list(replace)),
        )

    def slug_exists(self, slug: str) -> bool:
        return self._fetch_one("SELECT 1 AS hit FROM articles WHERE slug = %s LIMIT 1", (slug,)) is not None

    def titles_like(self, fragment: str, *, limit: int = 10) -> List[str]:
        rows = self._fetch_all(
            "SELECT title FROM articles WHERE title ILIKE %s ORDER BY created_at DESC LIMIT %s",
            (f"%{fragment}%", int(limit)),
        )
        return [r["title"] for r in rows if r.get("title")]

    def list_image_candidates(self, fallback_patterns: Iterable[str], *, limit: int = 200) -> List[Dict[str, Any]]:
        """Articles with no image or with a placeholder/stock image."""
        patterns = [f"%{p}%" for p in fallback_patterns]
        return self._fetch_all(
            """
            SELECT id, title, excerpt, category, featured_image, image_url, left(content, 1000) AS content
            FROM articles
            WHERE featured_image IS NULL OR image_url IS NULL
               OR featured_image ILIKE ANY(%s) OR image_url ILIKE ANY(%s)
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (patterns, patterns, int(limit)),
        )

    def list_empty_published(self, *, limit: int = 50) -> List[Dict[str, Any]]:
        return self._fetch_all(
            """
            SELECT id, title, excerpt, category, tags, sources, image_url, featured_image, image_credit
            FROM articles
            WHERE status = 'published' AND (word_count IS NULL OR word_count = 0)
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (int(limit),),
        )

    def status_counts(self) -> Dict[str, int]:
        rows = self._fetch_all("SELECT status, count(*) AS n FROM articles GROUP BY status")
        return {r["status"]: int(r["n"]) for r in rows}

    def stale_drafts(self, *, days: int = 30, limit: int = 5) -> List[Dict[str, Any]]:
        return self._fetch_all(
            """
            SELECT id, title, created_at FROM articles
            WHERE status = 'draft' AND created_at < now() - make_interval(days => %s)
            ORDER BY created_at ASC
            LIMIT %s
            """,
            (int(days), int(limit)),
        )

    def delete_article(self, article_id: str) -> bool:
        return self._execute("DELETE FROM articles WHERE id = %s", (article_id,)) > 0

    def source_url_exists(self, url: str) -> bool:
        row = self._fetch_one(
            "SELECT 1 AS hit FROM articles WHERE sources @> %s LIMIT 1", (Jsonb([{"url": url}]),)
        )
        return row is not None
