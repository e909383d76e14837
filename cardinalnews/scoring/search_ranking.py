"""Relevance scoring for site search results."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence


def search_terms(query: str) -> List[str]:
    return [t for t in (query or "").lower().split(" ") if len(t) > 2]


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        dt = value
    elif value:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def recency_bonus(published_at: Any, *, now: Optional[datetime] = None) -> int:
    published = _as_datetime(published_at)
    if published is None:
        return 0
    days = int(((now or datetime.now(timezone.utc)) - published).total_seconds() // 86400)
    return max(0, 20 - days)


def relevance_score(article: Dict[str, Any], query: str, *, now: Optional[datetime] = None) -> int:
    title = (article.get("title") or "").lower()
    excerpt = (article.get("excerpt") or "").lower()
    q = (query or "").lower()

    score = 0
    if title == q:
        score += 100
    elif title.startswith(q):
        score += 50
    elif q in title:
        score += 25
    if q in excerpt:
        score += 10
    for term in search_terms(query):
        if term in title:
            score += 5
        if term in excerpt:
            score += 2
    return score + recency_bonus(article.get("published_at"), now=now)


def rank_results(
    articles: Sequence[Dict[str, Any]], query: str, *, limit: Optional[int] = None, now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """Attach relevanceScore and sort best first (stable for ties)."""
    scored = [{**a, "relevanceScore": relevance_score(a, query, now=now)} for a in articles]
    scored.sort(key=lambda a: a["relevanceScore"], reverse=True)
    return scored[:limit] if limit is not None else scored
