"""Site search with AI query suggestions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from cardinalnews.ai.gateway import AIGateway
from cardinalnews.scoring.search_ranking import rank_results
from cardinalnews.storage.postgres_articles import PostgresArticleStore

logger = logging.getLogger(__name__)

SUGGESTION_PROMPT = """You are a news search assistant. Given a partial search query, generate:
1. 3-5 related search suggestions that might interest the user
2. 2-3 query completions that finish the user's sentence naturally

Return ONLY a JSON object with this structure:
{
  "suggestions": ["suggestion 1", "suggestion 2", ...],
  "completions": ["completion 1", "completion 2", ...]
}

Focus on news topics, current events, and common news categories like: world news, business, technology, sports, entertainment, politics, weather, etc."""

MIN_SUGGESTION_QUERY = 3


def _strings(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if isinstance(v, (str, int, float))]


@dataclass
class SmartSearch:
    articles: PostgresArticleStore
    gateway: Optional[AIGateway] = None

    def suggestions(self, query: str) -> Dict[str, List[str]]:
        """AI suggestions/completions; any failure just means none."""
        empty: Dict[str, List[str]] = {"suggestions": [], "completions": []}
        if self.gateway is None or not self.gateway.configured or len(query) < MIN_SUGGESTION_QUERY:
            return empty
        try:
            parsed = self.gateway.chat_json(
                [
                    {"role": "system", "content": SUGGESTION_PROMPT},
                    {"role": "user", "content": f'Search query: "{query}"\n\nProvide relevant suggestions and completions.'},
                ]
            )
        except Exception as e:
            logger.warning(f"AI suggestion error: {e}")
            return empty
        if not isinstance(parsed, dict):
            return empty
        return {"suggestions": _strings(parsed.get("suggestions")), "completions": _strings(parsed.get("completions"))}

    def search(self, query: Optional[str], limit: int = 10) -> Dict[str, Any]:
        query = (query or "").strip()
        if not query:
            return {"results": [], "suggestions": [], "completions": [], "total": 0}
        limit = max(1, min(int(limit), 100))

        found = self.articles.search_published(query, limit=limit)
        extra = self.suggestions(query)
        results = rank_results(found, query, limit=limit)
        return {
            "results": results,
            "suggestions": extra["suggestions"],
            "completions": extra["completions"],
            "total": len(results),
        }
