"""Admin dashboard assistant: a chat model with read/write tools over the newsroom.

The model may call any number of tools in its first turn; their results are
sent back for a second, final answer. Tool failures are reported to the model
as {"error": ...} rather than failing the request.
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional

from cardinalnews.ai.gateway import AIGateway
from cardinalnews.errors import InvalidRequestError
from cardinalnews.ingestion.google_trends import GoogleTrendsIngestor
from cardinalnews.newsroom.text import make_slug
from cardinalnews.newsroom.verification import NewsSearch
from cardinalnews.storage.pg import to_jsonable
from cardinalnews.storage.postgres_articles import PostgresArticleStore
from cardinalnews.storage.postgres_jobs import JobLog
from cardinalnews.storage.postgres_topics import PostgresTopicStore

logger = logging.getLogger(__name__)

ASSISTANT_AUTHOR = "AI Assistant"
QUERYABLE_TABLES = ("articles", "trending_topics", "jobs")
MAX_QUERY_ROWS = 50
MAX_HISTORY = 20
# columns the assistant may change on an existing article
EDITABLE_FIELDS = (
    "title", "excerpt", "content", "category", "tags", "status",
    "meta_title", "meta_description", "meta_keywords", "featured_image", "image_url", "image_credit",
)

ASSISTANT_SYSTEM_PROMPT = """You are an elite AI Assistant for the Cardinal News admin dashboard with real-time data access.

Core capabilities:
1. Real-time intelligence: fetch live Google Trends and breaking news worldwide
2. Database access: query and analyze articles, trending topics and jobs
3. Content management: create, edit and delete articles
4. Security: flag stale drafts and other housekeeping issues
5. Analytics: system-wide article, job and trend statistics

Be direct and professional. Explain actions before executing them and give actionable recommendations."""


def _tool(name: str, description: str, properties: Optional[Dict[str, Any]] = None, required=()) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": {"type": "object", "properties": properties or {}, "required": list(required)},
        },
    }


ASSISTANT_TOOLS = [
    _tool(
        "fetch_google_trends",
        "Fetch current Google Trends for a region. Returns what people are searching for right now.",
        {"region": {"type": "string", "description": "Region code (e.g. 'US', 'GB', 'world')"}},
        ["region"],
    ),
    _tool(
        "fetch_breaking_news",
        "Fetch current breaking news stories for a search query.",
        {"query": {"type": "string", "description": "News search query (e.g. 'technology', 'sports')"}},
        ["query"],
    ),
    _tool(
        "query_database",
        "Read rows from articles, trending_topics or jobs, newest first.",
        {
            "table": {"type": "string", "enum": list(QUERYABLE_TABLES)},
            "filters": {"type": "object", "description": "Column equality filters"},
            "limit": {"type": "number", "description": "Maximum number of rows"},
        },
        ["table"],
    ),
    _tool(
        "create_article",
        "Create a new draft article",
        {
            "title": {"type": "string"},
            "content": {"type": "string"},
            "excerpt": {"type": "string"},
            "category": {"type": "string"},
            "tags": {"type": "array", "items": {"type": "string"}},
        },
        ["title", "content", "category"],
    ),
    _tool(
        "update_article",
        "Update an existing article by ID",
        {"id": {"type": "string"}, "updates": {"type": "object", "description": "Fields to update"}},
        ["id", "updates"],
    ),
    _tool("delete_article", "Delete an article by ID", {"id": {"type": "string"}}, ["id"]),
    _tool("get_system_stats", "Article, job and trending topic counts"),
    _tool("check_security", "Run housekeeping checks on the database and report potential issues"),
]


def clean_history(messages: Any) -> List[Dict[str, str]]:
    """Keep the last user/assistant turns with text content."""
    if not isinstance(messages, list) or not messages:
        raise InvalidRequestError("messages array is required")
    history = [
        {"role": m["role"], "content": m["content"]}
        for m in messages
        if isinstance(m, dict) and m.get("role") in ("user", "assistant") and isinstance(m.get("content"), str)
    ]
    if not history:
        raise InvalidRequestError("messages array is required")
    return history[-MAX_HISTORY:]


@dataclass
class AdminAssistant:
    gateway: AIGateway
    articles: PostgresArticleStore
    topics: PostgresTopicStore
    jobs: JobLog
    trends: GoogleTrendsIngestor
    news: NewsSearch
    rng: random.Random = field(default_factory=random.Random)

    def _handlers(self) -> Dict[str, Callable[[Dict[str, Any]], Any]]:
        return {
            "fetch_google_trends": self.fetch_google_trends,
            "fetch_breaking_news": self.fetch_breaking_news,
            "query_database": self.query_database,
            "create_article": self.create_article,
            "update_article": self.update_article,
            "delete_article": self.delete_article,
            "get_system_stats": self.get_system_stats,
            "check_security": self.check_security,
        }

    def fetch_google_trends(self, args: Dict[str, Any]) -> Dict[str, Any]:
        region = args.get("region") or "global"
        trends = self.trends.fetch(region)[:10]
        return {"success": True, "region": region, "trends": [to_jsonable(asdict(t)) for t in trends]}

    def fetch_breaking_news(self, args: Dict[str, Any]) -> Dict[str, Any]:
        query = args.get("query") or "breaking news"
        if not self.news.serper_api_key:
            return {"error": "News API not configured"}
        results = self.news.search(query, num=10)
        return {
            "success": True,
            "query": query,
            "news": [
                {"title": n.get("title"), "source": n.get("source"), "link": n.get("link"), "date": n.get("date")}
                for n in results[:10]
            ],
        }

    def query_database(self, args: Dict[str, Any]) -> Dict[str, Any]:
        table = args.get("table")
        if table not in QUERYABLE_TABLES:
            return {"error": f"Table not available: {table}"}
        filters = args.get("filters") if isinstance(args.get("filters"), dict) else {}
        try:
            limit = int(args.get("limit") or 10)
        except (TypeError, ValueError):
            limit = 10
        rows = self.articles.select_rows(table, filters, limit=min(max(1, limit), MAX_QUERY_ROWS))
        return {"data": rows}

    def create_article(self, args: Dict[str, Any]) -> Dict[str, Any]:
        title, content = args.get("title"), args.get("content")
        if not title or not content:
            return {"error": "title and content are required"}
        article = self.articles.insert_article(
            {
                "title": title,
                "slug": make_slug(title, 60, rng=self.rng),
                "content": content,
                "excerpt": args.get("excerpt") or content[:200],
                "category": args.get("category") or "world",
                "tags": args.get("tags") or [],
                "status": "draft",
                "author": ASSISTANT_AUTHOR,
            }
        )
        return {"success": True, "article": article}

    def update_article(self, args: Dict[str, Any]) -> Dict[str, Any]:
        updates = args.get("updates") if isinstance(args.get("updates"), dict) else {}
        fields = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS}
        if not args.get("id") or not fields:
            return {"error": "id and at least one editable field are required"}
        article = self.articles.update_article(args["id"], fields)
        if article is None:
            return {"error": "Article not found"}
        return {"success": True, "article": article}

    def delete_article(self, args: Dict[str, Any]) -> Dict[str, Any]:
        if not args.get("id"):
            return {"error": "id is required"}
        if not self.articles.delete_article(args["id"]):
            return {"error": "Article not found"}
        return {"success": True, "message": "Article deleted"}

    def get_system_stats(self, args: Dict[str, Any]) -> Dict[str, Any]:
        articles = self.articles.status_counts()
        jobs = self.jobs.status_counts()
        total = sum(articles.values())
        published = articles.get("published", 0)
        return {
            "articles": {"total": total, "published": published, "draft": total - published, "byStatus": articles},
            "jobs": {"total": sum(jobs.values()), "pending": jobs.get("pending", 0), "byStatus": jobs},
            "trends": {"total": self.topics.count()},
        }

    def check_security(self, args: Dict[str, Any]) -> Dict[str, Any]:
        checks = []
        old_drafts = self.articles.stale_drafts(days=30, limit=5)
        if old_drafts:
            checks.append(
                {
                    "type": "warning",
                    "message": f"Found {len(old_drafts)} draft articles older than 30 days",
                    "items": old_drafts,
                }
            )
        return {
            "checks": checks,
            "summary": f"Found {len(checks)} potential issues" if checks else "No security issues detected",
        }

    def run_tool(self, name: str, args: Dict[str, Any]) -> Any:
        handler = self._handlers().get(name)
        if handler is None:
            return {"error": f"Unknown function: {name}"}
        logger.info(f"Assistant executing tool: {name}")
        try:
            return handler(args)
        except Exception as e:
            logger.error(f"Assistant tool {name} failed: {e}", exc_info=True)
            return {"error": str(e)}

    def chat(self, messages: Any) -> Dict[str, Any]:
        conversation: List[Dict[str, Any]] = [{"role": "system", "content": ASSISTANT_SYSTEM_PROMPT}]
        conversation.extend(clean_history(messages))

        first = self.gateway.chat_with_tools(conversation, ASSISTANT_TOOLS)
        calls = first["tool_calls"]
        if not calls:
            return {"reply": first["content"], "toolCalls": []}

        logger.info(f"Assistant requested {len(calls)} tool call(s)")
        conversation.append(
            {
                "role": "assistant",
                "content": first["content"] or None,
                "tool_calls": [
                    {
                        "id": c["id"],
                        "type": "function",
                        "function": {"name": c["name"], "arguments": json.dumps(c["arguments"])},
                    }
                    for c in calls
                ],
            }
        )
        executed = []
        for call in calls:
            result = self.run_tool(call["name"], call["arguments"])
            executed.append({"name": call["name"], "arguments": call["arguments"], "result": result})
            conversation.append({"role": "tool", "tool_call_id": call["id"], "content": json.dumps(result, default=str)})

        reply = self.gateway.chat(conversation, temperature=0.3)
        return {"reply": reply, "toolCalls": executed}
