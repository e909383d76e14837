"""Generated article contract.

The AI writer returns a JSON object which becomes an `articles` row. This
module defines:
- A JSON Schema (for validation)
- A normalized `GeneratedArticle` so the rest of the pipeline never touches
  raw model output
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from jsonschema import Draft202012Validator

from cardinalnews.storage.postgres_schema import NEWS_CATEGORIES


GENERATED_ARTICLE_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["title", "content"],
    "properties": {
        "title": {"type": "string", "minLength": 1},
        "excerpt": {"type": "string"},
        "content": {"type": "string", "minLength": 1},
        "metaTitle": {"type": "string"},
        "metaDescription": {"type": "string"},
        "metaKeywords": {"type": "array", "items": {"type": "string"}},
        "tags": {"type": "array", "items": {"type": "string"}},
        "category": {"type": "string"},
        "sources": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "url": {"type": "string"},
                    "credibility": {"type": "string"},
                },
                "additionalProperties": True,
            },
        },
        "imagePrompt": {"type": "string"},
        "data_points": {"type": "array"},
    },
    "additionalProperties": True,
}


_VALIDATOR = Draft202012Validator(GENERATED_ARTICLE_SCHEMA)


def validate_generated_article(payload: Any) -> List[str]:
    """Return a list of human-readable validation errors (empty means valid)."""
    errors = []
    for e in sorted(_VALIDATOR.iter_errors(payload), key=lambda x: list(x.path)):
        path = ".".join(str(p) for p in e.path) if e.path else "<root>"
        errors.append(f"{path}: {e.message}")
    return errors


def _str_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


@dataclass(frozen=True)
class GeneratedArticle:
    title: str
    content: str
    excerpt: str = ""
    meta_title: str = ""
    meta_description: str = ""
    meta_keywords: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    category: str = "world"
    sources: List[Dict[str, Any]] = field(default_factory=list)
    image_prompt: str = ""


def to_generated_article(payload: Dict[str, Any], *, fallback_category: str = "world") -> GeneratedArticle:
    """Normalize a validated payload. Unknown categories fall back to the topic's category."""
    category = str(payload.get("category") or "").strip().lower()
    if category not in NEWS_CATEGORIES:
        category = fallback_category if fallback_category in NEWS_CATEGORIES else "world"
    sources = [s for s in (payload.get("sources") or []) if isinstance(s, dict)]
    title = str(payload["title"]).strip()
    excerpt = str(payload.get("excerpt") or "").strip()
    return GeneratedArticle(
        title=title,
        content=str(payload["content"]).strip(),
        excerpt=excerpt,
        meta_title=str(payload.get("metaTitle") or title)[:60].strip(),
        meta_description=str(payload.get("metaDescription") or excerpt)[:160].strip(),
        meta_keywords=_str_list(payload.get("metaKeywords")),
        tags=_str_list(payload.get("tags")),
        category=category,
        sources=sources,
        image_prompt=str(payload.get("imagePrompt") or "").strip(),
    )
