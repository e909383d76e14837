"""Schema for the `generate_article_metadata` tool call.

The same parameter schema is sent to the model as the tool definition and used
to validate what comes back.
"""

from __future__ import annotations

from typing import Any, Dict, List

from jsonschema import Draft202012Validator

from cardinalnews.storage.postgres_schema import NEWS_CATEGORIES


ARTICLE_METADATA_PARAMETERS: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "slug": {"type": "string", "description": "URL-friendly slug (lowercase, hyphens, max 60 chars)"},
        "category": {"type": "string", "enum": list(NEWS_CATEGORIES), "description": "Best matching category"},
        "excerpt": {"type": "string", "description": "Compelling summary (150-200 characters)"},
        "hashtags": {
            "type": "array",
            "items": {"type": "string"},
            "description": "5-8 relevant hashtags without the # symbol",
        },
        "metaTitle": {"type": "string", "description": "SEO title (50-60 characters)"},
        "metaDescription": {"type": "string", "description": "SEO meta description (150-160 characters)"},
        "metaKeywords": {"type": "string", "description": "Comma-separated SEO keywords (8-12 keywords)"},
        "newsKeywords": {"type": "string", "description": "Comma-separated Google News keywords (5-8 keywords)"},
        "ogTitle": {"type": "string", "description": "Social media title (60-90 characters)"},
        "ogDescription": {"type": "string", "description": "Social media description (150-200 characters)"},
    },
    "required": [
        "slug",
        "category",
        "excerpt",
        "hashtags",
        "metaTitle",
        "metaDescription",
        "metaKeywords",
        "newsKeywords",
        "ogTitle",
        "ogDescription",
    ],
    "additionalProperties": False,
}

ARTICLE_METADATA_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "generate_article_metadata",
        "description": "Generate SEO-optimized metadata for a news article",
        "parameters": ARTICLE_METADATA_PARAMETERS,
    },
}

_VALIDATOR = Draft202012Validator({"$schema": "https://json-schema.org/draft/2020-12/schema", **ARTICLE_METADATA_PARAMETERS})


def validate_article_metadata(payload: Any) -> List[str]:
    """Return a list of human-readable validation errors (empty means valid)."""
    errors = []
    for e in sorted(_VALIDATOR.iter_errors(payload), key=lambda x: list(x.path)):
        path = ".".join(str(p) for p in e.path) if e.path else "<root>"
        errors.append(f"{path}: {e.message}")
    return errors
