"""schema.org NewsArticle JSON-LD builders."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

PUBLISHER_NAME = "Cardinal News"
GENERATED_LOGO_URL = "https://cardinalnews.com/logo.png"
APP_BASE_URL = "https://cardinalnews.app"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def news_article_schema(
    *,
    headline: str,
    description: Optional[str],
    keywords: Iterable[str] = (),
    date_published: Optional[str] = None,
) -> Dict[str, Any]:
    """Compact markup stored with freshly generated articles."""
    return {
        "@context": "https://schema.org",
        "@type": "NewsArticle",
        "headline": headline,
        "description": description,
        "author": {"@type": "Organization", "name": PUBLISHER_NAME},
        "publisher": {
            "@type": "Organization",
            "name": PUBLISHER_NAME,
            "logo": {"@type": "ImageObject", "url": GENERATED_LOGO_URL},
        },
        "datePublished": date_published or _now_iso(),
        "keywords": ", ".join(keywords),
    }


def full_news_article_schema(
    *,
    headline: str,
    description: str,
    content: str,
    slug: str,
    category: str,
    news_keywords: str,
    base_url: str = APP_BASE_URL,
    now: Optional[str] = None,
) -> Dict[str, Any]:
    """Full markup for the editor's auto-populate action."""
    ts = now or _now_iso()
    organization = {"@type": "Organization", "name": PUBLISHER_NAME, "url": base_url}
    return {
        "@context": "https://schema.org",
        "@type": "NewsArticle",
        "headline": headline,
        "description": description,
        "articleBody": (content or "")[:500] + "...",
        "datePublished": ts,
        "dateModified": ts,
        "author": organization,
        "publisher": {
            **organization,
            "logo": {"@type": "ImageObject", "url": f"{base_url}/logo.png", "width": 600, "height": 60},
        },
        "mainEntityOfPage": {"@type": "WebPage", "@id": f"{base_url}/article/{slug}"},
        "articleSection": category,
        "keywords": news_keywords,
        "inLanguage": "en-US",
        "isAccessibleForFree": "True",
        "genre": "News",
    }
