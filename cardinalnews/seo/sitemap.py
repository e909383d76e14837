"""Google News sitemap for the public site."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional
from xml.sax.saxutils import escape

SITE_BASE_URL = "https://www.cardinal-news.com"
SITEMAP_CATEGORIES = (
    "world",
    "business",
    "technology",
    "sports",
    "entertainment",
    "science",
    "politics",
    "ai-innovation",
)
PUBLICATION_NAME = "Cardinal News"

URLSET_OPEN = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"
        xmlns:news="http://www.google.com/schemas/sitemap-news/0.9"
        xmlns:xhtml="http://www.w3.org/1999/xhtml"
        xmlns:image="http://www.google.com/schemas/sitemap-image/1.1"
        xmlns:video="http://www.google.com/schemas/sitemap-video/1.1">"""


def _iso(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _url(loc: str, changefreq: str, priority: str, lastmod: Optional[str], extra: str = "") -> str:
    parts = [
        "  <url>",
        f"    <loc>{escape(loc)}</loc>",
        f"    <changefreq>{changefreq}</changefreq>",
        f"    <priority>{priority}</priority>",
    ]
    if lastmod:
        parts.append(f"    <lastmod>{lastmod}</lastmod>")
    if extra:
        parts.append(extra)
    parts.append("  </url>")
    return "\n".join(parts)


def _news_block(article: Dict[str, Any]) -> str:
    title = escape((article.get("slug") or "").replace("-", " "))
    published = _iso(article.get("published_at"))
    lines = [
        "    <news:news>",
        "      <news:publication>",
        f"        <news:name>{PUBLICATION_NAME}</news:name>",
        "        <news:language>en</news:language>",
        "      </news:publication>",
    ]
    if published:
        lines.append(f"      <news:publication_date>{published}</news:publication_date>")
    lines.append(f"      <news:title>{title}</news:title>")
    lines.append("    </news:news>")
    return "\n".join(lines)


def build_sitemap(
    articles: Iterable[Dict[str, Any]], *, base_url: str = SITE_BASE_URL, now: Optional[datetime] = None
) -> str:
    """Homepage, category pages and one news entry per published article."""
    base = base_url.rstrip("/")
    stamp = _iso(now or datetime.now(timezone.utc))
    urls = [_url(f"{base}/", "hourly", "1.0", stamp)]
    urls.extend(_url(f"{base}/category/{c}", "daily", "0.8", stamp) for c in SITEMAP_CATEGORIES)
    for article in articles:
        if not article.get("slug"):
            continue
        lastmod = _iso(article.get("updated_at") or article.get("published_at"))
        urls.append(_url(f"{base}/article/{article['slug']}", "weekly", "0.7", lastmod, _news_block(article)))
    return "\n".join([URLSET_OPEN, *urls, "</urlset>"]) + "\n"
