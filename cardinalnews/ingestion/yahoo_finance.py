"""Yahoo Finance RSS ingestion for the finance desk."""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from typing import Any, List

import feedparser
import requests

from cardinalnews.ingestion.google_trends import BROWSER_USER_AGENT, _entry_get

logger = logging.getLogger(__name__)

YAHOO_FEEDS = {
    "finance": "https://finance.yahoo.com/news/rssindex",
    "stocks": "https://finance.yahoo.com/rss/topstories",
    "crypto": "https://finance.yahoo.com/rss/cryptocurrency",
    "economy": "https://finance.yahoo.com/rss/economics",
    "earnings": "https://finance.yahoo.com/rss/earnings",
}
DEFAULT_FEED = "finance"
SOURCE_NAME = "Yahoo Finance"

_TAG_RE = re.compile(r"<[^>]+>")


def feed_url(category: str) -> str:
    return YAHOO_FEEDS.get((category or DEFAULT_FEED).lower(), YAHOO_FEEDS[DEFAULT_FEED])


def newsroom_category(category: str) -> str:
    """Yahoo feed name -> articles.category value."""
    return "technology" if (category or "").lower() == "crypto" else "business"


def clean_text(value: Any) -> str:
    if not value:
        return ""
    return html.unescape(_TAG_RE.sub("", str(value))).strip()


@dataclass(frozen=True)
class FinanceHeadline:
    title: str
    link: str
    published: str = ""
    description: str = ""
    topics: List[str] = field(default_factory=list)

    def source(self) -> dict:
        return {"name": SOURCE_NAME, "url": self.link, "date": self.published}


def parse_feed(content: Any, *, limit: int = 10) -> List[FinanceHeadline]:
    """Items with both a title and a link, in feed order."""
    parsed = feedparser.parse(content)
    out: List[FinanceHeadline] = []
    for entry in parsed.entries or []:
        if len(out) >= limit:
            break
        title = clean_text(_entry_get(entry, "title"))
        link = clean_text(_entry_get(entry, "link"))
        if not title or not link:
            continue
        tags = _entry_get(entry, "tags") or []
        out.append(
            FinanceHeadline(
                title=title,
                link=link,
                published=clean_text(_entry_get(entry, "published")),
                description=clean_text(_entry_get(entry, "summary")),
                topics=[clean_text(t.get("term")) for t in tags if isinstance(t, dict) and t.get("term")],
            )
        )
    return out


@dataclass(frozen=True)
class YahooFinanceFeed:
    timeout: int = 30

    def fetch(self, category: str = DEFAULT_FEED, limit: int = 10) -> List[FinanceHeadline]:
        url = feed_url(category)
        logger.info(f"Fetching Yahoo Finance feed: {url}")
        resp = requests.get(url, headers={"User-Agent": BROWSER_USER_AGENT}, timeout=self.timeout)
        resp.raise_for_status()
        items = parse_feed(resp.content, limit=max(0, int(limit)))
        logger.info(f"Parsed {len(items)} articles from feed")
        return items
