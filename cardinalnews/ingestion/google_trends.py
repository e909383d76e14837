"""Google Trends RSS ingestion.

Parses the `daily` and `realtime` trending-search feeds into `TrendCandidate`
records: category guess, keyword list and a 50-100 strength derived from the
approximate traffic.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import feedparser
import requests

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
TRENDS_HOME = "https://trends.google.com"
FEED_TEMPLATES = (
    "https://trends.google.com/trends/trendingsearches/daily/rss?geo={geo}",
    "https://trends.google.com/trends/trendingsearches/realtime/rss?geo={geo}",
)
MAX_ITEMS_PER_FEED = 30

REGION_GEO_CODES: Dict[str, str] = {
    "global": "US",
    "us": "US",
    "americas": "US",
    "all": "US",
    "uk": "GB",
    "europe": "DE",
    "asia": "JP",
    "africa": "ZA",
    "oceania": "AU",
}

# First match wins; plain substring patterns, so "ai" also hits "said".
CATEGORY_PATTERNS = (
    ("technology", re.compile(r"tech|ai|digital|cyber|software|app|internet|computer")),
    ("business", re.compile(r"business|market|stock|trade|economy|finance|company")),
    (
        "sports",
        re.compile(r"sport|game|championship|league|team|player|football|basketball|nba|nfl|soccer|lakers|vs"),
    ),
    ("science", re.compile(r"science|research|study|discovery|space|health|medical")),
    ("entertainment", re.compile(r"entertainment|movie|music|celebrity|show|film|actor")),
    ("politics", re.compile(r"politics|election|government|vote|policy|law")),
)

KEYWORD_STOPWORDS = frozenset(
    ["the", "and", "for", "are", "but", "not", "you", "all", "can", "her", "was", "one", "our", "out", "has"]
)

_TAG_RE = re.compile(r"<[^>]*>")


@dataclass(frozen=True)
class TrendCandidate:
    topic: str
    category: str
    trend_strength: int
    region: str
    search_volume: int
    keywords: List[str] = field(default_factory=list)
    related_queries: List[str] = field(default_factory=list)
    source_url: str = TRENDS_HOME
    fetched_at: Optional[datetime] = None
    raw_traffic: str = "10,000+"
    fetched_from: str = "google_trends_rss"

    def to_row(self) -> Dict[str, Any]:
        trend_data: Dict[str, Any] = {
            "fetched_from": self.fetched_from,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "raw_traffic": self.raw_traffic,
        }
        if self.fetched_from == "seed":
            trend_data["diversity_seed"] = True
        return {
            "topic": self.topic,
            "category": self.category,
            "trend_strength": self.trend_strength,
            "region": self.region,
            "search_volume": self.search_volume,
            "keywords": list(self.keywords),
            "related_queries": list(self.related_queries),
            "source_url": self.source_url,
            "trend_data": trend_data,
        }


_GEO_CODE_RE = re.compile(r"^[A-Za-z]{2}(-[A-Za-z0-9]{1,3})?$")


def region_to_geo(region: Optional[str]) -> str:
    """Named regions map to a country feed; ISO codes such as "FR" or "US-NY" pass through."""
    key = (region or "global").strip()
    if key.lower() in REGION_GEO_CODES:
        return REGION_GEO_CODES[key.lower()]
    if _GEO_CODE_RE.match(key):
        return key.upper()
    return "US"


def parse_traffic(traffic: Optional[str]) -> int:
    """'2M+' -> 2000000, '100K+' -> 100000, '20,000+' -> 20000."""
    t = (traffic or "").strip()
    if not t:
        return 10000
    lead = re.match(r"[\d.]+", t)
    upper = t.upper()
    try:
        if "M+" in upper and lead:
            return int(float(lead.group(0)) * 1_000_000)
        if "K+" in upper and lead:
            return int(float(lead.group(0)) * 1_000)
        return int(re.sub(r"[,+]", "", t)) or 10000
    except ValueError:
        return 10000


def trend_strength(traffic: int) -> int:
    return min(100, max(50, traffic // 10000))


def categorize(text: str) -> str:
    lowered = (text or "").lower()
    for category, pattern in CATEGORY_PATTERNS:
        if pattern.search(lowered):
            return category
    return "world"


def extract_keywords(title: str, *, min_len: int = 3, stopwords=KEYWORD_STOPWORDS, limit: int = 5) -> List[str]:
    """Unique lowercased title words (order kept) of at least `min_len` chars."""
    out: List[str] = []
    for w in (title or "").lower().split():
        if len(w) < min_len or w in stopwords or w in out:
            continue
        out.append(w)
        if len(out) >= limit:
            break
    return out


def _entry_get(entry: Any, key: str) -> Any:
    value = getattr(entry, key, None)
    if value is None and isinstance(entry, dict):
        value = entry.get(key)
    return value


def _entry_datetime(entry: Any) -> datetime:
    parsed = _entry_get(entry, "published_parsed")
    if parsed:
        return datetime(*parsed[:6], tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


def parse_feed(content: Any, *, geo: str, limit: int = MAX_ITEMS_PER_FEED) -> List[TrendCandidate]:
    """Parse one Google Trends RSS document (bytes or text)."""
    parsed = feedparser.parse(content)
    out: List[TrendCandidate] = []
    for index, entry in enumerate((parsed.entries or [])[:limit]):
        title = html.unescape(str(_entry_get(entry, "title") or f"Trend {index + 1}").strip())
        traffic = str(_entry_get(entry, "ht_approx_traffic") or "10,000+").strip()
        summary = _entry_get(entry, "summary")
        description = _TAG_RE.sub("", summary)[:200] if isinstance(summary, str) and summary else title
        link = str(_entry_get(entry, "link") or TRENDS_HOME)
        volume = parse_traffic(traffic)
        out.append(
            TrendCandidate(
                topic=title,
                category=categorize(f"{title} {description}"),
                trend_strength=trend_strength(volume),
                region=geo,
                search_volume=volume,
                keywords=extract_keywords(title),
                related_queries=[title],
                source_url=link,
                fetched_at=_entry_datetime(entry),
                raw_traffic=traffic,
            )
        )
    return out


def dedupe_and_rank(candidates: Sequence[TrendCandidate]) -> List[TrendCandidate]:
    """Keep the last candidate per topic text, strongest first."""
    by_topic: Dict[str, TrendCandidate] = {}
    for c in candidates:
        by_topic[c.topic] = c
    return sorted(by_topic.values(), key=lambda c: c.trend_strength, reverse=True)


_FALLBACK_TOPICS = (
    (
        "Global Technology Summit Announces Major AI Breakthroughs",
        "technology",
        95,
        125000,
        ["artificial intelligence", "technology", "innovation"],
        ["AI technology news", "tech summit 2024"],
    ),
    (
        "International Space Station Mission Update",
        "science",
        88,
        98000,
        ["space", "science", "research"],
        ["space station news", "space mission"],
    ),
    (
        "Global Economic Summit Concludes with New Agreements",
        "business",
        92,
        150000,
        ["economy", "business", "summit"],
        ["economic news", "business summit"],
    ),
    (
        "Climate Action Initiative Launched Worldwide",
        "world",
        85,
        87000,
        ["climate", "environment", "sustainability"],
        ["climate action", "environmental policy"],
    ),
    (
        "Major Sports Championship Finals Draw Record Viewers",
        "sports",
        90,
        112000,
        ["sports", "championship", "finals"],
        ["sports news", "championship results"],
    ),
)


def fallback_trends(region: Optional[str]) -> List[TrendCandidate]:
    region_label = (region or "global").lower()
    return [
        TrendCandidate(
            topic=topic,
            category=category,
            trend_strength=strength,
            region=region_label,
            search_volume=volume,
            keywords=list(keywords),
            related_queries=list(related),
            source_url=TRENDS_HOME,
            raw_traffic=f"{volume:,}+",
            fetched_from="fallback",
        )
        for topic, category, strength, volume, keywords, related in _FALLBACK_TOPICS
    ]


@dataclass(frozen=True)
class GoogleTrendsIngestor:
    """Fetch the daily + realtime feeds for a region; fixed fallback topics when nothing parses."""

    timeout: int = 30
    name: str = "google_trends"

    def fetch(self, region: Optional[str] = "global") -> List[TrendCandidate]:
        geo = region_to_geo(region)
        found: List[TrendCandidate] = []
        for template in FEED_TEMPLATES:
            url = template.format(geo=geo)
            try:
                logger.info(f"Fetching trends from: {url}")
                resp = requests.get(url, headers={"User-Agent": BROWSER_USER_AGENT}, timeout=self.timeout)
                resp.raise_for_status()
                items = parse_feed(resp.content, geo=geo)
                logger.info(f"Found {len(items)} items in RSS feed")
                found.extend(items)
            except requests.RequestException as e:
                logger.error(f"Error fetching from {url}: {e}")
                continue
        ranked = dedupe_and_rank(found)
        if not ranked:
            logger.warning(f"No trends parsed for {region}; using fallback topics")
            return fallback_trends(region)
        return ranked
