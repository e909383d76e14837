"""Curated topics used to seed an empty trends table across every section."""

from __future__ import annotations

from typing import List

from cardinalnews.ingestion.google_trends import TRENDS_HOME, TrendCandidate, extract_keywords

SEED_STOPWORDS = frozenset(["this", "that", "with", "from", "have", "been"])

# (topic, category, strength, search volume)
DIVERSE_TOPICS = (
    ("Global Climate Summit Reaches Historic Agreement", "world", 95, 250000),
    ("International Trade Deals Reshape Global Economy", "world", 88, 180000),
    ("UN Security Council Addresses Regional Conflicts", "world", 92, 220000),
    ("Tech Giants Announce Major Merger Plans", "business", 94, 280000),
    ("Stock Markets Hit Record Highs Across Asia", "business", 87, 190000),
    ("Cryptocurrency Regulations Transform Financial Sector", "business", 91, 240000),
    ("Startup Unicorns Drive Innovation Economy", "business", 85, 170000),
    ("Revolutionary AI Breakthrough Changes Computing", "technology", 98, 350000),
    ("Quantum Computing Achieves Major Milestone", "technology", 93, 260000),
    ("5G Networks Transform Mobile Connectivity", "technology", 89, 210000),
    ("Cybersecurity Threats Prompt Industry Response", "technology", 90, 230000),
    ("Championship Finals Break Viewership Records", "sports", 96, 320000),
    ("Olympic Athletes Set New World Records", "sports", 94, 290000),
    ("Major League Playoffs Enter Critical Stage", "sports", 88, 200000),
    ("Rising Sports Stars Capture Global Attention", "sports", 86, 185000),
    ("Blockbuster Film Dominates Global Box Office", "entertainment", 92, 270000),
    ("Music Awards Celebrate Industry Excellence", "entertainment", 89, 215000),
    ("Streaming Platform Announces Original Series", "entertainment", 87, 195000),
    ("Celebrity News Trends Across Social Media", "entertainment", 84, 175000),
    ("Space Mission Discovers Potential Habitable Planet", "science", 97, 340000),
    ("Medical Breakthrough Offers Hope for Disease Treatment", "science", 95, 310000),
    ("Climate Research Reveals Critical Environmental Data", "science", 91, 245000),
    ("Archaeological Discovery Rewrites Ancient History", "science", 88, 205000),
    ("Electoral Results Reshape National Landscape", "politics", 93, 275000),
    ("Policy Reform Passes Through Legislature", "politics", 89, 220000),
    ("International Diplomacy Yields New Agreements", "politics", 90, 235000),
    ("Political Debates Highlight Key Policy Issues", "politics", 86, 190000),
)


def seed_candidates() -> List[TrendCandidate]:
    return [
        TrendCandidate(
            topic=topic,
            category=category,
            trend_strength=strength,
            region="global",
            search_volume=volume,
            keywords=extract_keywords(topic, min_len=4, stopwords=SEED_STOPWORDS),
            related_queries=[topic],
            source_url=TRENDS_HOME,
            raw_traffic=f"{volume:,}+",
            fetched_from="seed",
        )
        for topic, category, strength, volume in DIVERSE_TOPICS
    ]


def seed_categories() -> List[str]:
    out: List[str] = []
    for _, category, _, _ in DIVERSE_TOPICS:
        if category not in out:
            out.append(category)
    return out
