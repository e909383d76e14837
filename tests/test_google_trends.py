import unittest
from unittest import mock

import requests

from cardinalnews.ingestion.google_trends import (
    GoogleTrendsIngestor,
    TrendCandidate,
    categorize,
    dedupe_and_rank,
    extract_keywords,
    fallback_trends,
    parse_feed,
    parse_traffic,
    region_to_geo,
    trend_strength,
)

SAMPLE_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:ht="https://trends.google.com/trending/rss">
  <channel>
    <title>Daily Search Trends</title>
    <item>
      <title>Lakers vs Celtics</title>
      <link>https://trends.google.com/trends/explore?q=lakers</link>
      <description>Lakers beat the Celtics in overtime</description>
    </item>
    <item>
      <title>Election results</title>
      <link>https://trends.google.com/trends/explore?q=election</link>
      <description>Polls close across the country</description>
    </item>
  </channel>
</rss>
"""


def _candidate(topic, strength):
    return TrendCandidate(topic=topic, category="world", trend_strength=strength, region="US", search_volume=10000)


class TestTrafficAndStrength(unittest.TestCase):
    def test_parse_traffic_suffixes(self):
        self.assertEqual(parse_traffic("2M+"), 2_000_000)
        self.assertEqual(parse_traffic("100K+"), 100_000)
        self.assertEqual(parse_traffic("20,000+"), 20_000)

    def test_parse_traffic_defaults(self):
        self.assertEqual(parse_traffic(None), 10000)
        self.assertEqual(parse_traffic(""), 10000)
        self.assertEqual(parse_traffic("lots"), 10000)

    def test_strength_is_clamped(self):
        self.assertEqual(trend_strength(10000), 50)
        self.assertEqual(trend_strength(700_000), 70)
        self.assertEqual(trend_strength(5_000_000), 100)


class TestCategorizeAndKeywords(unittest.TestCase):
    def test_categories(self):
        self.assertEqual(categorize("Lakers vs Celtics"), "sports")
        self.assertEqual(categorize("Stock market rally"), "business")
        self.assertEqual(categorize("Election results"), "politics")
        self.assertEqual(categorize("Flood warnings"), "world")

    def test_keywords_are_unique_and_limited(self):
        kws = extract_keywords("The Big big Storm hits the coast and the city tonight")
        self.assertEqual(kws, ["big", "storm", "hits", "coast", "city"])

    def test_region_codes(self):
        self.assertEqual(region_to_geo("UK"), "GB")
        self.assertEqual(region_to_geo("global"), "US")
        self.assertEqual(region_to_geo(None), "US")
        self.assertEqual(region_to_geo("mars"), "US")
        self.assertEqual(region_to_geo("fr"), "FR")
        self.assertEqual(region_to_geo("US-NY"), "US-NY")
        self.assertEqual(region_to_geo("GB-LND"), "GB-LND")


class TestFeedParsing(unittest.TestCase):
    def test_parse_feed_items(self):
        items = parse_feed(SAMPLE_FEED, geo="US")
        self.assertEqual([i.topic for i in items], ["Lakers vs Celtics", "Election results"])
        self.assertEqual(items[0].category, "sports")
        self.assertEqual(items[1].category, "politics")
        self.assertEqual(items[0].source_url, "https://trends.google.com/trends/explore?q=lakers")
        self.assertEqual(items[0].related_queries, ["Lakers vs Celtics"])
        self.assertTrue(50 <= items[0].trend_strength <= 100)

    def test_dedupe_keeps_last_and_sorts(self):
        ranked = dedupe_and_rank([_candidate("a", 60), _candidate("b", 90), _candidate("a", 70)])
        self.assertEqual([(c.topic, c.trend_strength) for c in ranked], [("b", 90), ("a", 70)])

    def test_row_marks_seed_topics(self):
        row = TrendCandidate(
            topic="x", category="world", trend_strength=80, region="global", search_volume=1, fetched_from="seed"
        ).to_row()
        self.assertTrue(row["trend_data"]["diversity_seed"])
        self.assertEqual(row["trend_data"]["fetched_from"], "seed")


class TestIngestor(unittest.TestCase):
    def test_falls_back_when_feeds_fail(self):
        with mock.patch("cardinalnews.ingestion.google_trends.requests.get", side_effect=requests.ConnectionError("down")):
            items = GoogleTrendsIngestor(timeout=1).fetch("asia")
        self.assertEqual(len(items), 5)
        self.assertTrue(all(i.fetched_from == "fallback" for i in items))
        self.assertEqual(items[0].region, "asia")

    def test_fetch_parses_both_feeds(self):
        resp = mock.Mock(content=SAMPLE_FEED)
        resp.raise_for_status.return_value = None
        with mock.patch("cardinalnews.ingestion.google_trends.requests.get", return_value=resp) as get:
            items = GoogleTrendsIngestor(timeout=1).fetch("uk")
        self.assertEqual(get.call_count, 2)
        self.assertIn("geo=GB", get.call_args_list[0][0][0])
        self.assertEqual(sorted(i.topic for i in items), ["Election results", "Lakers vs Celtics"])

    def test_fallback_topics_are_fixed(self):
        self.assertEqual(fallback_trends(None)[0].region, "global")


if __name__ == "__main__":
    unittest.main()
