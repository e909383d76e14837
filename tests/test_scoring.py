import unittest
from datetime import datetime, timedelta, timezone
from unittest import mock

from cardinalnews.scoring.search_ranking import rank_results, recency_bonus, relevance_score, search_terms
from cardinalnews.scoring.seo_score import seo_report, seo_score
from cardinalnews.search.smart_search import SmartSearch

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

COMPLETE_ARTICLE = {
    "id": "a1",
    "title": "Central bank holds interest rates steady again",
    "meta_description": "x" * 140,
    "meta_keywords": ["rates"],
    "image_url": "https://cdn.example.com/a.jpg",
    "slug": "central-bank-holds-rates",
    "read_time": "4 min read",
    "category": "business",
    "author": "Cardinal News Staff",
    "content": "y" * 1500,
    "created_at": "2025-03-10T10:00:00+00:00",
}


class TestSEOScore(unittest.TestCase):
    def test_complete_article_passes_every_check(self):
        result = seo_score(COMPLETE_ARTICLE)
        self.assertEqual(result.score, 99)
        self.assertEqual(result.suggestions, [])
        self.assertTrue(all(result.checks.values()))

    def test_missing_fields_lower_score(self):
        article = dict(COMPLETE_ARTICLE, title="Short", image_url=None, content="tiny")
        result = seo_score(article)
        self.assertEqual(result.score, 66)
        self.assertFalse(result.checks["hasTitle"])
        self.assertFalse(result.checks["hasImage"])
        self.assertEqual(len(result.suggestions), 3)

    def test_report_buckets(self):
        weak = {"id": "a2", "title": "Weak", "created_at": "2025-03-09T00:00:00+00:00"}
        middling = dict(COMPLETE_ARTICLE, id="a3", title="Short", image_url=None, content="tiny")
        report = seo_report([weak, COMPLETE_ARTICLE, middling])
        self.assertEqual(report["optimized"], 1)
        self.assertEqual(report["needsWork"], 1)
        self.assertEqual(report["critical"], 1)
        self.assertEqual(report["articles"][0]["id"], "a1")
        self.assertEqual(seo_report([])["averageScore"], 0)


class TestSearchRanking(unittest.TestCase):
    def test_terms(self):
        self.assertEqual(search_terms("AI in the EU"), ["the"])

    def test_recency(self):
        self.assertEqual(recency_bonus(NOW - timedelta(days=3), now=NOW), 17)
        self.assertEqual(recency_bonus("2024-01-01T00:00:00Z", now=NOW), 0)
        self.assertEqual(recency_bonus(None, now=NOW), 0)
        self.assertEqual(recency_bonus("not a date", now=NOW), 0)

    def test_exact_title_beats_partial(self):
        exact = {"title": "Mars rover", "excerpt": "", "published_at": None}
        partial = {"title": "New photos from the Mars rover", "excerpt": "mars rover images", "published_at": None}
        self.assertEqual(relevance_score(exact, "mars rover"), 100 + 5 + 5)
        self.assertEqual(relevance_score(partial, "mars rover"), 25 + 10 + 5 + 5 + 2 + 2)
        ranked = rank_results([partial, exact], "mars rover", limit=1)
        self.assertEqual(ranked[0]["title"], "Mars rover")
        self.assertEqual(len(ranked), 1)


class TestSmartSearch(unittest.TestCase):
    def test_empty_query(self):
        store = mock.Mock()
        self.assertEqual(SmartSearch(store).search("  ")["total"], 0)
        store.search_published.assert_not_called()

    def test_results_with_suggestions(self):
        store = mock.Mock()
        store.search_published.return_value = [{"title": "Mars rover finds water", "excerpt": "", "published_at": None}]
        gateway = mock.Mock(configured=True)
        gateway.chat_json.return_value = {"suggestions": ["nasa"], "completions": ["mars rover news"]}
        result = SmartSearch(store, gateway).search("mars rover", limit=500)
        self.assertEqual(result["total"], 1)
        self.assertEqual(result["suggestions"], ["nasa"])
        store.search_published.assert_called_once_with("mars rover", limit=100)

    def test_suggestion_failure_is_not_fatal(self):
        store = mock.Mock()
        store.search_published.return_value = []
        gateway = mock.Mock(configured=True)
        gateway.chat_json.side_effect = RuntimeError("boom")
        result = SmartSearch(store, gateway).search("mars")
        self.assertEqual(result["suggestions"], [])
        self.assertEqual(result["completions"], [])


if __name__ == "__main__":
    unittest.main()
