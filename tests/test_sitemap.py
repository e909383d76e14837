import unittest
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

from cardinalnews.seo.sitemap import SITEMAP_CATEGORIES, build_sitemap

NS = {"sm": "http://www.sitemaps.org/schemas/sitemap/0.9", "news": "http://www.google.com/schemas/sitemap-news/0.9"}


class TestSitemap(unittest.TestCase):
    def setUp(self):
        self.xml = build_sitemap(
            [
                {"slug": "fed-holds-rates-abc123", "published_at": "2025-03-01T08:00:00+00:00", "updated_at": None},
                {"slug": None},
                {"slug": "q&a-with-nasa", "published_at": datetime(2025, 3, 2, tzinfo=timezone.utc)},
            ],
            base_url="https://news.example.com/",
            now=datetime(2025, 3, 10, tzinfo=timezone.utc),
        )
        self.root = ET.fromstring(self.xml.encode("utf-8"))

    def test_url_count(self):
        urls = self.root.findall("sm:url", NS)
        self.assertEqual(len(urls), 1 + len(SITEMAP_CATEGORIES) + 2)

    def test_homepage_and_categories(self):
        first = self.root.find("sm:url", NS)
        self.assertEqual(first.find("sm:loc", NS).text, "https://news.example.com/")
        self.assertEqual(first.find("sm:priority", NS).text, "1.0")
        self.assertEqual(first.find("sm:lastmod", NS).text, "2025-03-10T00:00:00Z")
        self.assertIn("https://news.example.com/category/technology", self.xml)

    def test_article_news_block(self):
        locs = [u.find("sm:loc", NS).text for u in self.root.findall("sm:url", NS)]
        self.assertIn("https://news.example.com/article/q&a-with-nasa", locs)
        news = self.root.findall("sm:url", NS)[-2].find("news:news", NS)
        self.assertEqual(news.find("news:title", NS).text, "fed holds rates abc123")
        self.assertEqual(news.find("news:publication_date", NS).text, "2025-03-01T08:00:00Z")
        self.assertEqual(news.find("news:publication/news:name", NS).text, "Cardinal News")

    def test_ampersand_is_escaped(self):
        self.assertIn("<loc>https://news.example.com/article/q&amp;a-with-nasa</loc>", self.xml)
        self.assertIn("<news:title>q&amp;a with nasa</news:title>", self.xml)
        self.assertNotIn("q&a-with", self.xml)

    def test_articles_without_slug_are_skipped(self):
        xml = build_sitemap([{"slug": ""}, {"title": "No slug"}], now=datetime(2025, 3, 10, tzinfo=timezone.utc))
        self.assertNotIn("/article/", xml)
        self.assertEqual(xml.count("<url>"), 1 + len(SITEMAP_CATEGORIES))

    def test_naive_and_zulu_timestamps_are_utc(self):
        xml = build_sitemap(
            [
                {"slug": "naive", "published_at": datetime(2025, 3, 4, 12, 30)},
                {"slug": "zulu", "published_at": "2025-03-05T06:00:00Z", "updated_at": "2025-03-05T09:15:00"},
            ],
            now=datetime(2025, 3, 10, 5, 0),
        )
        root = ET.fromstring(xml.encode("utf-8"))
        urls = root.findall("sm:url", NS)
        self.assertEqual(urls[0].find("sm:lastmod", NS).text, "2025-03-10T05:00:00Z")
        naive, zulu = urls[-2], urls[-1]
        self.assertEqual(naive.find("sm:lastmod", NS).text, "2025-03-04T12:30:00Z")
        self.assertEqual(naive.find("news:news/news:publication_date", NS).text, "2025-03-04T12:30:00Z")
        self.assertEqual(zulu.find("sm:lastmod", NS).text, "2025-03-05T09:15:00Z")
        self.assertEqual(zulu.find("news:news/news:publication_date", NS).text, "2025-03-05T06:00:00Z")


if __name__ == "__main__":
    unittest.main()
