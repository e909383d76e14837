import random
import unittest

from cardinalnews.newsroom.text import (
    extract_h1,
    file_slug,
    make_slug,
    plain_excerpt,
    read_time,
    remove_h1,
    slug_base,
    strip_html,
)
from cardinalnews.scoring.similarity import (
    find_duplicate_pairs,
    find_similar_title,
    is_near_duplicate,
    title_similarity,
)


class TestText(unittest.TestCase):
    def test_slug(self):
        self.assertEqual(slug_base("Big News: Today!"), "big-news-today")
        slug = make_slug("Big News: Today!", rng=random.Random(1))
        self.assertRegex(slug, r"^big-news-today-[0-9a-z]{6}$")

    def test_slug_truncates(self):
        self.assertEqual(len(slug_base("word " * 40, 50)), 50)

    def test_file_slug(self):
        self.assertEqual(file_slug("  Mars Rover: Lands! "), "mars-rover-lands")

    def test_read_time(self):
        self.assertEqual(read_time(0), "1 min read")
        self.assertEqual(read_time(300), "2 min read")
        self.assertEqual(read_time(1000), "5 min read")
        self.assertEqual(read_time(1100), "6 min read")

    def test_h1_helpers(self):
        html = "<h1 class='t'>Headline <em>here</em></h1><p>Body text</p>"
        self.assertEqual(extract_h1(html), "Headline here")
        self.assertEqual(remove_h1(html), "<p>Body text</p>")
        self.assertIsNone(extract_h1("<p>no title</p>"))

    def test_excerpt(self):
        self.assertEqual(strip_html("<p>One</p>\n<p>Two</p>"), "One Two")
        self.assertEqual(plain_excerpt("<p>Hello world</p>", 5), "Hello...")


class TestSimilarity(unittest.TestCase):
    def test_prefix_guard(self):
        existing = ["SpaceX launches Starship on record flight", "Unrelated story"]
        self.assertEqual(
            find_similar_title("SpaceX launches Starship again", existing), "SpaceX launches Starship on record flight"
        )
        self.assertIsNone(find_similar_title("Markets close higher", existing))

    def test_word_overlap(self):
        a = "Apple unveils new iPhone with satellite texting"
        b = "Apple unveils new iPhone with satellite messaging"
        self.assertAlmostEqual(title_similarity(a, b), 5 / 6)
        self.assertTrue(is_near_duplicate(a, [b]))
        self.assertFalse(is_near_duplicate(a, ["Completely different headline today"]))
        self.assertEqual(title_similarity("a an the", "of it"), 0.0)

    def test_duplicate_pairs_keep_longer_article(self):
        articles = [
            {"id": "1", "title": "Apple unveils new iPhone with satellite texting", "word_count": 500},
            {"id": "2", "title": "Apple unveils new iPhone with satellite messaging", "word_count": 900},
            {"id": "3", "title": "Election turnout breaks records", "word_count": 700},
        ]
        pairs = find_duplicate_pairs(articles)
        self.assertEqual(len(pairs), 1)
        self.assertEqual(pairs[0].kept["id"], "2")
        self.assertEqual(pairs[0].removed["id"], "1")
        self.assertEqual(pairs[0].to_dict()["similarity"], "83.3%")


if __name__ == "__main__":
    unittest.main()
