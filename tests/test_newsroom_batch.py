import unittest
from unittest import mock

from cardinalnews.errors import InvalidRequestError, UpstreamError
from cardinalnews.newsroom.category_articles import (
    CATEGORY_TOPICS,
    DIVERSE_TOPICS,
    MAX_IMAGE_ATTEMPTS,
    CategoryArticleWriter,
    desk_title,
    storage_category,
)
from cardinalnews.newsroom.generation import DEFAULT_AUTHOR
from cardinalnews.newsroom.maintenance import (
    AI_IMAGE_CREDIT,
    FALLBACK_IMAGE_PATTERNS,
    ArticleMaintenance,
    images_to_remove,
)


def _writer(gateway, news_images, articles, verifier=None):
    return CategoryArticleWriter(
        gateway,
        news_images,
        articles,
        verifier=verifier,
        generation_delay=0,
        verification_delay=0,
        image_retry_delay=0,
    )


class TestDeskHelpers(unittest.TestCase):
    def test_storage_category(self):
        self.assertEqual(storage_category("music"), "entertainment")
        self.assertEqual(storage_category("movies"), "entertainment")
        self.assertEqual(storage_category("science"), "science")

    def test_desk_title_falls_back_to_trend(self):
        self.assertEqual(desk_title("<h1>Stars align</h1><p>x</p>", "trend"), "Stars align")
        self.assertEqual(desk_title("<p>no heading</p>", "A" * 120), "A" * 100)


class TestCategoryArticleWriter(unittest.TestCase):
    def setUp(self):
        self.gateway = mock.Mock()
        titles = iter(["Deep sea vents teem with life", "Memory cells mapped in mice", "Gene edits cure rare blindness"])
        self.gateway.chat.side_effect = lambda *a, **k: f"<h1>{next(titles)}</h1><p>{'word ' * 300}</p>"
        self.news_images = mock.Mock()
        counter = iter(range(100))
        self.news_images.find.side_effect = lambda *a, **k: {
            "success": True,
            "imageUrl": f"https://cdn/{next(counter)}.jpg",
            "imageCredit": "Reuters",
        }
        self.articles = mock.Mock()
        self.articles.recent_titles.return_value = []
        self.articles.insert_articles.side_effect = lambda drafts: [
            {"id": f"a{i}", **d} for i, d in enumerate(drafts)
        ]
        self.verifier = mock.Mock()
        self.verifier.verify_and_publish.return_value = {"decision": "publish"}

    def test_generates_inserts_and_verifies(self):
        writer = _writer(self.gateway, self.news_images, self.articles, self.verifier)
        result = writer.generate(["science", "astrology"], 2)
        self.assertEqual(result["totalArticles"], 2)
        self.assertEqual(result["categories"], ["science", "astrology"])
        drafts = self.articles.insert_articles.call_args[0][0]
        self.assertEqual(drafts[0]["title"], "Deep sea vents teem with life")
        self.assertNotIn("<h1>", drafts[0]["content"])
        self.assertEqual(drafts[0]["status"], "draft")
        self.assertEqual(drafts[0]["author"], DEFAULT_AUTHOR)
        self.assertEqual(drafts[0]["read_time"], "2 min read")
        self.assertNotEqual(drafts[0]["image_url"], drafts[1]["image_url"])
        self.assertEqual(self.verifier.verify_and_publish.call_count, 2)

    def test_music_is_stored_as_entertainment(self):
        writer = _writer(self.gateway, None, self.articles)
        writer.generate(["music"], 1)
        draft = self.articles.insert_articles.call_args[0][0][0]
        self.assertEqual(draft["category"], "entertainment")
        self.assertEqual(draft["tags"], ["entertainment", "music", "featured", "trending"])
        self.assertIsNone(draft["image_url"])

    def test_near_duplicates_are_skipped(self):
        self.articles.recent_titles.return_value = ["Deep sea vents teem with life today"]
        writer = _writer(self.gateway, None, self.articles)
        result = writer.generate(["science"], 1)
        self.assertEqual(result["totalArticles"], 0)
        self.assertEqual(result["results"][0]["status"], "skipped_duplicate")
        self.articles.insert_articles.assert_not_called()

    def test_batch_image_gives_up_on_repeats(self):
        finder = mock.Mock()
        finder.find.return_value = {"success": True, "imageUrl": "https://cdn/same.jpg"}
        writer = _writer(self.gateway, finder, self.articles)
        used = {"https://cdn/same.jpg"}
        self.assertEqual(writer._batch_image("t", "science", used), {})
        self.assertEqual(finder.find.call_count, MAX_IMAGE_ATTEMPTS)

    def test_diverse_run_covers_every_section(self):
        gateway = mock.Mock()
        subjects = iter(["Tidal", "Lunar", "Arctic", "Desert", "Quantum", "Urban", "Rural", "Coastal"])
        gateway.chat.side_effect = lambda *a, **k: f"<h1>{next(subjects)} report</h1><p>{'word ' * 250}</p>"
        writer = _writer(gateway, None, self.articles)
        result = writer.generate_diverse(1)
        self.assertEqual(result["categories"], list(DIVERSE_TOPICS))
        self.assertEqual(result["totalArticles"], len(DIVERSE_TOPICS))
        drafts = self.articles.insert_articles.call_args[0][0]
        self.assertEqual({d["category"] for d in drafts}, {storage_category(c) for c in DIVERSE_TOPICS})

    def test_every_desk_has_topics(self):
        for category, topics in CATEGORY_TOPICS.items():
            self.assertEqual(len(topics), 8, category)


class TestMaintenance(unittest.TestCase):
    def test_images_to_remove(self):
        articles = [
            {"id": "1", "title": "a", "image_url": "https://cdn/a.jpg"},
            {"id": "2", "title": "b", "image_url": "https://cdn/a.jpg"},
            {"id": "3", "title": "c", "image_url": "https://cdn/stock-photo-9.jpg"},
            {"id": "4", "title": "d", "image_url": "https://cdn/d.jpg"},
        ]
        self.assertEqual(sorted(a["id"] for a in images_to_remove(articles)), ["2", "3"])

    def test_fix_duplicate_images(self):
        store = mock.Mock()
        store.list_with_images.return_value = [
            {"id": "1", "title": "a", "image_url": "https://cdn/a.jpg"},
            {"id": "2", "title": "b", "image_url": "https://cdn/a.jpg"},
        ]
        result = ArticleMaintenance(store).fix_duplicate_images()
        self.assertEqual(result["fixed"], 1)
        store.delete_articles.assert_called_once_with(["2"])

    def test_regenerate_prefers_news_then_ai(self):
        store = mock.Mock()
        store.list_for_image_refresh.return_value = [
            {"id": "1", "title": "a", "category": "world"},
            {"id": "2", "title": "b", "category": "world"},
        ]
        news = mock.Mock()
        news.find.side_effect = [{"success": True, "imageUrl": "https://cdn/n.jpg"}, {"success": False}]
        ai = mock.Mock()
        ai.generate.return_value = {"imageUrl": "https://cdn/ai.png"}
        maintenance = ArticleMaintenance(store, news_images=news, ai_images=ai, regenerate_delay=0)
        result = maintenance.regenerate_images(["1", "2"])
        self.assertEqual(result["updated"], 2)
        self.assertEqual([r["method"] for r in result["results"]], ["news-search", "ai-generation"])
        first = store.update_article.call_args_list[0][0][1]
        self.assertEqual(first["image_credit"], "News Source")
        second = store.update_article.call_args_list[1][0][1]
        self.assertEqual(second["image_credit"], "AI Generated")
        store.list_for_image_refresh.assert_called_once_with(["1", "2"], limit=50)

    def test_regenerate_records_failures(self):
        store = mock.Mock()
        store.list_for_image_refresh.return_value = [{"id": "1", "title": "a"}]
        result = ArticleMaintenance(store, regenerate_delay=0).regenerate_images()
        self.assertEqual(result["updated"], 0)
        self.assertFalse(result["results"][0]["success"])

    def test_update_author(self):
        store = mock.Mock()
        store.reassign_author.return_value = [{"id": "1"}]
        self.assertEqual(ArticleMaintenance(store).update_author()["updated"], 1)
        store.reassign_author.assert_called_once_with(DEFAULT_AUTHOR, replace=("Cardinal AI",))

    def test_check_duplicates(self):
        store = mock.Mock()
        store.list_for_duplicate_check.return_value = []
        result = ArticleMaintenance(store).check_duplicates()
        self.assertEqual(result["duplicatesFound"], 0)

    def test_fix_missing_images_news_then_ai(self):
        store = mock.Mock()
        store.list_image_candidates.return_value = [
            {"id": "1", "title": "Port strike ends", "category": "business", "excerpt": "Dock workers return"},
            {"id": "2", "title": "Comet visible tonight", "category": "science"},
        ]
        news = mock.Mock()
        news.find.side_effect = [
            {"success": True, "imageUrl": "https://cdn/port.jpg", "imageCredit": "AP"},
            {"success": False, "imageUrl": None},
        ]
        ai = mock.Mock()
        ai.generate.return_value = {"imageUrl": "https://storage/comet.png"}
        maintenance = ArticleMaintenance(store, news_images=news, ai_images=ai, regenerate_delay=0)
        result = maintenance.fix_missing_images()

        self.assertEqual(result["summary"], {"total": 2, "successful": 2, "failed": 0})
        self.assertEqual([d["imageCredit"] for d in result["details"]["success"]], ["AP", AI_IMAGE_CREDIT])
        store.list_image_candidates.assert_called_once_with(FALLBACK_IMAGE_PATTERNS)
        store.update_article.assert_any_call(
            "2",
            {
                "featured_image": "https://storage/comet.png",
                "image_url": "https://storage/comet.png",
                "og_image": "https://storage/comet.png",
                "image_credit": AI_IMAGE_CREDIT,
            },
        )

    def test_fix_missing_images_retries_rejected_image(self):
        store = mock.Mock()
        store.list_image_candidates.return_value = [
            {"id": "1", "title": "Apple earnings beat", "category": "business", "excerpt": "iPhone sales rose"}
        ]
        news = mock.Mock()
        news.find.side_effect = [
            {"success": True, "imageUrl": "https://cdn/samsung.jpg", "imageCredit": "Samsung"},
            {"success": True, "imageUrl": "https://cdn/apple.jpg", "imageCredit": "Reuters"},
        ]
        validator = mock.Mock()
        validator.validate.return_value = {"valid": False, "confidence": 95}
        maintenance = ArticleMaintenance(store, news_images=news, image_validator=validator, regenerate_delay=0)
        result = maintenance.fix_missing_images()

        self.assertEqual(result["details"]["success"][0]["imageCredit"], "Reuters")
        news.find.assert_called_with("business iPhone sales rose", "business")
        self.assertEqual(store.update_article.call_args[0][1]["image_url"], "https://cdn/apple.jpg")

    def test_fix_missing_images_keeps_low_confidence_rejection(self):
        store = mock.Mock()
        store.list_image_candidates.return_value = [{"id": "1", "title": "Rates hold", "category": "business"}]
        news = mock.Mock()
        news.find.return_value = {"success": True, "imageUrl": "https://cdn/fed.jpg", "imageCredit": "AP"}
        validator = mock.Mock()
        validator.validate.return_value = {"valid": False, "confidence": 60}
        result = ArticleMaintenance(
            store, news_images=news, image_validator=validator, regenerate_delay=0
        ).fix_missing_images()
        self.assertEqual(result["summary"]["successful"], 1)
        self.assertEqual(news.find.call_count, 1)

    def test_fix_missing_images_records_failures(self):
        store = mock.Mock()
        store.list_image_candidates.return_value = [{"id": "1", "title": "Quiet day"}]
        news = mock.Mock()
        news.find.return_value = {"success": False}
        result = ArticleMaintenance(store, news_images=news, regenerate_delay=0).fix_missing_images()
        self.assertEqual(result["summary"], {"total": 1, "successful": 0, "failed": 1})
        self.assertEqual(result["details"]["failed"][0]["reason"], "Both image fetch and AI generation failed")
        store.update_article.assert_not_called()

    def test_attach_news_image(self):
        store = mock.Mock()
        news = mock.Mock()
        news.find.return_value = {
            "success": True,
            "imageUrl": "https://cdn/x.jpg",
            "imageCredit": "BBC",
            "sourceUrl": "https://bbc.co.uk/x",
        }
        maintenance = ArticleMaintenance(store, news_images=news)
        result = maintenance.attach_news_image("a1", "Storm hits coast")
        self.assertEqual(
            result, {"success": True, "imageUrl": "https://cdn/x.jpg", "credit": "BBC", "sourceUrl": "https://bbc.co.uk/x"}
        )
        news.find.assert_called_once_with("Storm hits coast", "news")
        self.assertEqual(store.update_article.call_args[0][1]["og_image"], "https://cdn/x.jpg")

        with self.assertRaises(InvalidRequestError):
            maintenance.attach_news_image("a1", "")
        news.find.return_value = {"success": False}
        with self.assertRaises(UpstreamError):
            maintenance.attach_news_image("a1", "Storm hits coast")


if __name__ == "__main__":
    unittest.main()
