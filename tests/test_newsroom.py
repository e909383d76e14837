import json
import unittest
from unittest import mock

from cardinalnews.errors import DuplicateArticleError, InvalidRequestError, NotFoundError, UpstreamError
from cardinalnews.ingestion.google_trends import TrendCandidate
from cardinalnews.ingestion.seed_topics import seed_candidates, seed_categories
from cardinalnews.newsroom.automation import AutomationRunner
from cardinalnews.newsroom.generation import DEFAULT_AUTHOR, ArticleGenerator
from cardinalnews.newsroom.metadata import MetadataAutoPopulator
from cardinalnews.newsroom.publishing import Publisher, parse_schedule
from cardinalnews.newsroom.trends import TrendsService
from cardinalnews.storage.postgres_jobs import JobLog


class RecordingJobLog(JobLog):
    """JobLog that records lifecycle calls instead of writing rows."""

    def __init__(self):
        super().__init__("unused")
        self.events = []

    def start(self, job_type, payload=None):
        self.events.append(("start", job_type, payload))
        return "job-1"

    def complete(self, job_id, payload=None):
        self.events.append(("complete", job_id))

    def fail(self, job_id, message):
        self.events.append(("fail", job_id, message))

    def prune(self, *, days=7):
        self.events.append(("prune", days))
        return 0


def _candidate(topic):
    return TrendCandidate(topic=topic, category="world", trend_strength=70, region="US", search_volume=10000)


TOPIC = {
    "id": "t1",
    "topic": "Quantum chips",
    "category": "technology",
    "keywords": ["quantum"],
    "related_queries": [],
    "region": "US",
    "trend_data": None,
}

PAYLOAD = {
    "title": "Quantum chips get faster",
    "excerpt": "Labs report a speedup.",
    "content": "<p>" + "word " * 400 + "</p>",
    "metaKeywords": ["quantum"],
    "tags": ["chips"],
    "category": "technology",
    "sources": [{"name": "Nature", "url": "https://nature.com"}],
}


class TestJobTracking(unittest.TestCase):
    def test_success_completes_job(self):
        jobs = RecordingJobLog()
        with jobs.track("fetch_trends", {"region": "US"}) as job_id:
            self.assertEqual(job_id, "job-1")
        self.assertEqual(jobs.events, [("start", "fetch_trends", {"region": "US"}), ("complete", "job-1")])

    def test_failure_marks_job_and_reraises(self):
        jobs = RecordingJobLog()
        with self.assertRaises(ValueError):
            with jobs.track("generate_article"):
                raise ValueError("bad model output")
        self.assertEqual(jobs.events[-1], ("fail", "job-1", "bad model output"))


class TestTrendsService(unittest.TestCase):
    def setUp(self):
        self.ingestor = mock.Mock()
        self.topics = mock.Mock()
        self.topics.insert_topic.side_effect = lambda row: {"id": "id-" + row["topic"], **row}
        self.topics.delete_older_than.return_value = 0
        self.generator = mock.Mock()
        self.jobs = RecordingJobLog()
        self.service = TrendsService(self.ingestor, self.topics, self.jobs, self.generator, seed_delay=0)

    def test_fetch_skips_recent_topics_and_generates(self):
        self.ingestor.fetch.return_value = [_candidate("a"), _candidate("b"), _candidate("c")]
        self.topics.fetched_recently.side_effect = lambda topic, hours: topic == "b"
        result = self.service.fetch_trends("US", 2, verify=False)
        self.assertEqual(result["topicsAdded"], 1)
        self.assertEqual(result["message"], "Added 1 new trending topics")
        self.topics.delete_older_than.assert_called_once_with(hours=48)
        self.generator.generate.assert_called_once_with("id-a", verify=False)
        self.assertEqual(self.jobs.events[0], ("start", "fetch_trends", {"region": "US", "limit": 2}))

    def test_generation_errors_do_not_stop_the_fetch(self):
        self.ingestor.fetch.return_value = [_candidate("a"), _candidate("b")]
        self.topics.fetched_recently.return_value = False
        self.generator.generate.side_effect = UpstreamError("model down")
        result = self.service.fetch_trends("US", 10)
        self.assertEqual(result["topicsAdded"], 2)
        self.assertEqual(self.jobs.events[-1], ("complete", "job-1"))

    def test_seed_skips_when_populated(self):
        self.topics.count.return_value = 9
        result = self.service.seed()
        self.assertEqual(result["topicsCount"], 9)
        self.topics.insert_topic.assert_not_called()

    def test_seed_force_refresh(self):
        self.topics.count.return_value = 9
        self.topics.topic_exists.return_value = False
        self.generator.generate.return_value = {"article": {"id": "art"}}
        result = self.service.seed(force_refresh=True)
        self.topics.delete_all.assert_called_once()
        self.assertEqual(result["topicsInserted"], len(seed_candidates()))
        self.assertEqual(result["articlesGenerated"], len(seed_candidates()))
        self.assertEqual(result["categoriesRepresented"], seed_categories())
        row = self.topics.insert_topic.call_args[0][0]
        self.assertTrue(row["trend_data"]["diversity_seed"])


class TestArticleGenerator(unittest.TestCase):
    def setUp(self):
        self.gateway = mock.Mock()
        self.gateway.chat_json.return_value = dict(PAYLOAD)
        self.images = mock.Mock()
        self.images.pick.return_value = {"imageUrl": "https://cdn/x.jpg", "imageCredit": "Reuters"}
        self.articles = mock.Mock()
        self.articles.recent_titles.return_value = ["Old headline one"]
        self.articles.insert_article.side_effect = lambda fields: {"id": "a1", **fields}
        self.topics = mock.Mock()
        self.topics.get_topic.return_value = dict(TOPIC)
        self.verifier = mock.Mock()
        self.verifier.verify_and_publish.return_value = {"decision": "publish", "article_status": "published"}
        self.jobs = RecordingJobLog()
        self.generator = ArticleGenerator(
            self.gateway, self.images, self.articles, self.topics, self.jobs, verifier=self.verifier
        )

    def test_generates_and_verifies(self):
        result = self.generator.generate("t1")
        self.assertEqual(result["article"]["status"], "published")
        fields = self.articles.insert_article.call_args[0][0]
        self.assertEqual(fields["status"], "draft")
        self.assertEqual(fields["author"], DEFAULT_AUTHOR)
        self.assertEqual(fields["read_time"], "2 min read")
        self.assertEqual(fields["image_url"], "https://cdn/x.jpg")
        self.assertEqual(fields["trending_topic_id"], "t1")
        self.assertRegex(fields["slug"], r"^quantum-chips-get-faster-[0-9a-z]{6}$")
        self.topics.mark_processed.assert_called_once_with("t1")
        self.assertEqual(self.jobs.events[-1], ("complete", "job-1"))

    def test_verify_false_leaves_draft(self):
        result = self.generator.generate("t1", verify=False)
        self.assertEqual(result["article"]["status"], "draft")
        self.verifier.verify_and_publish.assert_not_called()

    def test_verification_failure_keeps_draft(self):
        self.verifier.verify_and_publish.side_effect = UpstreamError("fact-check down")
        result = self.generator.generate("t1")
        self.assertEqual(result["article"]["status"], "draft")

    def test_similar_title_is_refused(self):
        self.articles.recent_titles.return_value = ["Quantum chips get faster than ever"]
        with self.assertRaises(DuplicateArticleError):
            self.generator.generate("t1")
        self.articles.insert_article.assert_not_called()
        self.images.pick.assert_not_called()
        self.assertEqual(self.jobs.events[-1][0], "fail")

    def test_invalid_payload(self):
        self.gateway.chat_json.return_value = {"title": "No content"}
        with self.assertRaises(UpstreamError):
            self.generator.generate("t1")

    def test_missing_topic(self):
        with self.assertRaises(InvalidRequestError):
            self.generator.generate(None)
        self.topics.get_topic.return_value = None
        with self.assertRaises(NotFoundError):
            self.generator.generate("gone")


class TestPublisher(unittest.TestCase):
    def setUp(self):
        self.articles = mock.Mock()
        self.queue = mock.Mock()
        self.publisher = Publisher(self.articles, self.queue)

    def test_parse_schedule(self):
        self.assertIsNone(parse_schedule(""))
        self.assertEqual(parse_schedule("2030-01-01T09:30:00Z").isoformat(), "2030-01-01T09:30:00+00:00")
        self.assertEqual(parse_schedule("2030-01-01T09:30:00").isoformat(), "2030-01-01T09:30:00+00:00")
        with self.assertRaises(InvalidRequestError):
            parse_schedule("next tuesday")

    def test_publish_now(self):
        self.articles.update_article.return_value = {"id": "a1", "title": "T"}
        result = self.publisher.publish("a1")
        self.assertEqual(result["article"]["id"], "a1")
        self.assertEqual(self.articles.update_article.call_args[0][1]["status"], "published")

    def test_publish_scheduled(self):
        self.articles.get_article.return_value = {"id": "a1"}
        self.queue.enqueue.return_value = {"id": "q1"}
        result = self.publisher.publish("a1", "2030-01-01T09:30:00Z")
        self.assertTrue(result["scheduled"])
        self.queue.enqueue.assert_called_once_with("a1", "2030-01-01T09:30:00+00:00")
        self.articles.update_article.assert_not_called()

    def test_publish_missing(self):
        with self.assertRaises(InvalidRequestError):
            self.publisher.publish(None)
        self.articles.update_article.return_value = None
        with self.assertRaises(NotFoundError):
            self.publisher.publish("gone")

    def test_process_queue(self):
        self.queue.due.return_value = [{"id": "q1", "article_id": "a1"}, {"id": "q2", "article_id": "a2"}]
        self.articles.update_article.side_effect = lambda aid, fields: {"title": "x"} if aid == "a1" else None
        self.assertEqual(self.publisher.process_queue(), {"published": 1, "failed": 1})
        self.queue.mark_published.assert_called_once_with("q1")
        self.queue.mark_failed.assert_called_once_with("q2", "Article not found")


class TestMetadata(unittest.TestCase):
    METADATA = {
        "slug": "fed-holds-rates",
        "category": "business",
        "excerpt": "The Fed held rates steady.",
        "hashtags": ["fed", "rates"],
        "metaTitle": "Fed holds rates",
        "metaDescription": "The Federal Reserve kept rates unchanged.",
        "metaKeywords": "fed, rates",
        "newsKeywords": "fed, rates",
        "ogTitle": "Fed holds rates steady",
        "ogDescription": "What the decision means.",
    }

    def test_populates_fields(self):
        gateway = mock.Mock()
        gateway.tool_call.return_value = dict(self.METADATA)
        result = MetadataAutoPopulator(gateway).populate("Fed holds rates", "<p>The Fed...</p>")
        self.assertEqual(result["tags"], ["fed", "rates"])
        self.assertEqual(result["slug"], "fed-holds-rates")
        schema = json.loads(result["schemaMarkup"])
        self.assertEqual(schema["@type"], "NewsArticle")
        self.assertEqual(schema["headline"], "Fed holds rates")

    def test_errors(self):
        gateway = mock.Mock()
        with self.assertRaises(InvalidRequestError):
            MetadataAutoPopulator(gateway).populate("", "body")
        gateway.tool_call.return_value = None
        with self.assertRaises(UpstreamError):
            MetadataAutoPopulator(gateway).populate("t", "body")
        gateway.tool_call.return_value = dict(self.METADATA, category="astrology")
        with self.assertRaises(UpstreamError):
            MetadataAutoPopulator(gateway).populate("t", "body")


class TestAutomationRunner(unittest.TestCase):
    def setUp(self):
        self.trends = mock.Mock()
        self.generator = mock.Mock()
        self.topics = mock.Mock()
        self.settings = mock.Mock()
        self.settings.get_all.return_value = {
            "default_region": "uk",
            "max_articles_per_run": 2,
            "autopublish_enabled": False,
        }
        self.jobs = RecordingJobLog()
        self.weather = mock.Mock()
        self.runner = AutomationRunner(
            self.trends, self.generator, self.topics, self.settings, self.jobs, weather=self.weather
        )

    def test_full_run_honours_settings(self):
        self.topics.list_unprocessed.return_value = [{"id": "t1", "topic": "x"}, {"id": "t2", "topic": "y"}]
        self.generator.generate.side_effect = [UpstreamError("boom"), {"success": True}]
        result = self.runner.run("full")
        self.assertEqual(result["jobId"], "job-1")
        self.trends.fetch_trends.assert_called_once_with("uk", 20, verify=False)
        self.topics.list_unprocessed.assert_called_once_with(limit=2)
        self.assertEqual(self.generator.generate.call_count, 2)
        self.assertEqual(self.jobs.events[0], ("start", "generate_article", {"automation_type": "full"}))

    def test_fetch_run_uses_fetch_job(self):
        self.runner.run("fetch")
        self.assertEqual(self.jobs.events[0][1], "fetch_trends")
        self.topics.list_unprocessed.assert_not_called()

    def test_unknown_type(self):
        with self.assertRaises(InvalidRequestError):
            self.runner.run("everything")

    def test_autopublish_defaults_on(self):
        self.settings.get_all.return_value = {}
        self.runner.run("fetch")
        self.trends.fetch_trends.assert_called_once_with("global", 20, verify=True)

    def test_scheduler_tick_survives_failures(self):
        self.trends.fetch_trends.side_effect = UpstreamError("trends down")
        self.topics.top_without_article.return_value = [{"id": "t9", "topic": "z"}]
        result = self.runner.scheduler_tick()
        self.assertEqual(result["tasksRun"], 3)
        self.weather.global_weather.assert_called_once()
        self.generator.generate.assert_called_once_with("t9")
        self.assertIn(("prune", 7), self.jobs.events)


if __name__ == "__main__":
    unittest.main()
