import json
import unittest
from unittest import mock

import requests

from cardinalnews.errors import InvalidRequestError, NotFoundError, UpstreamError
from cardinalnews.newsroom.verification import (
    NEEDS_REVIEW,
    PUBLISH,
    REJECT,
    ArticleVerifier,
    NewsSearch,
    NewsValidation,
    decide_publication,
    news_search_query,
)


def _decide(score, *, fabricated=False, risk="LOW", confidence=60):
    return decide_publication(
        accuracy_score=score, is_fabricated=fabricated, legal_risk=risk, real_news_confidence=confidence
    )


class TestDecisionMatrix(unittest.TestCase):
    def test_fabricated_is_always_rejected(self):
        d = _decide(99, fabricated=True)
        self.assertEqual((d.decision, d.article_status), (REJECT, "rejected"))

    def test_high_legal_risk_needs_review(self):
        d = _decide(99, risk="critical")
        self.assertEqual((d.decision, d.article_status), (NEEDS_REVIEW, "pending_review"))
        self.assertEqual(d.reasons, ["High legal risk: CRITICAL"])

    def test_publish_thresholds(self):
        self.assertEqual(_decide(85, confidence=40).decision, PUBLISH)
        self.assertEqual(_decide(85, confidence=39).decision, NEEDS_REVIEW)
        self.assertEqual(_decide(70, confidence=20).decision, NEEDS_REVIEW)
        self.assertEqual(_decide(69, confidence=100).decision, REJECT)
        self.assertEqual(_decide(90, confidence=0).decision, REJECT)

    def test_query_uses_headline_before_colon(self):
        self.assertEqual(news_search_query("Fed holds rates: what it means"), "Fed holds rates")


class TestNewsSearch(unittest.TestCase):
    def test_without_key_is_zero_confidence(self):
        self.assertEqual(NewsSearch("").validate("x"), NewsValidation())

    def test_confidence_scales_with_results(self):
        resp = mock.Mock()
        resp.json.return_value = {"news": [{"title": f"t{i}", "source": "s", "link": "l", "date": "d"} for i in range(4)]}
        with mock.patch("cardinalnews.newsroom.verification.requests.post", return_value=resp):
            result = NewsSearch("key").validate("Fed holds rates")
        self.assertTrue(result.exists)
        self.assertEqual(result.confidence, 80)
        self.assertEqual(len(result.sources), 3)

    def test_request_failure_is_zero_confidence(self):
        with mock.patch(
            "cardinalnews.newsroom.verification.requests.post", side_effect=requests.Timeout("slow")
        ):
            self.assertEqual(NewsSearch("key").validate("x").confidence, 0)


class TestArticleVerifier(unittest.TestCase):
    def setUp(self):
        self.gateway = mock.Mock(api_key="k")
        self.news = mock.Mock()
        self.articles = mock.Mock()
        self.verifications = mock.Mock()
        self.verifications.record.return_value = {"id": "v1"}
        self.articles.get_article.return_value = {
            "id": "a1",
            "title": "Fed holds rates",
            "category": "business",
            "content": "<p>body</p>",
            "sources": [],
        }
        self.verifier = ArticleVerifier(self.gateway, self.news, self.articles, self.verifications)

    def test_publishes_verified_article(self):
        self.news.validate.return_value = NewsValidation(exists=True, confidence=60)
        self.gateway.chat.return_value = json.dumps(
            {"accuracy_score": 92, "verification_status": "verified", "is_fabricated": False, "legal_risk_assessment": "LOW"}
        )
        result = self.verifier.verify_and_publish("a1")
        self.assertEqual(result["decision"], PUBLISH)
        self.assertEqual(result["article_status"], "published")
        update = self.articles.update_article.call_args[0][1]
        self.assertEqual(update["status"], "published")
        self.assertIn("published_at", update)
        row = self.verifications.record.call_args[0][1]
        self.assertEqual(row["verification_data"]["news_validation"]["confidence"], 60)

    def test_rejection_records_reason(self):
        self.news.validate.return_value = NewsValidation()
        self.gateway.chat.return_value = '{"accuracy_score": 40, "is_fabricated": false}'
        result = self.verifier.verify_and_publish("a1")
        self.assertEqual(result["decision"], REJECT)
        update = self.articles.update_article.call_args[0][1]
        self.assertEqual(update["status"], "rejected")
        self.assertIn("rejection_reason", update)

    def test_skip_verification_publishes_directly(self):
        result = self.verifier.verify_and_publish("a1", skip_verification=True)
        self.assertEqual(result["article_status"], "published")
        self.gateway.chat.assert_not_called()

    def test_invalid_report_is_upstream_error(self):
        self.news.validate.return_value = NewsValidation()
        self.gateway.chat.return_value = '{"accuracy_score": "high"}'
        with self.assertRaises(UpstreamError):
            self.verifier.verify_and_publish("a1")
        self.articles.update_article.assert_not_called()

    def test_missing_article(self):
        with self.assertRaises(InvalidRequestError):
            self.verifier.verify_accuracy(None)
        self.articles.get_article.return_value = None
        with self.assertRaises(NotFoundError):
            self.verifier.verify_accuracy("nope")

    def test_accuracy_check_returns_compliance(self):
        self.gateway.chat.return_value = json.dumps(
            {"accuracy_score": 80, "compliance_status": "APPROVED", "legal_concerns": [], "misinformation_detected": False}
        )
        result = self.verifier.verify_accuracy("a1")
        self.assertEqual(result["compliance_status"], "APPROVED")
        self.assertEqual(result["verification"], {"id": "v1"})
        self.assertEqual(self.verifications.record.call_args[0][1]["verification_type"], "accuracy")


if __name__ == "__main__":
    unittest.main()
