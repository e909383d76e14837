"""Fact-checking and the auto-publish decision.

Verification runs in two stages: a news search that tells us whether the story
exists anywhere else, then the "Hector" fact-check prompt. The decision matrix
combines the two; every outcome leaves a row in `article_verifications`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from cardinalnews.ai.gateway import AIGateway
from cardinalnews.ai.json_repair import extract_json_object
from cardinalnews.contracts.fact_check import FactCheckReport, to_fact_check_report, validate_fact_check
from cardinalnews.errors import InvalidRequestError, NotFoundError, UpstreamError, require_key
from cardinalnews.storage.postgres_articles import PostgresArticleStore
from cardinalnews.storage.postgres_verifications import PostgresVerificationStore

logger = logging.getLogger(__name__)

SERPER_NEWS_URL = "https://google.serper.dev/news"

PUBLISH = "publish"
NEEDS_REVIEW = "needs_review"
REJECT = "reject"

DECISION_STATUS = {PUBLISH: "published", NEEDS_REVIEW: "pending_review", REJECT: "rejected"}

HECTOR_SYSTEM_PROMPT = (
    "You are Hector, an elite fact-checker. Be extremely strict. Flag any fabricated or unverifiable content. "
    "Always respond with valid JSON only."
)

HECTOR_PROMPT = """You are Hector, an elite fact-checker for Cardinal News. Analyze this article for accuracy, credibility, and potential misinformation.

ARTICLE TITLE: "{title}"
CATEGORY: {category}
CONTENT: "{content}"
SOURCES: {sources}
REAL NEWS VALIDATION: {news_validation}

COMPREHENSIVE FACT-CHECK:

1. FACTUAL ACCURACY (0-100):
   - Verify key claims against real-world data
   - Check for fabricated information
   - Assess logical consistency
   - Cross-reference with real news sources

2. SOURCE CREDIBILITY:
   - Are sources real and verifiable?
   - Are sources properly cited?
   - Do sources support the claims?

3. MISINFORMATION DETECTION:
   - Identify unverified claims
   - Flag potential fabrications
   - Detect bias or sensationalism
   - Check for outdated information

4. REAL-WORLD VALIDATION:
   - Does this event/story actually exist?
   - Is the information current and accurate?
   - Are there real news sources covering this?

5. RECOMMENDATIONS:
   - Should this be published? (yes/no/needs_review)
   - What corrections are needed?
   - What additional sources should be cited?

Respond in JSON format ONLY:
{{
  "accuracy_score": 0-100,
  "verification_status": "verified" | "flagged" | "needs_review" | "rejected",
  "is_fabricated": true/false,
  "fact_check_results": [
    {{
      "claim": "specific claim",
      "verdict": "true" | "false" | "unverified" | "misleading",
      "explanation": "detailed reasoning",
      "confidence": 0-100
    }}
  ],
  "source_credibility": {{
    "overall_rating": 0-100,
    "real_sources": ["verified source names"],
    "fake_sources": ["fabricated sources"],
    "missing_citations": ["claims needing sources"]
  }},
  "real_world_validation": {{
    "event_exists": true/false,
    "supporting_evidence": ["evidence description"],
    "contradicting_evidence": ["contradictions found"]
  }},
  "legal_risk_assessment": "NONE" | "LOW" | "MEDIUM" | "HIGH" | "CRITICAL",
  "recommendations": ["specific actionable steps"],
  "publish_recommendation": "publish" | "needs_revision" | "reject",
  "required_corrections": ["specific corrections needed"]
}}"""

COMPLIANCE_SYSTEM_PROMPT = (
    "You are Hector, a meticulous AI fact-checker and legal compliance officer. Always respond with valid JSON only."
)

COMPLIANCE_PROMPT = """You are Hector, Cardinal News's AI fact-checker and legal compliance officer. Analyze this article for accuracy, credibility, and legal risks.

ARTICLE TITLE: "{title}"
CATEGORY: {category}
CONTENT (first 2000 chars): "{content}"
AUTHOR: {author}
SOURCES: {sources}

COMPREHENSIVE ANALYSIS REQUIRED:

1. FACT-CHECK ACCURACY (Rate 0-100):
   - Verify key claims and statistics
   - Check for factual errors or misrepresentations
   - Assess logical consistency

2. SOURCE CREDIBILITY:
   - Evaluate source reliability and reputation
   - Check for proper attribution
   - Identify missing sources for major claims

3. LEGAL RISK ASSESSMENT:
   - Defamation risks (libel/slander)
   - Copyright violations
   - Privacy concerns
   - Misleading/false advertising claims
   - Regulatory compliance issues

4. MISINFORMATION DETECTION:
   - Identify unverified claims
   - Flag sensationalism or clickbait
   - Detect bias or partisan framing

5. RECOMMENDATIONS:
   - Specific improvements needed
   - Additional sources to cite
   - Legal disclaimers to add
   - Content corrections required

Respond in JSON format ONLY:
{{
  "accuracy_score": 0-100,
  "verification_status": "verified" | "flagged" | "needs_review" | "rejected",
  "fact_check_results": [
    {{
      "claim": "specific claim from article",
      "verdict": "true" | "false" | "unverified" | "misleading",
      "explanation": "detailed reasoning",
      "confidence": 0-100
    }}
  ],
  "source_credibility": {{
    "overall_rating": 0-100,
    "sources_evaluated": ["source names"],
    "missing_sources": ["topics needing citations"],
    "red_flags": ["credibility concerns"]
  }},
  "legal_risk_assessment": "NONE" | "LOW" | "MEDIUM" | "HIGH" | "CRITICAL",
  "legal_concerns": ["specific legal issues"],
  "misinformation_detected": true/false,
  "recommendations": ["specific actionable steps"],
  "compliance_status": "APPROVED" | "NEEDS_REVISION" | "REJECTED"
}}"""


@dataclass(frozen=True)
class NewsValidation:
    exists: bool = False
    sources: List[Dict[str, Any]] = field(default_factory=list)
    confidence: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"exists": self.exists, "sources": list(self.sources), "confidence": self.confidence}


@dataclass(frozen=True)
class PublishDecision:
    decision: str
    article_status: str
    reasons: List[str]


def decide_publication(
    *, accuracy_score: float, is_fabricated: bool, legal_risk: Optional[str], real_news_confidence: int
) -> PublishDecision:
    """Decision matrix, first matching rule wins."""
    risk = (legal_risk or "").upper()
    if is_fabricated:
        decision, reason = REJECT, "Article contains fabricated information"
    elif risk in ("HIGH", "CRITICAL"):
        decision, reason = NEEDS_REVIEW, f"High legal risk: {risk}"
    elif accuracy_score >= 85 and real_news_confidence >= 40:
        decision, reason = PUBLISH, "High accuracy score and verified by real news sources"
    elif accuracy_score >= 70 and real_news_confidence >= 20:
        decision, reason = NEEDS_REVIEW, "Moderate accuracy - requires human review"
    else:
        decision, reason = REJECT, "Low accuracy score or insufficient real-world validation"
    return PublishDecision(decision=decision, article_status=DECISION_STATUS[decision], reasons=[reason])


def news_search_query(title: str) -> str:
    return (title or "").split(":")[0].strip()


@dataclass
class NewsSearch:
    serper_api_key: str
    timeout: int = 30

    def search(self, query: str, *, num: int = 10) -> List[Dict[str, Any]]:
        resp = requests.post(
            SERPER_NEWS_URL,
            json={"q": query, "num": num},
            headers={"X-API-KEY": self.serper_api_key, "Content-Type": "application/json"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return list((resp.json() or {}).get("news") or [])

    def validate(self, title: str) -> NewsValidation:
        """Look the story up in Serper news results; a failed lookup counts as zero confidence."""
        if not self.serper_api_key:
            return NewsValidation()
        try:
            results = self.search(news_search_query(title))
        except (requests.RequestException, ValueError) as e:
            logger.error(f"News validation failed: {e}")
            return NewsValidation()
        if not results:
            logger.info("No real-time news found - article may be fabricated")
            return NewsValidation()
        logger.info(f"Found {len(results)} related news articles")
        return NewsValidation(
            exists=True,
            sources=[
                {"title": n.get("title"), "source": n.get("source"), "link": n.get("link"), "date": n.get("date")}
                for n in results[:3]
            ],
            confidence=min(100, len(results) * 20),
        )


def _parse_report(answer: str) -> Dict[str, Any]:
    payload = extract_json_object(answer)
    if payload is None:
        raise UpstreamError("Invalid AI response format")
    errors = validate_fact_check(payload)
    if errors:
        logger.error(f"Fact-check report failed validation: {errors}")
        raise UpstreamError("Invalid AI response format")
    return payload


def _verification_row(report: FactCheckReport, *, verification_type: str, confidence: int, raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "verification_type": verification_type,
        "accuracy_score": report.accuracy_score,
        "verification_status": report.verification_status,
        "is_fabricated": report.is_fabricated,
        "legal_risk_assessment": report.legal_risk,
        "real_news_confidence": confidence,
        "fact_check_results": report.fact_check_results,
        "source_credibility": report.source_credibility,
        "recommendations": report.recommendations,
        "verification_data": raw,
    }


@dataclass
class ArticleVerifier:
    gateway: AIGateway
    news: NewsSearch
    articles: PostgresArticleStore
    verifications: PostgresVerificationStore

    def _load(self, article_id: Optional[str]) -> Dict[str, Any]:
        if not article_id:
            raise InvalidRequestError("articleId is required")
        article = self.articles.get_article(article_id)
        if not article:
            raise NotFoundError("Article not found")
        return article

    def verify_and_publish(self, article_id: str, *, skip_verification: bool = False) -> Dict[str, Any]:
        article = self._load(article_id)
        logger.info(f"Starting verification pipeline for article: {article['title']}")

        if skip_verification:
            updated = self.articles.update_article(
                article_id, {"status": "published", "published_at": datetime.now(timezone.utc)}
            )
            return {
                "success": True,
                "decision": PUBLISH,
                "verification": None,
                "article_status": "published",
                "article": updated,
            }

        require_key(self.gateway.api_key, "LOVABLE_API_KEY")
        news_validation = self.news.validate(article["title"])

        answer = self.gateway.chat(
            [
                {"role": "system", "content": HECTOR_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": HECTOR_PROMPT.format(
                        title=article["title"],
                        category=article.get("category"),
                        content=(article.get("content") or "")[:3000],
                        sources=json.dumps(article.get("sources") or []),
                        news_validation=json.dumps(news_validation.to_dict()),
                    ),
                },
            ],
            temperature=0.2,
        )
        raw = _parse_report(answer)
        report = to_fact_check_report(raw)

        decision = decide_publication(
            accuracy_score=report.accuracy_score,
            is_fabricated=report.is_fabricated,
            legal_risk=report.legal_risk,
            real_news_confidence=news_validation.confidence,
        )
        logger.info(
            f"Final decision: {decision.decision} (score {report.accuracy_score}/100, "
            f"real news confidence {news_validation.confidence}%): {', '.join(decision.reasons)}"
        )

        raw_with_news = dict(raw)
        raw_with_news["news_validation"] = news_validation.to_dict()
        record = self.verifications.record(
            article_id,
            _verification_row(
                report, verification_type="verify_and_publish", confidence=news_validation.confidence, raw=raw_with_news
            ),
        )

        update: Dict[str, Any] = {
            "verification_score": report.accuracy_score,
            "verification_status": report.verification_status,
            "status": decision.article_status,
        }
        if decision.decision == PUBLISH:
            update["published_at"] = datetime.now(timezone.utc)
        elif decision.decision == REJECT:
            update["rejection_reason"] = "; ".join(decision.reasons)
        self.articles.update_article(article_id, update)

        return {
            "success": True,
            "decision": decision.decision,
            "verification": {
                "score": report.accuracy_score,
                "status": report.verification_status,
                "is_fabricated": report.is_fabricated,
                "legal_risk": report.legal_risk,
                "real_news_confidence": news_validation.confidence,
                "reasons": decision.reasons,
            },
            "article_status": decision.article_status,
            "verification_record": record,
        }

    def verify_accuracy(self, article_id: str) -> Dict[str, Any]:
        article = self._load(article_id)
        require_key(self.gateway.api_key, "LOVABLE_API_KEY")
        logger.info(f"Hector analyzing: {article['title']}")

        answer = self.gateway.chat(
            [
                {"role": "system", "content": COMPLIANCE_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": COMPLIANCE_PROMPT.format(
                        title=article["title"],
                        category=article.get("category"),
                        content=(article.get("content") or "")[:2000],
                        author=article.get("author"),
                        sources=json.dumps(article.get("sources") or []),
                    ),
                },
            ],
            temperature=0.3,
        )
        raw = _parse_report(answer)
        report = to_fact_check_report(raw)
        record = self.verifications.record(
            article_id, _verification_row(report, verification_type="accuracy", confidence=0, raw=raw)
        )
        logger.info(f"Verification stored: {report.verification_status} ({report.accuracy_score}/100)")
        return {
            "success": True,
            "verification": record,
            "compliance_status": raw.get("compliance_status"),
            "legal_concerns": raw.get("legal_concerns"),
            "misinformation_detected": raw.get("misinformation_detected"),
        }
