"""Checklist-style SEO score for articles (admin dashboard)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Sequence, Tuple

POINTS_PER_CHECK = 11
MAX_SCORE = 100
OPTIMIZED_SCORE = 80
CRITICAL_SCORE = 50


def _length_between(value: Any, low: int, high: int) -> bool:
    return bool(value) and low <= len(value) <= high


# name, test, suggestion shown when the test fails
SEO_CHECKS: Tuple[Tuple[str, Callable[[Dict[str, Any]], bool], str], ...] = (
    ("hasTitle", lambda a: _length_between(a.get("title"), 30, 60), "Keep the title between 30 and 60 characters"),
    (
        "hasMetaDescription",
        lambda a: _length_between(a.get("meta_description"), 120, 160),
        "Write a meta description of 120-160 characters",
    ),
    ("hasMetaKeywords", lambda a: bool(a.get("meta_keywords")), "Add meta keywords"),
    ("hasImage", lambda a: bool(a.get("featured_image") or a.get("image_url")), "Add a featured image"),
    ("hasSEOSlug", lambda a: bool(a.get("slug")) and len(a["slug"]) > 5, "Use a descriptive slug"),
    ("hasReadTime", lambda a: bool(a.get("read_time")), "Set the read time"),
    ("hasCategory", lambda a: bool(a.get("category")), "Assign a category"),
    ("hasAuthor", lambda a: bool(a.get("author")), "Credit an author"),
    ("contentLength", lambda a: len(a.get("content") or "") > 1000, "Expand the article beyond 1000 characters"),
)


@dataclass(frozen=True)
class SEOScore:
    score: int
    checks: Dict[str, bool]
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "checks": dict(self.checks), "suggestions": list(self.suggestions)}


def seo_score(article: Dict[str, Any]) -> SEOScore:
    checks: Dict[str, bool] = {}
    suggestions: List[str] = []
    for name, test, suggestion in SEO_CHECKS:
        passed = bool(test(article))
        checks[name] = passed
        if not passed:
            suggestions.append(suggestion)
    score = min(MAX_SCORE, POINTS_PER_CHECK * sum(checks.values()))
    return SEOScore(score=score, checks=checks, suggestions=suggestions)


def seo_report(articles: Sequence[Dict[str, Any]], *, limit: int = 10) -> Dict[str, Any]:
    """Score the most recent articles and bucket them the way the dashboard shows them."""
    recent = sorted(articles, key=lambda a: str(a.get("created_at") or ""), reverse=True)[:limit]
    scored = []
    for article in recent:
        result = seo_score(article)
        scored.append({"id": article.get("id"), "title": article.get("title"), "seo": result.to_dict()})
    scores = [s["seo"]["score"] for s in scored]
    return {
        "averageScore": round(sum(scores) / len(scores)) if scores else 0,
        "optimized": sum(1 for s in scores if s >= OPTIMIZED_SCORE),
        "needsWork": sum(1 for s in scores if CRITICAL_SCORE <= s < OPTIMIZED_SCORE),
        "critical": sum(1 for s in scores if s < CRITICAL_SCORE),
        "articles": scored,
    }
