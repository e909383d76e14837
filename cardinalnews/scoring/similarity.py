"""Title similarity checks used to keep generated articles unique.

Two measures are in play:
- a prefix containment guard for single-article generation
- a word-set overlap ratio for batch generation and the duplicate report
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

DUPLICATE_THRESHOLD = 0.7
PREFIX_LEN = 25


def find_similar_title(title: str, existing: Iterable[str], *, prefix_len: int = PREFIX_LEN) -> Optional[str]:
    """Return the first existing title that contains our prefix, or whose prefix we contain."""
    new = (title or "").lower()
    new_prefix = new[:prefix_len]
    for other in existing:
        old = (other or "").lower()
        if not old:
            continue
        if new_prefix in old or old[:prefix_len] in new:
            return other
    return None


def title_words(title: str) -> Set[str]:
    return {w for w in (title or "").lower().split() if len(w) > 3}


def title_similarity(a: str, b: str) -> float:
    """Shared long words over the larger word set (0.0 when either set is empty)."""
    wa, wb = title_words(a), title_words(b)
    denom = max(len(wa), len(wb))
    if not denom:
        return 0.0
    return len(wa & wb) / denom


def is_near_duplicate(title: str, existing: Iterable[str], *, threshold: float = DUPLICATE_THRESHOLD) -> bool:
    return any(title_similarity(title, other) > threshold for other in existing)


@dataclass(frozen=True)
class DuplicatePair:
    kept: Dict[str, Any]
    removed: Dict[str, Any]
    similarity: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kept": self.kept,
            "removed": self.removed,
            "similarity": f"{self.similarity * 100:.1f}%",
        }


def _summary(article: Dict[str, Any]) -> Dict[str, Any]:
    return {"id": article.get("id"), "title": article.get("title"), "word_count": article.get("word_count") or 0}


def find_duplicate_pairs(
    articles: Sequence[Dict[str, Any]], *, threshold: float = DUPLICATE_THRESHOLD
) -> List[DuplicatePair]:
    """Walk articles newest first, comparing each to the non-duplicates seen so far.

    Within a matching pair the article with more words is reported as kept.
    Report only; nothing is deleted here.
    """
    seen: List[Dict[str, Any]] = []
    pairs: List[DuplicatePair] = []
    for article in articles:
        match = None
        for other in seen:
            score = title_similarity(article.get("title") or "", other.get("title") or "")
            if score > threshold:
                match = (other, score)
                break
        if match is None:
            seen.append(article)
            continue
        other, score = match
        if (article.get("word_count") or 0) > (other.get("word_count") or 0):
            pairs.append(DuplicatePair(kept=_summary(article), removed=_summary(other), similarity=score))
        else:
            pairs.append(DuplicatePair(kept=_summary(other), removed=_summary(article), similarity=score))
    return pairs
