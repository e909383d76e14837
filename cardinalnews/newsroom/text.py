"""Slug, read-time and HTML text helpers shared by the article writers."""

from __future__ import annotations

import math
import random
import re
import string
from typing import Optional

_BASE36 = string.digits + string.ascii_lowercase
_NON_SLUG_RE = re.compile(r"[^a-z0-9\s-]")
_WS_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]*>")
_H1_RE = re.compile(r"<h1[^>]*>(.*?)</h1>", re.IGNORECASE | re.DOTALL)


def random_suffix(length: int = 6, rng: Optional[random.Random] = None) -> str:
    r = rng or random
    return "".join(r.choice(_BASE36) for _ in range(length))


def slug_base(title: str, max_len: int = 50) -> str:
    s = _NON_SLUG_RE.sub("", (title or "").lower())
    s = _WS_RE.sub("-", s)
    return s[:max_len]


def make_slug(title: str, max_len: int = 50, rng: Optional[random.Random] = None) -> str:
    """'Big News: Today!' -> 'big-news-today-x7k2p9' (random 6-char base-36 suffix)."""
    return f"{slug_base(title, max_len)}-{random_suffix(rng=rng)}"


def file_slug(text: str, max_len: int = 50) -> str:
    """Storage-path-safe name: lowercase, non-alphanumeric runs collapsed to '-'."""
    s = re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")
    return s[:max_len]


def word_count(content: str) -> int:
    return len((content or "").split())


def read_time(words: int) -> str:
    # half-up rounding, not banker's
    minutes = max(1, int(math.floor(words / 200 + 0.5)))
    return f"{minutes} min read"


def strip_html(content: str) -> str:
    return _WS_RE.sub(" ", _TAG_RE.sub(" ", content or "")).strip()


def extract_h1(content: str) -> Optional[str]:
    m = _H1_RE.search(content or "")
    if not m:
        return None
    title = _TAG_RE.sub("", m.group(1)).strip()
    return title or None


def remove_h1(content: str) -> str:
    return _H1_RE.sub("", content or "").strip()


def plain_excerpt(content: str, length: int = 200) -> str:
    return strip_html(content)[:length].strip() + "..."
