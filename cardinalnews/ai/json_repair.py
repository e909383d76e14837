"""Helpers for turning model output into JSON.

Models wrap JSON in Markdown fences, add prose around it, leave trailing commas
or stop mid-object when they hit max_tokens. These helpers recover what they can.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

_FENCE_RE = re.compile(r"^```(?:json|JSON)?\s*|\s*```$")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def strip_code_fences(raw: str) -> str:
    cleaned = (raw or "").strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_RE.sub("", cleaned).strip()
    return cleaned


def _close_open(cleaned: str) -> str:
    open_braces = cleaned.count("{"); close_braces = cleaned.count("}")
    open_brackets = cleaned.count("["); close_brackets = cleaned.count("]")
    if close_brackets < open_brackets:
        cleaned = cleaned + ("]" * (open_brackets - close_brackets))
    if close_braces < open_braces:
        cleaned = cleaned + ("}" * (open_braces - close_braces))
    return cleaned


def repair_json_text(raw: str) -> str:
    cleaned = strip_code_fences(raw)
    # remove trailing commas before ] or }
    cleaned = re.sub(r",(\s*[}\]])", r"\1", cleaned)
    return _close_open(cleaned)


def salvage_json_text(raw: str) -> Any:
    cleaned = repair_json_text(raw)
    # Try iterative truncation at last comma to drop incomplete tail
    for _ in range(30):
        try:
            return json.loads(cleaned)
        except ValueError:
            idx = cleaned.rfind(",")
            if idx == -1:
                break
            cleaned = _close_open(cleaned[:idx])
    return None


def parse_json_text(raw: str) -> Optional[Any]:
    """Parse fenced JSON; falls back to salvage. Returns None if nothing parses."""
    cleaned = strip_code_fences(raw)
    try:
        return json.loads(cleaned)
    except ValueError:
        return salvage_json_text(cleaned)


def extract_json_object(raw: str) -> Optional[dict]:
    """Pull the outermost {...} out of free text."""
    m = _OBJECT_RE.search(raw or "")
    if not m:
        return None
    try:
        value = json.loads(m.group(0))
    except ValueError:
        value = salvage_json_text(m.group(0))
    return value if isinstance(value, dict) else None


def extract_json_array(raw: str) -> Optional[list]:
    cleaned = strip_code_fences(raw)
    m = _ARRAY_RE.search(cleaned)
    if not m:
        return None
    try:
        value = json.loads(m.group(0))
    except ValueError:
        return None
    return value if isinstance(value, list) else None
