"""Batch UI/article text translation through the AI gateway."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional

from cardinalnews.ai.gateway import AIGateway
from cardinalnews.ai.json_repair import extract_json_array
from cardinalnews.errors import InvalidRequestError

logger = logging.getLogger(__name__)

SOURCE_LANGUAGES = ("en", "english")

TRANSLATOR_PROMPT = (
    "You are a professional translator. Translate the provided texts to {language}. "
    "Return ONLY a JSON array with the translations in the same order, preserving any HTML tags, "
    "special characters, and formatting. For very short texts (1-2 words), provide natural translations. "
    "If a text is already in the target language, return it unchanged."
)

_NUMBERING_RE = re.compile(r"^\s*\d+[.)]\s*")


def split_translation_lines(answer: str) -> List[str]:
    """Fallback for a non-JSON answer: one translation per non-blank line, numbering removed."""
    return [_NUMBERING_RE.sub("", line).strip() for line in (answer or "").split("\n") if line.strip()]


def parse_translations(answer: str) -> List[Any]:
    parsed = extract_json_array(answer)
    if parsed is not None:
        return parsed
    return split_translation_lines(answer)


@dataclass
class Translator:
    gateway: AIGateway

    def translate(self, texts: Optional[List[str]], target_language: Optional[str]) -> List[Any]:
        if texts is None:
            return []
        if not isinstance(texts, list):
            raise InvalidRequestError("texts must be a list")
        if not texts or (target_language or "en").strip().lower() in SOURCE_LANGUAGES:
            return list(texts)

        answer = self.gateway.chat(
            [
                {"role": "system", "content": TRANSLATOR_PROMPT.format(language=target_language)},
                {"role": "user", "content": json.dumps(texts, ensure_ascii=False)},
            ]
        )
        translations = parse_translations(answer)
        if len(translations) != len(texts):
            logger.warning(f"Translation returned {len(translations)} items for {len(texts)} texts")
        return translations
