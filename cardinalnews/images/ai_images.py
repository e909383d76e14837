"""Illustrative hero images generated by the AI gateway.

Only used for scene-style articles: anything that looks like it is about a
person is refused so we never fabricate a likeness.
"""

from __future__ import annotations

import base64
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from cardinalnews.ai.gateway import AIGateway
from cardinalnews.errors import ConfigurationError, InvalidRequestError, UpstreamError
from cardinalnews.newsroom.text import file_slug
from cardinalnews.storage.image_storage import SupabaseImageStorage

logger = logging.getLogger(__name__)

PERSON_PATTERNS = (
    re.compile(r"\b[A-Z][a-z]+ [A-Z][a-z]+\b"),
    re.compile(r"\b(CEO|artist|singer|rapper|actor|actress|politician|president|minister|director)\b", re.IGNORECASE),
    re.compile(r"\b(died|death|obituary|biography|portrait|interview)\b", re.IGNORECASE),
)
PERSON_REFUSAL = "Cannot generate AI images for person-focused articles. Please use real news images instead."

STYLE_MODIFIER = "photorealistic news photography, high quality, professional journalism, NO PEOPLE, NO FACES, NO PORTRAITS"

SCENES = (
    (("weather",), "dramatic weather scene, atmospheric conditions, meteorological event, natural forces"),
    (("business",), "modern corporate environment, professional business setting, economic activity, market scene"),
    (("tech",), "cutting-edge technology, innovation showcase, modern tech environment, digital advancement"),
    (("sports",), "dynamic athletic action, sports arena, competitive moment, athletic achievement"),
    (
        ("entertainment", "music"),
        "entertainment venue, performance stage, artistic presentation, cultural event",
    ),
    (("science",), "scientific research, laboratory setting, discovery moment, technological advancement"),
    (("politics",), "government setting, political gathering, official ceremony, diplomatic event"),
)
DEFAULT_SCENE = "news-worthy scene, current events, significant moment, journalistic documentation"


def is_person_focused(title: str, excerpt: Optional[str] = None) -> bool:
    for text in (title or "", excerpt or ""):
        if any(p.search(text) for p in PERSON_PATTERNS):
            return True
    return False


def scene_for(category: Optional[str]) -> str:
    c = (category or "").lower()
    for keys, scene in SCENES:
        if any(k in c for k in keys):
            return scene
    return DEFAULT_SCENE


def title_concepts(title: str, limit: int = 5) -> str:
    words = re.sub(r"[^\w\s]", "", title or "").split(" ")
    return ", ".join([w for w in words if len(w) > 4][:limit])


def build_image_prompt(title: str, category: Optional[str] = None, excerpt: Optional[str] = None) -> str:
    context = f"Context: {excerpt[:100]}" if excerpt else ""
    return (
        f"{STYLE_MODIFIER}: {scene_for(category)}. Scene elements: {title_concepts(title)}. {context}. "
        "Vibrant, engaging, editorial quality photograph suitable for news article hero image. "
        "Focus on objects, scenes, environments, concepts - absolutely no human faces or people. "
        "No text, no watermarks, no labels."
    )


def decode_data_url(data_url: str) -> bytes:
    if not data_url or not data_url.startswith("data:image") or "," not in data_url:
        raise UpstreamError("No image data received from AI gateway")
    return base64.b64decode(data_url.split(",", 1)[1])


@dataclass
class AIImageGenerator:
    gateway: AIGateway
    storage: Optional[SupabaseImageStorage] = None

    def generate(self, title: str, category: Optional[str] = None, excerpt: Optional[str] = None) -> Dict[str, Any]:
        if not title:
            raise InvalidRequestError("Title is required")
        if is_person_focused(title, excerpt):
            raise InvalidRequestError(PERSON_REFUSAL)
        if self.storage is None:
            raise ConfigurationError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not configured")

        prompt = build_image_prompt(title, category, excerpt)
        logger.info(f"Generating AI image for: {title}")
        image_bytes = decode_data_url(self.gateway.generate_image(prompt))

        path = f"articles/ai-generated/{file_slug(title)}-{int(time.time() * 1000)}.png"
        public_url = self.storage.upload(path, image_bytes, content_type="image/png")
        return {
            "success": True,
            "imageUrl": public_url,
            "imageCredit": "AI Generated Image",
            "method": "ai-generation",
        }
