"""Real news photo lookup through the Serper image search API.

Prefers photos hosted by known news outlets, skips generic art (logos, charts,
banners), then copies the chosen photo into our own bucket.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests

from cardinalnews.errors import InvalidRequestError, require_key
from cardinalnews.newsroom.text import file_slug
from cardinalnews.storage.image_storage import SupabaseImageStorage, content_type_for, image_extension

logger = logging.getLogger(__name__)

SERPER_IMAGES_URL = "https://google.serper.dev/images"
USER_AGENT = "CardinalNews/2.0"

NEWS_SOURCE_KEYWORDS = (
    "reuters",
    "apnews",
    "bbc",
    "cnn",
    "nytimes",
    "washingtonpost",
    "theguardian",
    "aljazeera",
    "bloomberg",
    "wsj",
    "forbes",
    "npr",
    "nbcnews",
    "abcnews",
    "cbsnews",
    "usatoday",
    "latimes",
    "time",
    "businessinsider",
    "huffpost",
    "politico",
    "thehill",
    "axios",
    "getty",
    "apimages",
    "shutterstock",
)

GENERIC_IMAGE_KEYWORDS = (
    "logo",
    "icon",
    "chart",
    "graph",
    "stock-photo",
    "template",
    "banner",
    "advertisement",
    "vector",
)

NO_IMAGE = {"success": False, "imageUrl": None, "imageCredit": None, "message": "No image found"}


def build_image_query(topic: str, category: Optional[str]) -> str:
    if not category:
        return topic
    c = category.lower()
    if "weather" in c:
        return f"{topic} weather storm rain flooding"
    if "business" in c:
        return f"{topic} business economy finance"
    if "tech" in c:
        return f"{topic} technology innovation"
    if "sports" in c:
        return f"{topic} sports game match"
    if "entertainment" in c or "music" in c or "movies" in c:
        return f"{topic} entertainment celebrity event"
    if "science" in c:
        return f"{topic} science research discovery"
    if "politics" in c:
        return f"{topic} politics government"
    return f"{topic} news {category}"


def _is_generic(img: Dict[str, Any]) -> bool:
    url = str(img.get("link") or img.get("imageUrl") or "").lower()
    title = str(img.get("title") or "").lower()
    return any(k in url or k in title for k in GENERIC_IMAGE_KEYWORDS)


def _is_news_source(img: Dict[str, Any]) -> bool:
    url = str(img.get("link") or img.get("imageUrl") or "").lower()
    return any(s in url for s in NEWS_SOURCE_KEYWORDS)


def select_image(images: List[Dict[str, Any]], *, exclude_urls=()) -> Optional[Dict[str, Any]]:
    """News outlet photo first, then any non-generic photo, then whatever came first."""
    candidates = [i for i in images if isinstance(i, dict) and i.get("imageUrl") not in exclude_urls]
    if not candidates:
        return None
    for img in candidates:
        if _is_news_source(img) and not _is_generic(img):
            return img
    for img in candidates:
        if not _is_generic(img):
            return img
    return candidates[0]


def image_credit(img: Dict[str, Any]) -> str:
    link = img.get("link") or ""
    source_name = "Unknown Source"
    host = urlparse(link or img.get("imageUrl") or "").hostname or ""
    if host:
        label = host.replace("www.", "", 1).split(".")[0]
        source_name = label[:1].upper() + label[1:]
    return f"{source_name} ({link})" if link else source_name


@dataclass
class NewsImageFinder:
    serper_api_key: str
    storage: Optional[SupabaseImageStorage] = None
    timeout: int = 30

    def search(self, query: str, *, num: int = 15) -> List[Dict[str, Any]]:
        key = require_key(self.serper_api_key, "SERPER_API_KEY")
        resp = requests.post(
            SERPER_IMAGES_URL,
            json={"q": query, "num": num, "gl": "us", "hl": "en", "safe": "active", "type": "news"},
            headers={"X-API-KEY": key, "Content-Type": "application/json", "User-Agent": USER_AGENT},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return list((resp.json() or {}).get("images") or [])

    def find(self, topic: str, category: Optional[str] = None, *, exclude_urls=()) -> Dict[str, Any]:
        if not topic:
            raise InvalidRequestError("Topic is required")
        require_key(self.serper_api_key, "SERPER_API_KEY")

        query = build_image_query(topic, category)
        logger.info(f"Image search query: {query}")
        try:
            images = self.search(query)
        except requests.RequestException as e:
            logger.error(f"Image search failed: {e}")
            return dict(NO_IMAGE)

        selected = select_image(images, exclude_urls=exclude_urls)
        if not selected or not selected.get("imageUrl"):
            logger.info("No images found in search results")
            return dict(NO_IMAGE)

        image_url = selected["imageUrl"]
        credit = image_credit(selected)
        logger.info(f"Found image: {credit}")

        try:
            img_resp = requests.get(image_url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout)
            img_resp.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to download image: {e}")
            return {"success": False, "imageUrl": None, "imageCredit": None, "message": "Failed to download image"}

        result = {
            "success": True,
            "imageUrl": image_url,
            "imageCredit": credit,
            "sourceUrl": selected.get("link"),
            "originalImageUrl": image_url,
        }
        if self.storage is None:
            result["note"] = "Using direct image URL (storage not configured)"
            return result

        ext = image_extension(image_url)
        path = f"articles/{file_slug(topic)}-{int(time.time() * 1000)}.{ext}"
        try:
            result["imageUrl"] = self.storage.upload(path, img_resp.content, content_type=content_type_for(ext))
        except Exception as e:
            logger.error(f"Error uploading image: {e}")
            result["note"] = "Using direct image URL (upload failed)"
        return result
