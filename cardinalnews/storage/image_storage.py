"""Article image uploads to Supabase Storage."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from cardinalnews.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class SupabaseImageStorage:
    supabase_url: str
    service_role_key: str
    bucket: str = "article-images"
    _client: Any = None

    def _get_client(self):
        if self._client is None:
            if not self.supabase_url or not self.service_role_key:
                raise ConfigurationError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not configured")
            from supabase import create_client

            self._client = create_client(self.supabase_url, self.service_role_key)
        return self._client

    def upload(self, path: str, data: bytes, *, content_type: str) -> str:
        """Upload bytes (no overwrite) and return the public URL."""
        bucket = self._get_client().storage.from_(self.bucket)
        bucket.upload(path, data, {"content-type": content_type, "upsert": "false"})
        url = bucket.get_public_url(path)
        logger.info(f"Uploaded image to {self.bucket}/{path}")
        return url


def image_extension(url: str, default: str = "jpg") -> str:
    """Extension from the last dotted segment of a URL path, query stripped."""
    tail = (url or "").split("?", 1)[0].rsplit("/", 1)[-1]
    if "." not in tail:
        return default
    ext = tail.rsplit(".", 1)[-1].lower()
    if not ext or len(ext) > 5 or not ext.isalnum():
        return default
    return ext


def content_type_for(ext: Optional[str]) -> str:
    ext = (ext or "jpg").lower()
    if ext == "jpg":
        return "image/jpeg"
    return f"image/{ext}"
