"""Environment-driven configuration for the Cardinal News service.

Keys are read once at startup (after `load_dotenv()`); handlers that need a
third-party key check for it themselves so a missing key only disables the
feature that depends on it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_PG_DSN = "dbname=cardinalnews user=cardinal password=cardinalpass host=localhost port=5432"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Service configuration with validation"""

    pg_dsn: str = DEFAULT_PG_DSN

    # AI gateway (OpenAI-compatible)
    lovable_api_key: str = ""
    ai_gateway_url: str = "https://ai.gateway.lovable.dev/v1"
    ai_model: str = "google/gemini-2.5-flash"
    ai_image_model: str = "google/gemini-2.5-flash-image-preview"

    # Search / market / weather providers
    serper_api_key: str = ""
    finnhub_api_key: str = ""
    alpha_vantage_api_key: str = ""
    twelve_data_api_key: str = ""
    openweather_api_key: str = ""

    # Object storage for article images
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    image_bucket: str = "article-images"

    # HTTP surface
    admin_api_keys: List[str] = field(default_factory=list)
    site_base_url: str = "https://www.cardinal-news.com"
    request_timeout: int = 30
    auto_init_schema: bool = True

    # Workers
    automation_mode: str = "once"

    @classmethod
    def from_env(cls) -> "Settings":
        """Load and validate configuration from environment variables"""
        load_dotenv()
        settings = cls(
            pg_dsn=os.getenv("PG_DSN", DEFAULT_PG_DSN),
            lovable_api_key=os.getenv("LOVABLE_API_KEY", ""),
            ai_gateway_url=os.getenv("AI_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1"),
            ai_model=os.getenv("AI_MODEL", "google/gemini-2.5-flash"),
            ai_image_model=os.getenv("AI_IMAGE_MODEL", "google/gemini-2.5-flash-image-preview"),
            serper_api_key=os.getenv("SERPER_API_KEY", ""),
            finnhub_api_key=os.getenv("FINNHUB_API_KEY", ""),
            alpha_vantage_api_key=os.getenv("ALPHA_VANTAGE_API_KEY", ""),
            twelve_data_api_key=os.getenv("TWELVE_DATA_API_KEY", ""),
            openweather_api_key=os.getenv("OPENWEATHER_API_KEY", ""),
            supabase_url=os.getenv("SUPABASE_URL", ""),
            supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY", ""),
            image_bucket=os.getenv("IMAGE_BUCKET", "article-images"),
            admin_api_keys=[k.strip() for k in os.getenv("ADMIN_API_KEYS", "").split(",") if k.strip()],
            site_base_url=os.getenv("SITE_BASE_URL", "https://www.cardinal-news.com").rstrip("/"),
            request_timeout=int(os.getenv("REQUEST_TIMEOUT", "30")),
            auto_init_schema=_env_bool("AUTO_INIT_SCHEMA", True),
            automation_mode=(os.getenv("AUTOMATION_MODE") or "once").strip().lower(),
        )
        for problem in settings._validate():
            logger.warning(f"Config: {problem}")
        return settings

    def _validate(self) -> List[str]:
        """Return configuration problems; none of them are fatal on their own."""
        problems = []
        if not self.pg_dsn:
            problems.append("PG_DSN is empty")
        if not self.lovable_api_key:
            problems.append("LOVABLE_API_KEY not set; generation, verification and translation are disabled")
        if not self.serper_api_key:
            problems.append("SERPER_API_KEY not set; news image search and news validation are disabled")
        if not self.openweather_api_key:
            problems.append("OPENWEATHER_API_KEY not set; weather endpoints are disabled")
        if bool(self.supabase_url) != bool(self.supabase_service_role_key):
            problems.append("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set together")
        if self.request_timeout <= 0:
            problems.append("REQUEST_TIMEOUT must be positive")
        if self.automation_mode not in ("once", "scheduled", "daemon"):
            problems.append(f"AUTOMATION_MODE '{self.automation_mode}' is not one of once/scheduled/daemon")
        return problems
