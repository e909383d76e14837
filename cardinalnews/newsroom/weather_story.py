"""Weather-driven local stories for Jamaica.

The live conditions in a randomly picked town decide the tone and focus of
the piece. These stories never carry images.
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from cardinalnews.ai.gateway import AIGateway
from cardinalnews.errors import CardinalError, UpstreamError
from cardinalnews.newsroom.generation import DEFAULT_AUTHOR
from cardinalnews.newsroom.text import make_slug, read_time, word_count
from cardinalnews.newsroom.verification import ArticleVerifier
from cardinalnews.storage.postgres_articles import PostgresArticleStore
from cardinalnews.weather.openweather import OpenWeatherClient

logger = logging.getLogger(__name__)

JAMAICA_LOCATIONS = (
    {"name": "Kingston", "region": "the capital", "features": "bustling urban center, historic landmarks"},
    {"name": "Montego Bay", "region": "the northwest coast", "features": "tourism hub, beaches, resorts"},
    {"name": "Ocho Rios", "region": "the north coast", "features": "waterfalls, cruise port, attractions"},
    {"name": "Negril", "region": "the western tip", "features": "Seven Mile Beach, cliffs, sunsets"},
    {"name": "Port Antonio", "region": "the northeast", "features": "Blue Lagoon, rainforest, eco-tourism"},
    {"name": "Mandeville", "region": "the central highlands", "features": "cooler climate, agriculture, mountains"},
)

TONE_INSTRUCTIONS = {
    "urgent": "Write with URGENCY and AUTHORITY. Focus on immediate safety concerns and actionable advice.",
    "informative": "Write with CLARITY and DEPTH. Explain the weather patterns, community impacts and what residents need to know.",
    "advisory": "Write with CARE and EXPERTISE. Provide health and wellness guidance with expert tips.",
    "cautionary": "Write with BALANCE and PRACTICALITY. Discuss outdoor activities, events and daily plans.",
    "lifestyle": "Write with WARMTH and RELATABILITY. Connect the weather to daily Jamaican life and culture.",
    "positive": "Write with ENERGY and OPTIMISM. Celebrate the weather while staying useful.",
    "neutral": "Write with PROFESSIONALISM and ACCURACY. Give a balanced weather update with relevant context.",
}

FOCUS_AREAS = {
    "safety": "safety protocols, emergency preparedness, protection measures, official warnings",
    "community-impact": "how this affects neighborhoods, local businesses, schools, transportation, agriculture",
    "health-wellness": "heat management, hydration, vulnerable populations, advice from health officials",
    "outdoor-activities": "events, sports, tourism, beach conditions, hiking, water activities",
    "daily-living": "household tips, clothing advice, energy use, sleep quality, mood effects",
    "lifestyle-culture": "festivals, music events, food culture, social gatherings, outdoor dining",
    "general-update": "comprehensive weather overview, forecast trends, seasonal patterns",
}

WEATHER_SYSTEM_PROMPT = (
    "You are an award-winning journalist who writes unique, engaging and varied news articles. "
    "Each piece must be completely distinct with fresh perspectives and angles. "
    "Use the provided tool to return structured article data."
)

WEATHER_PROMPT = """You are Hunain Qureshi, an award-winning journalist at Cardinal News covering Jamaica. Write a COMPLETELY UNIQUE, FRESH news article about current weather in {name}, {region}.

CURRENT WEATHER IN JAMAICA ({name}, {region}):
- Temperature: {temp}°C (Feels like: {feels_like}°C)
- Conditions: {conditions} - {description}
- Wind Speed: {wind} m/s
- Humidity: {humidity}%
- Pressure: {pressure} hPa
- Cloud Coverage: {clouds}%
- Local Features: {features}
{alerts}
Recent Article Titles (MUST BE COMPLETELY DIFFERENT):
{recent}

TONE: {tone}
FOCUS: {focus}

FORMATTING: open with a unique <p> paragraph, use <h2> sections, 2-3 <blockquote> quotes from meteorologists, community leaders, health officials or business owners, and <strong> for key facts.
CONTENT (1200-1800 words): incorporate local culture and community voices, give specific actionable information and end with forward-looking community insight."""

ARTICLE_TOOL = {
    "type": "function",
    "function": {
        "name": "create_article",
        "description": "Create a unique news article with structured data",
        "parameters": {
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "UNIQUE headline under 80 characters"},
                "excerpt": {"type": "string", "description": "2-3 sentence summary (150-200 chars)"},
                "content": {"type": "string", "description": "Full article (1200-1800 words) in HTML"},
                "category": {"type": "string", "enum": ["world"]},
                "tags": {"type": "array", "items": {"type": "string"}},
                "meta_description": {"type": "string", "description": "SEO meta description 150-160 chars"},
                "meta_keywords": {"type": "array", "items": {"type": "string"}},
            },
            "required": ["title", "excerpt", "content", "category", "tags", "meta_description", "meta_keywords"],
            "additionalProperties": False,
        },
    },
}


def story_angle(current: Dict[str, Any], alerts: Optional[List[Any]] = None) -> Dict[str, str]:
    """Pick tone, focus and priority from current conditions; the first matching rule wins."""
    main = current.get("main") or {}
    temp = float(main.get("temp") or 0)
    humidity = float(main.get("humidity") or 0)
    wind = float((current.get("wind") or {}).get("speed") or 0)
    weather = (current.get("weather") or [{}])[0] or {}
    conditions = str(weather.get("main") or "").lower()

    if alerts:
        return {"tone": "urgent", "focus": "safety", "priority": "critical"}
    if "rain" in conditions or "storm" in conditions:
        return {"tone": "informative", "focus": "community-impact", "priority": "high"}
    if temp > 32:
        return {"tone": "advisory", "focus": "health-wellness", "priority": "medium"}
    if wind > 10:
        return {"tone": "cautionary", "focus": "outdoor-activities", "priority": "medium"}
    if humidity > 80:
        return {"tone": "lifestyle", "focus": "daily-living", "priority": "low"}
    if "clear" in conditions and 25 < temp < 30:
        return {"tone": "positive", "focus": "lifestyle-culture", "priority": "low"}
    return {"tone": "neutral", "focus": "general-update", "priority": "low"}


def build_weather_messages(
    location: Dict[str, str],
    current: Dict[str, Any],
    alerts: Optional[List[Any]],
    angle: Dict[str, str],
    recent_titles: List[str],
) -> List[Dict[str, str]]:
    main = current.get("main") or {}
    weather = (current.get("weather") or [{}])[0] or {}
    prompt = WEATHER_PROMPT.format(
        name=location["name"],
        region=location["region"],
        features=location["features"],
        temp=main.get("temp"),
        feels_like=main.get("feels_like"),
        conditions=weather.get("main", "unknown"),
        description=weather.get("description", ""),
        wind=(current.get("wind") or {}).get("speed"),
        humidity=main.get("humidity"),
        pressure=main.get("pressure"),
        clouds=(current.get("clouds") or {}).get("all", 0),
        alerts=f"ACTIVE ALERTS: {json.dumps(alerts)}" if alerts else "",
        recent="\n".join(recent_titles) or "(none)",
        tone=TONE_INSTRUCTIONS[angle["tone"]],
        focus=FOCUS_AREAS[angle["focus"]],
    )
    return [{"role": "system", "content": WEATHER_SYSTEM_PROMPT}, {"role": "user", "content": prompt}]


@dataclass
class JamaicaWeatherDesk:
    gateway: AIGateway
    weather: OpenWeatherClient
    articles: PostgresArticleStore
    verifier: Optional[ArticleVerifier] = None
    rng: random.Random = field(default_factory=random.Random)

    def _alerts(self, current: Dict[str, Any]) -> List[Any]:
        coord = current.get("coord") or {}
        if coord.get("lat") is None or coord.get("lon") is None:
            return []
        try:
            return self.weather.forecast(coord["lat"], coord["lon"]).get("alerts") or []
        except CardinalError as e:
            logger.warning(f"Weather alerts unavailable: {e}")
            return []

    def generate(self, *, verify: bool = True) -> Dict[str, Any]:
        location = self.rng.choice(JAMAICA_LOCATIONS)
        logger.info(f"Generating story for {location['name']}, Jamaica...")
        recent_titles = self.articles.titles_like("jamaica", limit=10)

        current = self.weather.location_weather(city_name=f"{location['name']},JM")["current"] or {}
        alerts = self._alerts(current)
        angle = story_angle(current, alerts)
        logger.info(f"Story angle: {angle}")

        data = self.gateway.tool_call(
            build_weather_messages(location, current, alerts, angle, recent_titles), ARTICLE_TOOL, temperature=0.9
        )
        if not data or not data.get("title") or not data.get("content"):
            raise UpstreamError("AI did not return article data")

        words = word_count(data["content"])
        article = self.articles.insert_article(
            {
                "title": data["title"],
                "slug": make_slug(data["title"], 60, rng=self.rng),
                "excerpt": data.get("excerpt"),
                "content": data["content"],
                "category": "world",
                "author": DEFAULT_AUTHOR,
                "tags": data.get("tags") or ["jamaica", "weather", location["name"].lower()],
                "meta_title": data["title"],
                "meta_description": data.get("meta_description"),
                "meta_keywords": data.get("meta_keywords") or [],
                "og_title": data["title"],
                "og_description": data.get("excerpt"),
                "featured_image": None,
                "image_url": None,
                "image_credit": None,
                "status": "draft",
                "read_time": read_time(words),
                "word_count": words,
            }
        )
        status = article.get("status", "draft")
        if self.verifier is not None:
            outcome = self.verifier.verify_and_publish(article["id"], skip_verification=not verify)
            status = outcome.get("article_status", status)
        logger.info(f"Jamaica story [{angle['tone']}/{angle['focus']}] {status}: \"{data['title']}\"")

        return {
            "success": True,
            "article": {
                "id": article["id"],
                "title": data["title"],
                "slug": article.get("slug"),
                "location": location["name"],
                "angle": angle,
                "status": status,
                "imageUrl": None,
            },
        }
