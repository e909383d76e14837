"""OpenWeatherMap client: city snapshots for the weather page and 7-day forecasts."""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from cardinalnews.errors import InvalidRequestError, UpstreamError, require_key
from cardinalnews.storage.postgres_weather import PostgresWeatherStore

logger = logging.getLogger(__name__)

OWM_BASE = "https://api.openweathermap.org/data"
USER_AGENT = "CardinalNews/2.0"
MAX_FORECAST_DAYS = 7

GLOBAL_CITIES: List[Dict[str, Any]] = [
    {"name": "New York", "lat": 40.7128, "lon": -74.0060, "region": "North America"},
    {"name": "London", "lat": 51.5074, "lon": -0.1278, "region": "Europe"},
    {"name": "Tokyo", "lat": 35.6762, "lon": 139.6503, "region": "Asia"},
    {"name": "Sydney", "lat": -33.8688, "lon": 151.2093, "region": "Oceania"},
    {"name": "Dubai", "lat": 25.2048, "lon": 55.2708, "region": "Middle East"},
    {"name": "São Paulo", "lat": -23.5505, "lon": -46.6333, "region": "South America"},
    {"name": "Mumbai", "lat": 19.0760, "lon": 72.8777, "region": "Asia"},
    {"name": "Paris", "lat": 48.8566, "lon": 2.3522, "region": "Europe"},
    {"name": "Beijing", "lat": 39.9042, "lon": 116.4074, "region": "Asia"},
    {"name": "Los Angeles", "lat": 34.0522, "lon": -118.2437, "region": "North America"},
    {"name": "Cairo", "lat": 30.0444, "lon": 31.2357, "region": "Africa"},
    {"name": "Moscow", "lat": 55.7558, "lon": 37.6173, "region": "Europe"},
    {"name": "Singapore", "lat": 1.3521, "lon": 103.8198, "region": "Asia"},
    {"name": "Mexico City", "lat": 19.4326, "lon": -99.1332, "region": "North America"},
    {"name": "Lagos", "lat": 6.5244, "lon": 3.3792, "region": "Africa"},
]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def group_forecast_days(items: List[Dict[str, Any]], *, max_days: int = MAX_FORECAST_DAYS) -> List[Dict[str, Any]]:
    """Fold 3-hourly /forecast entries into daily summaries (UTC calendar days)."""
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for item in items:
        day = datetime.fromtimestamp(item["dt"], tz=timezone.utc).date().isoformat()
        grouped.setdefault(day, []).append(item)

    daily: List[Dict[str, Any]] = []
    for day, entries in list(grouped.items())[:max_days]:
        temps = [e["main"]["temp"] for e in entries]
        mid = entries[len(entries) // 2]
        midnight = datetime.fromisoformat(day).replace(tzinfo=timezone.utc)
        daily.append(
            {
                "dt": int(midnight.timestamp()),
                "temp": {"min": min(temps), "max": max(temps), "day": sum(temps) / len(temps)},
                "weather": [(mid.get("weather") or [None])[0]],
                "humidity": mid["main"].get("humidity"),
                "wind_speed": (mid.get("wind") or {}).get("speed"),
                "pop": max(e.get("pop") or 0 for e in entries),
                "hourly": [
                    {"dt": h["dt"], "temp": h["main"]["temp"], "weather": h.get("weather"), "pop": h.get("pop") or 0}
                    for h in entries[:8]
                ],
            }
        )
    return daily


@dataclass
class OpenWeatherClient:
    api_key: str
    store: Optional[PostgresWeatherStore] = None
    timeout: int = 30
    max_workers: int = 8

    def _get(self, path: str, params: Dict[str, Any]) -> requests.Response:
        require_key(self.api_key, "OPENWEATHER_API_KEY")
        return requests.get(
            f"{OWM_BASE}/{path}",
            params={**params, "appid": self.api_key},
            headers={"User-Agent": USER_AGENT},
            timeout=self.timeout,
        )

    def _get_json(self, path: str, params: Dict[str, Any]) -> Any:
        resp = self._get(path, params)
        resp.raise_for_status()
        return resp.json()

    def city_snapshot(self, city: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            data = self._get_json("2.5/weather", {"lat": city["lat"], "lon": city["lon"], "units": "metric"})
        except requests.RequestException as e:
            logger.error(f"Error fetching weather for {city['name']}: {e}")
            return None
        return {**city, "weather": data, "timestamp": _now_iso()}

    def location_weather(self, *, city_name: Optional[str] = None, coordinates: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Current conditions, 5-day forecast and air quality for one place."""
        if coordinates:
            where: Dict[str, Any] = {"lat": coordinates.get("lat"), "lon": coordinates.get("lon")}
        else:
            where = {"q": city_name}
        try:
            current = self._get_json("2.5/weather", {**where, "units": "metric"})
            forecast = self._get_json("2.5/forecast", {**where, "units": "metric"})
            coord = current.get("coord") or {}
            lat = coord.get("lat") or where.get("lat")
            lon = coord.get("lon") or where.get("lon")
            air_quality = None
            if lat and lon:
                air_quality = self._get_json("2.5/air_pollution", {"lat": lat, "lon": lon})
        except requests.RequestException as e:
            raise UpstreamError(f"Weather lookup failed: {e}") from e
        return {"success": True, "current": current, "forecast": forecast, "airQuality": air_quality}

    def global_weather(self) -> Dict[str, Any]:
        """Fetch every tracked city concurrently, drop failures and keep a snapshot row."""
        require_key(self.api_key, "OPENWEATHER_API_KEY")
        logger.info("Fetching weather for all global cities...")
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as ex:
            snapshots = list(ex.map(self.city_snapshot, GLOBAL_CITIES))
        cities = [s for s in snapshots if s is not None]

        if self.store is not None:
            try:
                self.store.save_snapshot(cities)
            except Exception as e:
                logger.error(f"Error storing weather data: {e}", exc_info=True)

        return {"success": True, "cities": cities, "totalCities": len(cities), "timestamp": _now_iso()}

    def fetch(self, *, city_name: Optional[str] = None, coordinates: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        require_key(self.api_key, "OPENWEATHER_API_KEY")
        if city_name or coordinates:
            return self.location_weather(city_name=city_name, coordinates=coordinates)
        return self.global_weather()

    def forecast(self, lat: Any, lon: Any) -> Dict[str, Any]:
        if lat in (None, "") or lon in (None, ""):
            raise InvalidRequestError("Latitude and longitude are required")
        require_key(self.api_key, "OPENWEATHER_API_KEY")
        logger.info(f"Fetching 7-day forecast for lat: {lat}, lon: {lon}")

        try:
            resp = self._get("3.0/onecall", {"lat": lat, "lon": lon, "exclude": "minutely", "units": "metric"})
            if resp.ok:
                data = resp.json()
                return {
                    "success": True,
                    "current": data.get("current"),
                    "daily": (data.get("daily") or [])[:MAX_FORECAST_DAYS],
                    "hourly": (data.get("hourly") or [])[:24],
                    "alerts": data.get("alerts") or [],
                    "source": "onecall",
                }
            logger.info(f"One Call unavailable ({resp.status_code}), using 5-day forecast")
            fallback = self._get("2.5/forecast", {"lat": lat, "lon": lon, "units": "metric"})
        except requests.RequestException as e:
            raise UpstreamError("Failed to fetch forecast data") from e
        if not fallback.ok:
            raise UpstreamError("Failed to fetch forecast data")

        items = fallback.json().get("list") or []
        return {
            "success": True,
            "current": items[0] if items else None,
            "daily": group_forecast_days(items),
            "hourly": items[:24],
            "source": "fallback",
        }
