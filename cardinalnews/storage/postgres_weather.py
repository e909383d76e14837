from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from cardinalnews.storage.pg import PostgresStore


@dataclass
class PostgresWeatherStore(PostgresStore):
    json_columns: tuple = ("data",)

    def save_snapshot(self, data: Any) -> Dict[str, Any]:
        return self._insert("weather_data", {"data": data})

    def latest(self) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM weather_data ORDER BY fetched_at DESC LIMIT 1")
