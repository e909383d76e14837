"""Key/value runtime settings (JSONB values)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from psycopg.types.json import Jsonb

from cardinalnews.storage.pg import PostgresStore


@dataclass
class PostgresSettingsStore(PostgresStore):
    def get_all(self) -> Dict[str, Any]:
        rows = self._fetch_all("SELECT key, value FROM settings ORDER BY key")
        return {r["key"]: r["value"] for r in rows}

    def get(self, key: str, default: Any = None) -> Any:
        row = self._fetch_one("SELECT value FROM settings WHERE key = %s", (key,))
        if row is None or row["value"] is None:
            return default
        return row["value"]

    def set(self, key: str, value: Any) -> None:
        self._execute(
            """
            INSERT INTO settings (key, value, updated_at) VALUES (%s, %s, now())
            ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = now()
            """,
            (key, Jsonb(value)),
        )

    def update_many(self, values: Dict[str, Any]) -> Dict[str, Any]:
        for key, value in values.items():
            self.set(key, value)
        return self.get_all()
