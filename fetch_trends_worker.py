#!/usr/bin/env python3
"""Trending-topic ingestion worker.

Runs one Google Trends fetch (or scheduled every 30 minutes) for the
configured regions and generates an article for each new topic.

  TRENDS_REGIONS   comma separated, default "US"
  TRENDS_LIMIT     topics per region, default 10
  TRENDS_GENERATE  "false" to ingest topics without writing articles
"""

from __future__ import annotations

import logging
import os
import time
from typing import List

import schedule

from cardinalnews.config import Settings
from cardinalnews.services import Services, build_services
from cardinalnews.storage.postgres_schema import ensure_postgres_schema

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("fetch_trends_worker")


def _regions() -> List[str]:
    return [r.strip() for r in os.environ.get("TRENDS_REGIONS", "US").split(",") if r.strip()]


def run_once(services: Services) -> int:
    limit = int(os.environ.get("TRENDS_LIMIT", "10"))
    generate = os.environ.get("TRENDS_GENERATE", "true").strip().lower() != "false"
    added = 0
    for region in _regions():
        try:
            result = services.trends.fetch_trends(region, limit, generate=generate)
        except Exception as e:
            logger.error(f"[trends] region={region} failed: {e}", exc_info=True)
            continue
        added += result.get("topicsAdded", 0)
    logger.info(f"[trends] regions={len(_regions())} topics_added={added}")
    return added


def main() -> int:
    settings = Settings.from_env()
    if settings.auto_init_schema:
        ensure_postgres_schema(settings.pg_dsn)
    services = build_services(settings)

    if settings.automation_mode in ("scheduled", "daemon"):
        schedule.every(30).minutes.do(run_once, services)
        run_once(services)
        while True:
            schedule.run_pending()
            time.sleep(5)
    run_once(services)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
