#!/usr/bin/env python3
"""Newsroom automation worker.

AUTOMATION_MODE=once runs a single scheduler tick and drains the publication
queue. In scheduled/daemon mode it keeps running:

- trending topics every 30 minutes (per the site's automation settings)
- the full scheduler tick (trends, weather, top topics, job pruning) hourly
- the publication queue every minute
"""

from __future__ import annotations

import logging
import time

import schedule

from cardinalnews.config import Settings
from cardinalnews.services import Services, build_services
from cardinalnews.storage.postgres_schema import ensure_postgres_schema

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("automation_worker")


def _safely(name, fn, *args):
    try:
        result = fn(*args)
        logger.info(f"[automation] {name} done: {result.get('message', result) if isinstance(result, dict) else result}")
        return result
    except Exception as e:
        logger.error(f"[automation] {name} failed: {e}", exc_info=True)
        return None


def fetch_trends_job(services: Services):
    return _safely("fetch", services.automation.run, "fetch")


def scheduler_job(services: Services):
    return _safely("scheduler", services.automation.scheduler_tick)


def publication_queue_job(services: Services):
    return _safely("publication-queue", services.publisher.process_queue)


def main() -> int:
    settings = Settings.from_env()
    if settings.auto_init_schema:
        ensure_postgres_schema(settings.pg_dsn)
    services = build_services(settings)

    if settings.automation_mode not in ("scheduled", "daemon"):
        scheduler_job(services)
        publication_queue_job(services)
        return 0

    schedule.every(30).minutes.do(fetch_trends_job, services)
    schedule.every().hour.do(scheduler_job, services)
    schedule.every(1).minutes.do(publication_queue_job, services)
    logger.info(f"[automation] running in {settings.automation_mode} mode")
    while True:
        schedule.run_pending()
        time.sleep(5)


if __name__ == "__main__":
    raise SystemExit(main())
