"""Scheduled newsroom runs: trend fetches, article batches and housekeeping."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from cardinalnews.errors import InvalidRequestError
from cardinalnews.newsroom.generation import ArticleGenerator
from cardinalnews.newsroom.trends import TrendsService
from cardinalnews.storage.postgres_jobs import JobLog
from cardinalnews.storage.postgres_settings import PostgresSettingsStore
from cardinalnews.storage.postgres_topics import PostgresTopicStore
from cardinalnews.weather.openweather import OpenWeatherClient

logger = logging.getLogger(__name__)

AUTOMATION_TYPES = ("fetch", "generate", "full")
AUTOMATION_FETCH_LIMIT = 20
SCHEDULER_REGION = "US"
SCHEDULER_TOPICS = 3
JOB_RETENTION_DAYS = 7


@dataclass
class AutomationRunner:
    trends: TrendsService
    generator: ArticleGenerator
    topics: PostgresTopicStore
    settings: PostgresSettingsStore
    jobs: JobLog
    weather: Optional[OpenWeatherClient] = None

    def _run_settings(self) -> Dict[str, Any]:
        values = self.settings.get_all()
        return {
            "region": values.get("default_region") or "global",
            "max_articles": int(values.get("max_articles_per_run") or 5),
            "autopublish": values.get("autopublish_enabled") is not False,
        }

    def run(self, automation_type: str = "full") -> Dict[str, Any]:
        automation_type = automation_type or "full"
        if automation_type not in AUTOMATION_TYPES:
            raise InvalidRequestError(f"Unknown automation type: {automation_type}")
        logger.info(f"Running automation: {automation_type}")

        job_type = "fetch_trends" if automation_type == "fetch" else "generate_article"
        with self.jobs.track(job_type, {"automation_type": automation_type}) as job_id:
            opts = self._run_settings()

            if automation_type in ("fetch", "full"):
                logger.info("Fetching trends...")
                self.trends.fetch_trends(opts["region"], AUTOMATION_FETCH_LIMIT, verify=opts["autopublish"])

            if automation_type in ("generate", "full"):
                logger.info("Generating articles...")
                for topic in self.topics.list_unprocessed(limit=opts["max_articles"]):
                    logger.info(f"Generating article for: {topic['topic']}")
                    try:
                        self.generator.generate(topic["id"], verify=opts["autopublish"])
                    except Exception as e:
                        logger.error(f"Article generation failed for {topic['topic']}: {e}", exc_info=True)

        return {"success": True, "message": f"Automation run completed: {automation_type}", "jobId": job_id}

    def scheduler_tick(self) -> Dict[str, Any]:
        """Hourly housekeeping pass. Each task failing is logged and does not stop the others."""
        logger.info("Running automation scheduler...")
        tasks_run = 0

        logger.info("Task 1: Fetching trending topics...")
        tasks_run += 1
        try:
            self.trends.fetch_trends(SCHEDULER_REGION)
        except Exception as e:
            logger.error(f"Scheduled trend fetch failed: {e}", exc_info=True)

        if self.weather is not None:
            logger.info("Task 2: Fetching global weather...")
            tasks_run += 1
            try:
                self.weather.global_weather()
            except Exception as e:
                logger.error(f"Scheduled weather fetch failed: {e}", exc_info=True)

        logger.info("Task 3: Checking for trending topics to generate articles...")
        for topic in self.topics.top_without_article(limit=SCHEDULER_TOPICS):
            logger.info(f"Generating article for topic: {topic['topic']}")
            tasks_run += 1
            try:
                self.generator.generate(topic["id"])
            except Exception as e:
                logger.error(f"Scheduled generation failed for {topic['topic']}: {e}", exc_info=True)

        logger.info("Task 4: Cleaning up old jobs...")
        removed = self.jobs.prune(days=JOB_RETENTION_DAYS)
        logger.info(f"Removed {removed} jobs older than {JOB_RETENTION_DAYS} days")

        logger.info("Automation scheduler completed successfully")
        return {
            "success": True,
            "message": "Automation tasks completed",
            "tasksRun": tasks_run,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
