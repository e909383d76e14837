"""Automation job log.

Every long-running handler records a row in `jobs`; `track()` makes sure a
failing body leaves the row marked `failed` with the error message.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from cardinalnews.storage.pg import PostgresStore

logger = logging.getLogger(__name__)


@dataclass
class JobLog(PostgresStore):
    json_columns: tuple = ("payload",)

    def start(self, job_type: str, payload: Optional[Dict[str, Any]] = None) -> str:
        row = self._insert("jobs", {"type": job_type, "status": "running", "payload": payload or {}})
        return row["id"]

    def complete(self, job_id: str, payload: Optional[Dict[str, Any]] = None) -> None:
        fields: Dict[str, Any] = {"status": "completed"}
        if payload is not None:
            fields["payload"] = payload
        self._finish(job_id, fields)

    def fail(self, job_id: str, message: str) -> None:
        self._finish(job_id, {"status": "failed", "error_message": message[:2000]})

    def _finish(self, job_id: str, fields: Dict[str, Any]) -> None:
        fields = self._adapt(fields)
        sets = ", ".join(f"{k} = %({k})s" for k in fields)
        params = dict(fields)
        params["job_id"] = job_id
        with self._cursor() as cur:
            cur.execute(f"UPDATE jobs SET {sets}, completed_at = now() WHERE id = %(job_id)s", params)

    @contextmanager
    def track(self, job_type: str, payload: Optional[Dict[str, Any]] = None) -> Iterator[str]:
        """Open a job, complete it on success, mark it failed and re-raise on error."""
        job_id = self.start(job_type, payload)
        try:
            yield job_id
        except Exception as e:
            logger.error(f"Job {job_type} ({job_id}) failed: {e}")
            try:
                self.fail(job_id, str(e))
            except Exception as log_err:
                logger.error(f"Could not mark job {job_id} failed: {log_err}")
            raise
        self.complete(job_id)

    def recent(self, *, limit: int = 50) -> List[Dict[str, Any]]:
        return self._fetch_all("SELECT * FROM jobs ORDER BY created_at DESC LIMIT %s", (int(limit),))

    def prune(self, *, days: int = 7) -> int:
        return self._execute("DELETE FROM jobs WHERE created_at < now() - make_interval(days => %s)", (int(days),))

    def status_counts(self) -> Dict[str, int]:
        rows = self._fetch_all("SELECT status, count(*) AS n FROM jobs GROUP BY status")
        return {r["status"]: int(r["n"]) for r in rows}
