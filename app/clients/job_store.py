"""SQLite-backed tracking for contact backfill jobs."""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from app.schemas.jobs import BackfillSummary

STATUS_PENDING = "pending"
STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class BackfillJobStore:
    """Persist backfill job state so callers can poll for the outcome."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS backfill_jobs (
                    job_id TEXT PRIMARY KEY,
                    portal_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    requested_at TEXT NOT NULL,
                    started_at TEXT,
                    completed_at TEXT,
                    summary TEXT,
                    error TEXT
                )
                """
            )

    def create_job(self, portal_id: str) -> str:
        job_id = uuid.uuid4().hex
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO backfill_jobs (job_id, portal_id, status, requested_at)
                VALUES (?, ?, ?, ?)
                """,
                (job_id, portal_id, STATUS_PENDING, _now()),
            )
        return job_id

    def mark_running(self, job_id: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE backfill_jobs SET status = ?, started_at = ? WHERE job_id = ?",
                (STATUS_RUNNING, _now(), job_id),
            )

    def mark_completed(self, job_id: str, summary: BackfillSummary) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE backfill_jobs
                SET status = ?, completed_at = ?, summary = ?
                WHERE job_id = ?
                """,
                (STATUS_COMPLETED, _now(), summary.model_dump_json(), job_id),
            )

    def mark_failed(self, job_id: str, error: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE backfill_jobs
                SET status = ?, completed_at = ?, error = ?
                WHERE job_id = ?
                """,
                (STATUS_FAILED, _now(), error, job_id),
            )

    def get_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM backfill_jobs WHERE job_id = ?",
                (job_id,),
            ).fetchone()
        if not row:
            return None
        item = dict(row)
        if item.get("summary"):
            item["summary"] = json.loads(item["summary"])
        return item


__all__ = [
    "BackfillJobStore",
    "STATUS_COMPLETED",
    "STATUS_FAILED",
    "STATUS_PENDING",
    "STATUS_RUNNING",
]
