"""SQLite-backed persistence for HubSpot and PostHog tokens."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


class TokenStore:
    """Token records keyed by HubSpot portal id, one row per portal."""

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
                CREATE TABLE IF NOT EXISTS tokens (
                    portal_id TEXT PRIMARY KEY,
                    hubspot_access_token TEXT NOT NULL,
                    hubspot_refresh_token TEXT NOT NULL,
                    posthog_access_token TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def upsert_tokens(
        self,
        *,
        portal_id: str,
        hubspot_access_token: str,
        hubspot_refresh_token: str,
        posthog_access_token: str,
    ) -> None:
        """Insert the token row for ``portal_id`` or overwrite its tokens."""
        if not portal_id:
            raise ValueError("portal_id is required")

        now = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO tokens (
                    portal_id,
                    hubspot_access_token,
                    hubspot_refresh_token,
                    posthog_access_token,
                    created_at,
                    updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(portal_id) DO UPDATE SET
                    hubspot_access_token = excluded.hubspot_access_token,
                    hubspot_refresh_token = excluded.hubspot_refresh_token,
                    posthog_access_token = excluded.posthog_access_token,
                    updated_at = excluded.updated_at
                """,
                (
                    portal_id,
                    hubspot_access_token,
                    hubspot_refresh_token,
                    posthog_access_token,
                    now,
                    now,
                ),
            )

    def get_tokens(self, portal_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM tokens WHERE portal_id = ?",
                (portal_id,),
            ).fetchone()
        if not row:
            return None
        return dict(row)

    def count(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM tokens").fetchone()
        return int(row["total"])


__all__ = ["TokenStore"]
