"""Schemas for tracking contact backfill jobs."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class BackfillSummary(BaseModel):
    """Counters describing a finished backfill run."""

    contacts_seen: int = 0
    contacts_eligible: int = 0
    contacts_updated: int = 0
    contacts_failed: int = 0


class BackfillJobStatus(BaseModel):
    """Represents the state of a backfill job stored in SQLite."""

    job_id: str
    portal_id: str
    status: str
    requested_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    summary: Optional[BackfillSummary] = None
    error: Optional[str] = None


__all__ = ["BackfillJobStatus", "BackfillSummary"]
