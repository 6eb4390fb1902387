"""Sync audit log model."""
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class SyncLog(SQLModel, table=True):
    """Records each job run for audit and status reporting."""

    id: Optional[int] = Field(default=None, primary_key=True)
    job_name: str = Field(index=True)
    trigger: str = "manual"  # "manual", "periodic", "cli"
    started_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    finished_at: Optional[datetime] = None
    status: str = "running"  # "running", "success", "partial", "error"
    created: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    errors_json: str = "[]"
    error_message: Optional[str] = None
