"""Sync trigger and status routes."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field
from sqlmodel import Session, select

from contentsync.db.engine import get_session
from contentsync.models.sync import SyncLog
from contentsync.sync.orchestrator import (
    MAX_INTERVAL_MINUTES,
    MIN_INTERVAL_MINUTES,
    OrchestratorStatus,
    RunReport,
    SyncOrchestrator,
)

router = APIRouter()


class PeriodicStartRequest(BaseModel):
    interval_minutes: int = Field(5, ge=MIN_INTERVAL_MINUTES, le=MAX_INTERVAL_MINUTES)


class PeriodicStartResponse(BaseModel):
    message: str
    interval_minutes: int
    replaced: bool


class PeriodicStopResponse(BaseModel):
    message: str
    was_stopped: bool


class SyncLogResponse(BaseModel):
    id: int
    job_name: str
    trigger: str
    status: str
    started_at: datetime
    finished_at: Optional[datetime]
    created: int
    updated: int
    deleted: int
    skipped: int
    errors_json: str
    error_message: Optional[str]


def get_orchestrator(request: Request) -> SyncOrchestrator:
    return request.app.state.orchestrator


@router.get("/status", response_model=OrchestratorStatus)
def sync_status(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Whether a run is in progress, when the last one finished, and periodic mode."""
    return orchestrator.status()


@router.get("/history", response_model=List[SyncLogResponse])
def sync_history(
    limit: int = Query(20, ge=1, le=200),
    session: Session = Depends(get_session),
):
    """Return the most recent per-job sync logs, newest first."""
    logs = session.exec(
        select(SyncLog).order_by(SyncLog.started_at.desc(), SyncLog.id.desc()).limit(limit)
    ).all()
    return logs


@router.post("/full", response_model=RunReport)
async def sync_full(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """
    Run every sync job now and wait for the report.
    A run already in progress yields a skipped report instead of a second run.
    """
    return await orchestrator.run_all(trigger="manual")


@router.post("/periodic/start", response_model=PeriodicStartResponse)
async def start_periodic(
    request: PeriodicStartRequest,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    """Start (or restart) periodic sync. Also kicks off an immediate run."""
    started = orchestrator.start_periodic(request.interval_minutes)
    return PeriodicStartResponse(
        message=f"Periodic sync started every {request.interval_minutes} minutes",
        interval_minutes=started["interval_minutes"],
        replaced=started["replaced"],
    )


@router.post("/periodic/stop", response_model=PeriodicStopResponse)
def stop_periodic(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    was_stopped = orchestrator.stop_periodic()
    return PeriodicStopResponse(
        message="Periodic sync stopped" if was_stopped else "Periodic sync was not running",
        was_stopped=was_stopped,
    )


@router.post("/{job_name}", response_model=RunReport)
async def sync_job(job_name: str, orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    """Run a single named job ("settings", "products", "blogs", "books")."""
    if job_name not in orchestrator.jobs:
        raise HTTPException(status_code=404, detail=f"Unknown sync job: {job_name}")
    return await orchestrator.run_job(job_name, trigger="manual")
