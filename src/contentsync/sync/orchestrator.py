"""
SyncOrchestrator: runs named SyncJobs, alone or all together, on demand or
on an interval.

    Idle --(run triggered)--> Running --(every job finished)--> Idle

A trigger that arrives while Running is answered immediately with a skipped
RunReport; it is not queued. The guard is per orchestrator instance and
in-process only: two processes each have their own.

The is_running check and the flag write happen with no await in between, so
on a single event loop (FastAPI handlers and APScheduler's AsyncIOExecutor
both run here) no second run can slip in between them.

Periodic mode is one APScheduler interval job with a fixed id. Starting it
again replaces the previous job; every start also kicks off one immediate
run.

Failure handling: a job that raises becomes a failed JobOutcome; the other
jobs of the same run are unaffected. run_all/run_job never raise for a job
failure. run_job raises KeyError for an unknown job name.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import BaseModel

from contentsync.sync.errors import OverlapRejected
from contentsync.sync.jobs import SyncJob
from contentsync.sync.records import SyncResult

logger = logging.getLogger(__name__)

PERIODIC_JOB_ID = "periodic_sync"
MIN_INTERVAL_MINUTES = 1
MAX_INTERVAL_MINUTES = 60


class JobOutcome(BaseModel):
    name: str
    success: bool
    status: str  # "success", "partial", "error"
    result: Optional[SyncResult] = None
    error: Optional[str] = None
    started_at: datetime
    finished_at: datetime
    duration_ms: int


class RunReport(BaseModel):
    success: bool
    skipped: bool = False
    reason: Optional[str] = None
    trigger: str = "manual"
    started_at: datetime
    finished_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    jobs: List[JobOutcome] = []


class OrchestratorStatus(BaseModel):
    is_running: bool
    last_sync_time: Optional[datetime]
    periodic_active: bool
    interval_minutes: Optional[int]


@dataclass
class OrchestratorState:
    is_running: bool = False
    last_sync_time: Optional[datetime] = None
    interval_minutes: Optional[int] = None


def _elapsed_ms(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() * 1000)


class SyncOrchestrator:
    """Coordinates the sync jobs of one process."""

    def __init__(self, jobs: Sequence[SyncJob], scheduler: Optional[AsyncIOScheduler] = None):
        """
        Args:
            jobs: Jobs in the order they are reported.
            scheduler: APScheduler to host periodic mode. Defaults to a new
                       AsyncIOScheduler, started on first start_periodic().
        """
        self.jobs: Dict[str, SyncJob] = {job.name: job for job in jobs}
        self.state = OrchestratorState()
        self.scheduler = scheduler or AsyncIOScheduler()
        self.initial_run: Optional[asyncio.Task] = None

    @property
    def job_names(self) -> List[str]:
        return list(self.jobs)

    # ─── Triggers ─────────────────────────────────────────────────────────────

    async def run_all(self, trigger: str = "manual") -> RunReport:
        """Run every job concurrently and collect one outcome per job."""
        return await self._run(list(self.jobs.values()), trigger)

    async def run_job(self, name: str, trigger: str = "manual") -> RunReport:
        """Run a single named job. Raises KeyError for an unknown name."""
        job = self.jobs[name]
        return await self._run([job], trigger)

    async def _run(self, jobs: List[SyncJob], trigger: str) -> RunReport:
        started = datetime.utcnow()
        if self.state.is_running:
            logger.info("Sync already in progress, skipping %s trigger", trigger)
            return RunReport(
                success=False,
                skipped=True,
                reason=OverlapRejected.reason,
                trigger=trigger,
                started_at=started,
            )

        self.state.is_running = True
        logger.info("Starting sync of %s (%s)", ", ".join(j.name for j in jobs), trigger)
        try:
            gathered = await asyncio.gather(
                *(self._run_one(job, trigger) for job in jobs),
                return_exceptions=True,
            )
        finally:
            self.state.is_running = False

        outcomes = []
        for job, item in zip(jobs, gathered):
            if isinstance(item, JobOutcome):
                outcomes.append(item)
            elif isinstance(item, Exception):
                now = datetime.utcnow()
                outcomes.append(JobOutcome(
                    name=job.name, success=False, status="error", error=str(item),
                    started_at=started, finished_at=now, duration_ms=_elapsed_ms(started, now),
                ))
            else:
                raise item  # cancellation and other BaseExceptions

        finished = datetime.utcnow()
        self.state.last_sync_time = finished
        report = RunReport(
            success=all(o.success for o in outcomes),
            trigger=trigger,
            started_at=started,
            finished_at=finished,
            duration_ms=_elapsed_ms(started, finished),
            jobs=outcomes,
        )
        logger.info(
            "Sync finished in %dms: %s",
            report.duration_ms,
            ", ".join(f"{o.name}={o.status.upper()}" for o in outcomes),
        )
        return report

    async def _run_one(self, job: SyncJob, trigger: str) -> JobOutcome:
        started = datetime.utcnow()
        try:
            result = await job.run(trigger)
        except Exception as exc:
            finished = datetime.utcnow()
            return JobOutcome(
                name=job.name,
                success=False,
                status="error",
                error=str(exc) or exc.__class__.__name__,
                started_at=started,
                finished_at=finished,
                duration_ms=_elapsed_ms(started, finished),
            )
        finished = datetime.utcnow()
        return JobOutcome(
            name=job.name,
            success=True,
            status="partial" if result.has_errors else "success",
            result=result,
            started_at=started,
            finished_at=finished,
            duration_ms=_elapsed_ms(started, finished),
        )

    # ─── Periodic mode ────────────────────────────────────────────────────────

    def start_periodic(self, interval_minutes: int) -> Dict[str, object]:
        """
        Run all jobs now and then every `interval_minutes`.

        Must be called from a running event loop. Replaces any periodic
        job already scheduled.

        Raises:
            ValueError: interval outside 1..60 minutes.
        """
        if not MIN_INTERVAL_MINUTES <= interval_minutes <= MAX_INTERVAL_MINUTES:
            raise ValueError(
                f"Interval must be between {MIN_INTERVAL_MINUTES} and "
                f"{MAX_INTERVAL_MINUTES} minutes"
            )

        if not self.scheduler.running:
            self.scheduler.start()

        replaced = self.scheduler.get_job(PERIODIC_JOB_ID) is not None
        if replaced:
            logger.info("Replacing existing periodic sync")
        self.scheduler.add_job(
            self._periodic_tick,
            trigger="interval",
            minutes=interval_minutes,
            id=PERIODIC_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.state.interval_minutes = interval_minutes
        logger.info("Periodic sync every %d minutes", interval_minutes)

        self.initial_run = asyncio.create_task(self.run_all(trigger="periodic"))
        return {"interval_minutes": interval_minutes, "replaced": replaced}

    def stop_periodic(self) -> bool:
        """Cancel periodic mode. Returns False when it was not active."""
        if self.scheduler.get_job(PERIODIC_JOB_ID) is None:
            return False
        self.scheduler.remove_job(PERIODIC_JOB_ID)
        self.state.interval_minutes = None
        logger.info("Periodic sync stopped")
        return True

    async def _periodic_tick(self) -> None:
        logger.info("Triggered periodic sync")
        await self.run_all(trigger="periodic")

    # ─── Status / lifecycle ───────────────────────────────────────────────────

    def status(self) -> OrchestratorStatus:
        active = self.scheduler.get_job(PERIODIC_JOB_ID) is not None
        return OrchestratorStatus(
            is_running=self.state.is_running,
            last_sync_time=self.state.last_sync_time,
            periodic_active=active,
            interval_minutes=self.state.interval_minutes if active else None,
        )

    def shutdown(self) -> None:
        """Stop periodic mode and the scheduler. Safe to call more than once."""
        self.stop_periodic()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)


def build_orchestrator(engine, settings=None) -> SyncOrchestrator:
    """Orchestrator over the four content jobs, sharing one Google client."""
    from contentsync.config import get_settings
    from contentsync.sources.google_client import GoogleWorkspaceClient
    from contentsync.sync.jobs import build_default_jobs

    settings = settings or get_settings()
    client = GoogleWorkspaceClient(settings)
    return SyncOrchestrator(build_default_jobs(client, engine, settings))
