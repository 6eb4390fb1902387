"""
SyncJob: one reconciliation run for one record kind.

Flow for a single run:
  1. Create SyncLog (status="running")
  2. Read candidates from the source (Sheets or Drive)
  3. Tag identities, dropping candidates without one
  4. Reconcile against the stored identities
  5. Apply deletes, then creates/updates, one record at a time
  6. Update SyncLog (status="success", or "partial" if any record failed)

On a job-level exception (ConfigurationError, SourceUnavailable, anything
unexpected): update SyncLog (status="error") and re-raise. The orchestrator
turns that into a failed JobOutcome.

Empty sources: a reader raising SourceEmpty yields an empty candidate set.
Unless purge_on_empty is set, the stored records are then left alone rather
than all deleted, since an empty read is more often a broken share or a
mid-edit sheet than a deliberate purge.
"""
import functools
import json
import logging
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from sqlmodel import Session

from contentsync.config import Settings
from contentsync.models.content import Blog, Book, Product, SiteSetting
from contentsync.models.sync import SyncLog
from contentsync.sources.drive import read_blogs, read_books
from contentsync.sources.sheets import read_products, read_settings
from contentsync.sync.applier import apply_plan
from contentsync.sync.errors import SourceEmpty
from contentsync.sync.reconciler import reconcile
from contentsync.sync.records import CandidateRecord, RecordKind, SyncResult, tag_identities
from contentsync.sync.store import SQLModelRecordStore, enrich_blog, enrich_setting

logger = logging.getLogger(__name__)

Reader = Callable[[], Awaitable[List[CandidateRecord]]]


class SyncJob:
    """Reconciles one external source into one table."""

    def __init__(
        self,
        name: str,
        kind: RecordKind,
        reader: Reader,
        store,
        engine,
        *,
        purge_on_empty: bool = False,
    ):
        """
        Args:
            name: Job name used by triggers and logs ("settings", "products", ...).
            kind: Record kind the reader produces.
            reader: Zero-argument coroutine function returning candidates.
            store: SQLModelRecordStore for the kind's table.
            engine: SQLAlchemy engine for the SyncLog audit rows.
            purge_on_empty: Delete every stored record when the source is empty.
        """
        self.name = name
        self.kind = kind
        self.reader = reader
        self.store = store
        self.engine = engine
        self.purge_on_empty = purge_on_empty

    async def run(self, trigger: str = "manual") -> SyncResult:
        """
        Read, reconcile and apply.

        Returns:
            SyncResult with counts and per-record errors.

        Raises:
            Any job-level exception (after recording the error log).
        """
        log = self._create_sync_log(trigger)
        logger.info("Starting %s sync (%s)", self.name, trigger)

        try:
            result = await self._reconcile()
        except Exception as exc:
            logger.error("%s sync failed: %s", self.name, exc)
            self._finish_sync_log(log, status="error", error_message=str(exc))
            raise

        status = "partial" if result.has_errors else "success"
        self._finish_sync_log(log, status=status, result=result)
        logger.info(
            "%s sync %s: %d created, %d updated, %d deleted, %d skipped, %d errors",
            self.name, status, result.created, result.updated,
            result.deleted, result.skipped, len(result.errors),
        )
        return result

    async def _reconcile(self) -> SyncResult:
        result = SyncResult()
        try:
            candidates = await self.reader()
        except SourceEmpty as exc:
            logger.warning("%s source is empty: %s", self.name, exc)
            candidates = []
            result.source_empty = True

        tagged, result.skipped = tag_identities(candidates)
        plan = reconcile(tagged, self.store.find_all_ids())
        apply_plan(
            plan,
            self.store,
            result,
            allow_delete=self.purge_on_empty or not result.source_empty,
        )
        return result

    # ─── Internal helpers ─────────────────────────────────────────────────────

    def _create_sync_log(self, trigger: str) -> SyncLog:
        log = SyncLog(job_name=self.name, trigger=trigger, started_at=datetime.utcnow(), status="running")
        with Session(self.engine) as s:
            s.add(log)
            s.commit()
            s.refresh(log)
        return log

    def _finish_sync_log(
        self,
        log: SyncLog,
        *,
        status: str,
        result: Optional[SyncResult] = None,
        error_message: Optional[str] = None,
    ) -> None:
        with Session(self.engine) as s:
            db_log = s.get(SyncLog, log.id)
            db_log.status = status
            db_log.finished_at = datetime.utcnow()
            db_log.error_message = error_message
            if result is not None:
                db_log.created = result.created
                db_log.updated = result.updated
                db_log.deleted = result.deleted
                db_log.skipped = result.skipped
                db_log.errors_json = json.dumps([e.model_dump() for e in result.errors])
            s.add(db_log)
            s.commit()


def build_default_jobs(client, engine, settings: Settings) -> List[SyncJob]:
    """
    Wire the four content jobs: settings, products, blogs, books.

    Args:
        client: GoogleWorkspaceClient shared by every reader.
        engine: SQLAlchemy engine for stores and logs.
        settings: Source locators and the empty-source policy.
    """
    wiring = [
        ("settings", RecordKind.SETTINGS, read_settings, SiteSetting, enrich_setting),
        ("products", RecordKind.PRODUCT, read_products, Product, None),
        ("blogs", RecordKind.BLOG, read_blogs, Blog, enrich_blog),
        ("books", RecordKind.BOOK, read_books, Book, None),
    ]
    return [
        SyncJob(
            name,
            kind,
            functools.partial(reader, client, settings),
            SQLModelRecordStore(engine, model, enrich=enrich),
            engine,
            purge_on_empty=settings.purge_on_empty_source,
        )
        for name, kind, reader, model, enrich in wiring
    ]
