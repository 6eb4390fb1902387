"""
Record store over one SQLModel table.

Exposes the three operations the sync core needs:

    find_all_ids()      find-all-by-kind, identities only
    create / update     upsert-by-identity (split so counts stay exact)
    delete(source_id)   called once per identity missing from the source

Each call opens and commits its own session; there is no cross-record
transaction. Database failures surface as RecordApplyError.
"""
import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from contentsync.sources.normalizer import build_excerpt
from contentsync.sync.errors import RecordApplyError
from contentsync.sync.records import CandidateRecord

logger = logging.getLogger(__name__)

# Columns a sync must never write: keys, local counters, creation time
PROTECTED_COLUMNS = {"id", "source_id", "views", "likes", "created_at"}

# Columns written on create only: a renamed document keeps its permalink
CREATE_ONLY_COLUMNS = {"slug"}

Enricher = Callable[[Dict[str, Any]], Dict[str, Any]]


def enrich_setting(values: Dict[str, Any]) -> Dict[str, Any]:
    """Settings values may be str or bool; store them JSON-encoded."""
    values["value_json"] = json.dumps(values.pop("value", ""))
    return values


def enrich_blog(values: Dict[str, Any]) -> Dict[str, Any]:
    """Regenerate the excerpt and fill SEO defaults from title/excerpt."""
    excerpt = build_excerpt(values.get("content") or "", limit=200)
    values["excerpt"] = excerpt or None
    if not values.get("seo_title"):
        values["seo_title"] = values.get("title")
    if not values.get("seo_description"):
        values["seo_description"] = values["excerpt"]
    return values


class SQLModelRecordStore:
    """Persisted records of one kind, keyed by `source_id`."""

    def __init__(
        self,
        engine,
        model: Type[SQLModel],
        enrich: Optional[Enricher] = None,
    ):
        """
        Args:
            engine: SQLAlchemy engine (SQLModel create_engine result).
            model: Table model with a unique `source_id` column.
            enrich: Optional hook deriving extra columns from candidate fields.
        """
        self.engine = engine
        self.model = model
        self.enrich = enrich
        self._columns = set(model.model_fields) - PROTECTED_COLUMNS
        self._update_columns = self._columns - CREATE_ONLY_COLUMNS

    def find_all_ids(self) -> List[str]:
        with Session(self.engine) as s:
            return list(s.exec(select(self.model.source_id)).all())

    def create(self, record: CandidateRecord) -> None:
        key = record.identity_key
        values = self._values(record, self._columns)
        try:
            with Session(self.engine) as s:
                s.add(self.model(source_id=key, **values))
                s.commit()
        except SQLAlchemyError as exc:
            raise RecordApplyError(key, "create", _db_message(exc)) from exc

    def update(self, record: CandidateRecord) -> None:
        key = record.identity_key
        values = self._values(record, self._update_columns)
        try:
            with Session(self.engine) as s:
                row = s.exec(
                    select(self.model).where(self.model.source_id == key)
                ).first()
                if row is None:
                    raise RecordApplyError(key, "update", "record vanished before update")
                # Update scalar fields in-place (keeps same id)
                for k, v in values.items():
                    setattr(row, k, v)
                s.add(row)
                s.commit()
        except SQLAlchemyError as exc:
            raise RecordApplyError(key, "update", _db_message(exc)) from exc

    def delete(self, source_id: str) -> bool:
        """Delete by identity. Returns False if it was already gone."""
        try:
            with Session(self.engine) as s:
                row = s.exec(
                    select(self.model).where(self.model.source_id == source_id)
                ).first()
                if row is None:
                    return False
                s.delete(row)
                s.commit()
                return True
        except SQLAlchemyError as exc:
            raise RecordApplyError(source_id, "delete", _db_message(exc)) from exc

    # ─── Internal helpers ─────────────────────────────────────────────────────

    def _values(self, record: CandidateRecord, columns: Set[str]) -> Dict[str, Any]:
        values = dict(record.fields)
        if self.enrich is not None:
            values = self.enrich(values)
        now = datetime.utcnow()
        values["last_synced_at"] = now
        values["updated_at"] = now
        return {k: v for k, v in values.items() if k in columns}


def _db_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)
