"""
Candidate records, per-run results, and identity extraction.

A CandidateRecord is what a reader produced from the live source on this
run. Its `fields` dict is already keyed by the target model's column names
(see sources/normalizer.py), so the store can write it without further
mapping. The identity is derived from one designated field per kind:

    settings-row  -> field            (the "Field" column of the settings sheet)
    product-row   -> sheets_id        (the ID column, or the data row number)
    blog-doc      -> drive_file_id
    book-folder   -> drive_folder_id
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

FieldValue = Union[str, int, float, bool, None]


class RecordKind(str, Enum):
    SETTINGS = "settings-row"
    PRODUCT = "product-row"
    BLOG = "blog-doc"
    BOOK = "book-folder"


IDENTITY_FIELDS: Dict[RecordKind, str] = {
    RecordKind.SETTINGS: "field",
    RecordKind.PRODUCT: "sheets_id",
    RecordKind.BLOG: "drive_file_id",
    RecordKind.BOOK: "drive_folder_id",
}


@dataclass
class CandidateRecord:
    kind: RecordKind
    fields: Dict[str, FieldValue] = field(default_factory=dict)
    identity_key: Optional[str] = None

    @property
    def label(self) -> str:
        """Human-readable name for log lines and error entries."""
        return str(self.fields.get("title") or self.identity_key or "?")


class RecordError(BaseModel):
    identity: str
    operation: str
    message: str


class SyncResult(BaseModel):
    """Outcome of one reconciliation run for one record kind."""

    created: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0  # candidates excluded at read time (no/duplicate identity)
    source_empty: bool = False
    errors: List[RecordError] = []

    def add_error(self, identity: str, operation: str, message: str) -> None:
        self.errors.append(
            RecordError(identity=identity, operation=operation, message=message)
        )

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


def extract_identity(record: CandidateRecord) -> Optional[str]:
    """Return the record's identity key, or None if it has none.

    Never raises: anything that cannot be turned into a non-blank string is
    treated as "no identity".
    """
    name = IDENTITY_FIELDS.get(record.kind)
    if name is None:
        return None
    value = record.fields.get(name)
    if value is None or isinstance(value, bool):
        return None
    try:
        key = str(value).strip()
    except Exception:
        return None
    return key or None


def tag_identities(
    candidates: Sequence[CandidateRecord],
) -> Tuple[List[CandidateRecord], int]:
    """Stamp identity keys onto candidates, dropping those without one.

    A repeated identity keeps its first occurrence. Returns the tagged
    candidates in reader order and the number skipped.
    """
    tagged: List[CandidateRecord] = []
    seen = set()
    skipped = 0
    for record in candidates:
        key = extract_identity(record)
        if key is None:
            logger.warning("Skipping %s candidate without identity: %s", record.kind.value, record.label)
            skipped += 1
            continue
        if key in seen:
            logger.warning("Skipping duplicate %s identity %s", record.kind.value, key)
            skipped += 1
            continue
        seen.add(key)
        record.identity_key = key
        tagged.append(record)
    return tagged, skipped
