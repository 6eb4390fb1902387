"""Apply a ReconcilePlan to a store, one record at a time."""
import logging

from contentsync.sync.errors import RecordApplyError
from contentsync.sync.reconciler import ReconcilePlan
from contentsync.sync.records import SyncResult

logger = logging.getLogger(__name__)


def apply_plan(
    plan: ReconcilePlan,
    store,
    result: SyncResult,
    *,
    allow_delete: bool = True,
) -> SyncResult:
    """
    Execute deletes, then creates/updates in reader order.

    Deletes go first so a record recreated under a new identity (e.g. a blog
    re-uploaded as a new Drive file) does not collide with its predecessor's
    unique slug.

    A failing record is appended to result.errors and the batch carries on;
    nothing here raises for a per-record failure.

    Args:
        plan: Output of reconcile().
        store: SQLModelRecordStore (or any object with create/update/delete).
        result: SyncResult to accumulate counts and errors into.
        allow_delete: False leaves to_delete untouched (empty-source guard).

    Returns:
        The same SyncResult, populated.
    """
    if allow_delete:
        for source_id in plan.to_delete:
            try:
                if store.delete(source_id):
                    result.deleted += 1
            except Exception as exc:
                _record_failure(result, source_id, "delete", exc)
    elif plan.to_delete:
        logger.warning(
            "Leaving %d stored records in place: source read back empty",
            len(plan.to_delete),
        )

    for operation, record in plan.upserts:
        try:
            if operation == "create":
                store.create(record)
                result.created += 1
            else:
                store.update(record)
                result.updated += 1
        except Exception as exc:
            _record_failure(result, record.identity_key, operation, exc)

    return result


def _record_failure(result: SyncResult, identity: str, operation: str, exc: Exception) -> None:
    message = exc.message if isinstance(exc, RecordApplyError) else str(exc)
    logger.warning("Failed to %s %s: %s", operation, identity, message)
    result.add_error(identity, operation, message)
