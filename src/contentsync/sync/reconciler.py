"""
Diff candidates against persisted identities.

Pure computation, no store access. Every identity present on both sides is
an update, whether or not any field changed: a sync always touches every
surviving record so derived fields and timestamps are refreshed.

An empty candidate set marks every persisted identity for deletion. Whether
that is allowed to reach the store is the job's decision (see jobs.py).
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple

from contentsync.sync.records import CandidateRecord


@dataclass
class ReconcilePlan:
    to_create: List[CandidateRecord] = field(default_factory=list)
    to_update: List[CandidateRecord] = field(default_factory=list)
    to_delete: List[str] = field(default_factory=list)
    # Creates and updates interleaved in reader order: ("create" | "update", record)
    upserts: List[Tuple[str, CandidateRecord]] = field(default_factory=list)


def reconcile(
    candidates: Sequence[CandidateRecord],
    persisted_ids: Iterable[str],
) -> ReconcilePlan:
    """
    Split identities into create / update / delete sets.

    Args:
        candidates: Tagged candidates (identity_key set), in reader order.
        persisted_ids: source_id of every stored record of the same kind.

    Returns:
        ReconcilePlan whose three sets are pairwise disjoint and together
        cover ids(candidates) | persisted_ids. to_delete is sorted.
    """
    persisted = set(persisted_ids)
    plan = ReconcilePlan()
    seen = set()

    for record in candidates:
        key = record.identity_key
        if key is None or key in seen:
            continue
        seen.add(key)
        if key in persisted:
            plan.to_update.append(record)
            plan.upserts.append(("update", record))
        else:
            plan.to_create.append(record)
            plan.upserts.append(("create", record))

    plan.to_delete = sorted(persisted - seen)
    return plan
