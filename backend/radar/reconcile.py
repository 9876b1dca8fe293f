"""
History Reconciliation
======================

Pure merge of the three storage tiers into one authoritative view.

Precedence (highest first): remote > bundled snapshot > local cache.
For each document id the record from the highest tier that has it is
kept whole; fields are never merged across tiers.

No I/O here. The async reader lives in services.history_reconciler.
"""

from typing import Dict, Iterable, List, Sequence

from .types import AuditRecord, StorageTier, TIER_PRECEDENCE, order_key, sort_history


def dedupe_tier(records: Iterable[AuditRecord]) -> Dict[str, AuditRecord]:
    """
    Collapse duplicates inside a single tier.

    The newest `recorded_at` wins; on equal timestamps the first seen is kept.
    """
    chosen: Dict[str, AuditRecord] = {}
    for record in records:
        current = chosen.get(record.document_id)
        if current is None or record.recorded_at > current.recorded_at:
            chosen[record.document_id] = record
    return chosen


def merge_tiers(
    remote: Sequence[AuditRecord] = (),
    snapshot: Sequence[AuditRecord] = (),
    local: Sequence[AuditRecord] = (),
) -> List[AuditRecord]:
    """
    Merge tier contents into one de-duplicated, ordered list.

    Output is sorted newest first, ties broken by descending document id,
    so the same inputs always give the same list.
    """
    by_tier = {
        StorageTier.REMOTE: remote,
        StorageTier.BUNDLED_SNAPSHOT: snapshot,
        StorageTier.LOCAL_CACHE: local,
    }

    merged: Dict[str, AuditRecord] = {}
    for tier in TIER_PRECEDENCE:
        for document_id, record in dedupe_tier(by_tier[tier]).items():
            if document_id not in merged:
                merged[document_id] = record

    return sort_history(list(merged.values()))


def backfill_candidates(
    merged: Sequence[AuditRecord],
    local: Sequence[AuditRecord],
) -> List[AuditRecord]:
    """Records in the merged view that the local cache does not hold yet."""
    local_ids = {r.document_id for r in local}
    return [r for r in merged if r.document_id not in local_ids]


def extend_local(
    local: Sequence[AuditRecord],
    additions: Sequence[AuditRecord],
) -> List[AuditRecord]:
    """
    Local cache contents after a back-fill.

    Existing local entries are never replaced, only missing ids added.
    """
    present = {r.document_id for r in local}
    extended = list(local)
    for record in additions:
        if record.document_id not in present:
            extended.append(record)
            present.add(record.document_id)
    return sorted(extended, key=order_key, reverse=True)


def prepend_record(
    local: Sequence[AuditRecord],
    record: AuditRecord,
) -> List[AuditRecord]:
    """Local cache contents after writing `record` (replaces any same-id entry)."""
    return [record] + [r for r in local if r.document_id != record.document_id]
