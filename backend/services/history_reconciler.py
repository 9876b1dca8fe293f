"""
History Reconciler - the single merged view of all audits

Reads the three tiers concurrently, merges them by precedence
(remote > bundled snapshot > local cache) and opportunistically
back-fills the local cache with records it is missing.

The returned list is a fresh snapshot per call; callers must not mutate it.
"""
import asyncio
import logging
from typing import FrozenSet, List, Tuple

from radar.reconcile import backfill_candidates, merge_tiers
from radar.types import AuditRecord, StorageTier

from services.record_store import RecordStore

logger = logging.getLogger(__name__)


class HistoryReconciler:
    """
    Produces the merged, de-duplicated, ordered audit history.

    Usage:
        reconciler = HistoryReconciler(store)
        history = await reconciler.reconcile()
        reconciler.contains('BOE-A-2024-4161')
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self._view: Tuple[AuditRecord, ...] = ()
        self._ids: FrozenSet[str] = frozenset()

    @property
    def view(self) -> List[AuditRecord]:
        """Last reconciled view (empty before the first reconcile)."""
        return list(self._view)

    async def reconcile(self) -> List[AuditRecord]:
        """
        Merge all tiers into one list, newest first.

        The three tier reads run concurrently; an unavailable tier reads
        as empty. Back-fill failures never affect the returned view.
        """
        remote, local, snapshot = await asyncio.gather(
            self.store.read_tier(StorageTier.REMOTE),
            self.store.read_tier(StorageTier.LOCAL_CACHE),
            self.store.read_tier(StorageTier.BUNDLED_SNAPSHOT),
        )

        merged = merge_tiers(remote=remote, snapshot=snapshot, local=local)

        missing = backfill_candidates(merged, local)
        if missing:
            await self.store.backfill_local(missing)

        self._view = tuple(merged)
        self._ids = frozenset(r.document_id for r in merged)

        logger.info(
            f"📚 Reconciled {len(merged)} audits "
            f"(remote={len(remote)}, snapshot={len(snapshot)}, local={len(local)})"
        )
        return list(merged)

    def contains(self, document_id: str) -> bool:
        """True iff `document_id` is in the last reconciled view."""
        return document_id in self._ids

    async def clear_local(self) -> None:
        """
        Clear the local cache tier.

        Does not refresh the view; call reconcile() afterwards.
        """
        await self.store.clear(StorageTier.LOCAL_CACHE)
