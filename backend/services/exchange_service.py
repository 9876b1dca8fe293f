"""
History Exchange - import/export of the reconciled history
"""
import logging
from typing import Any, Dict, List, Optional

from radar.errors import LocalCommitError, RecordValidationError
from radar.exchange import ImportSummary, export_full, export_index, export_summaries, parse_import
from radar.filters import HistoryQuery, apply_query
from utils.datetime_utils import now_ms
from utils.url_utils import DEFAULT_GAZETTE_BASE, official_url_template

from services.history_reconciler import HistoryReconciler
from services.record_store import RecordStore

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ('index', 'full', 'summary')


class HistoryExchange:
    def __init__(
        self,
        store: RecordStore,
        reconciler: HistoryReconciler,
        base_url: str = DEFAULT_GAZETTE_BASE,
        clock=now_ms,
    ):
        self.store = store
        self.reconciler = reconciler
        self.url_template = official_url_template(base_url)
        self.clock = clock

    async def export(self, format: str = 'index', query: Optional[HistoryQuery] = None) -> List[Dict[str, Any]]:
        """
        Serialize the reconciled history, or the subset matching `query`.

        Formats: index (published index), full (re-importable), summary.
        """
        if format not in EXPORT_FORMATS:
            raise ValueError(f"Unknown export format: {format}")

        records = await self.reconciler.reconcile()
        if query is not None:
            records = apply_query(records, query)

        if format == 'full':
            return export_full(records)
        if format == 'summary':
            return export_summaries(records)
        return export_index(records, self.url_template)

    async def import_payload(self, payload: Any) -> ImportSummary:
        """
        Route every parseable item through RecordStore.write.

        A bad item is counted as rejected; the rest still go through.
        Imported records are stamped with the import time.
        """
        drafts, summary = parse_import(payload)
        recorded_at = self.clock()

        for draft in drafts:
            try:
                await self.store.write(draft.to_record(recorded_at))
                summary.accepted += 1
            except (RecordValidationError, LocalCommitError) as e:
                summary.reject(f"{draft.document_id}: {e}")

        logger.info(f"📥 Import finished: {summary.accepted} accepted, {summary.rejected} rejected")
        return summary
