"""
Audit Service - the audit pipeline for one gazette document

    1. Already in history?  → return it, no analysis call
    2. Fetch document       → synthetic placeholder on failure
    3. Analyze              → typed AnalysisError on failure (history untouched)
    4. Write                → local commit now, remote upsert in the background
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from radar.errors import DocumentFetchError
from radar.types import AuditRecord
from utils.datetime_utils import now_ms

from services.analysis_service import AuditAnalyzer
from services.gazette_client import GazetteClient, synthetic_document
from services.history_reconciler import HistoryReconciler
from services.record_store import RecordStore, WriteResult

logger = logging.getLogger(__name__)


@dataclass
class AuditOutcome:
    record: AuditRecord
    cached: bool = False
    synthetic: bool = False
    write: Optional[WriteResult] = None


class AuditService:
    """Runs audits and applies the share patch."""

    def __init__(
        self,
        store: RecordStore,
        reconciler: HistoryReconciler,
        gazette: GazetteClient,
        analyzer: AuditAnalyzer,
        default_language: str = 'es',
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.reconciler = reconciler
        self.gazette = gazette
        self.analyzer = analyzer
        self.default_language = default_language
        self.clock = clock

    def _cached(self, document_id: str) -> Optional[AuditRecord]:
        if not self.reconciler.contains(document_id):
            return None
        for record in self.reconciler.view:
            if record.document_id == document_id:
                return record
        return None

    async def audit(self, document_id: str, language: Optional[str] = None) -> AuditOutcome:
        """
        Audit `document_id`, or return the existing audit.

        Raises:
            AnalysisError subclasses, RecordValidationError, LocalCommitError
        """
        document_id = document_id.strip()
        language = language or self.default_language

        cached = self._cached(document_id)
        if cached is not None:
            logger.info(f"⏩ {document_id} already audited, serving history entry")
            return AuditOutcome(record=cached, cached=True)

        try:
            document = await self.gazette.fetch_document(document_id)
        except DocumentFetchError as e:
            logger.warning(f"⚠️  {e}; using simulated document")
            document = synthetic_document(document_id)

        logger.info(f"🤖 Auditing {document_id}: {document.title}")
        findings = await self.analyzer.analyze(document.raw_text, language)

        record = AuditRecord(
            document_id=document_id,
            title=document.title,
            findings=findings,
            recorded_at=self.clock(),
        )
        write = await self.store.write(record)

        return AuditOutcome(record=record, synthetic=document.synthetic, write=write)

    async def mark_shared(self, document_id: str) -> Optional[AuditRecord]:
        """Record that a share action happened. None if the id is not cached locally."""
        return await self.store.mark_shared(document_id, self.clock())
