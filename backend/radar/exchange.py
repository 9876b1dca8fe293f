"""
Export / import codecs for the reconciled history.

Export is deterministic for a given reconciled list. Import is per item:
a malformed item is rejected and reported, the rest still go through.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import RecordValidationError
from .types import AuditRecord

OFFICIAL_DOCUMENT_URL = "https://www.boe.es/buscar/doc.php?id={document_id}"


def iso_timestamp(epoch_ms: int) -> str:
    dt = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def _score_or_none(record: AuditRecord) -> Optional[float]:
    try:
        return record.score
    except RecordValidationError:
        return None


# =============================================================================
# EXPORT
# =============================================================================

def export_summaries(records: Sequence[AuditRecord]) -> List[Dict[str, Any]]:
    """Generic summary list: {documentId, title, score, recordedAt}."""
    return [
        {
            'documentId': r.document_id,
            'title': r.title,
            'score': _score_or_none(r),
            'recordedAt': r.recorded_at,
        }
        for r in records
    ]


def export_index(
    records: Sequence[AuditRecord],
    url_template: str = OFFICIAL_DOCUMENT_URL,
) -> List[Dict[str, Any]]:
    """Published index: one line per audit with a link to the official text."""
    return [
        {
            'id': r.document_id,
            'titulo': r.title,
            'url_boe': url_template.format(document_id=r.document_id),
            'transparencia': _score_or_none(r),
            'fecha_auditoria': iso_timestamp(r.recorded_at),
        }
        for r in records
    ]


def export_full(records: Sequence[AuditRecord]) -> List[Dict[str, Any]]:
    """Full collection, findings included. Re-importable as-is."""
    return [r.to_cache_dict() for r in records]


# =============================================================================
# IMPORT
# =============================================================================

@dataclass(frozen=True)
class ImportDraft:
    """An accepted import item, not yet stamped or validated."""
    document_id: str
    title: str
    findings: Dict[str, Any]

    def to_record(self, recorded_at: int) -> AuditRecord:
        return AuditRecord(
            document_id=self.document_id,
            title=self.title,
            findings=self.findings,
            recorded_at=recorded_at,
        )


@dataclass
class ImportSummary:
    accepted: int = 0
    rejected: int = 0
    errors: List[str] = field(default_factory=list)

    def reject(self, message: str) -> None:
        self.rejected += 1
        self.errors.append(message)


# (id key, title key, findings key) per supported item shape
_ITEM_SHAPES: Tuple[Tuple[str, str, str], ...] = (
    ('boeId', 'title', 'audit'),            # history item / full export
    ('boe_id', 'title', 'report'),          # downloaded report file
    ('documentId', 'title', 'findings'),    # generic shape
)


def parse_item(item: Any) -> ImportDraft:
    """Read one import item. Raises RecordValidationError when keys are missing."""
    if not isinstance(item, Mapping):
        raise RecordValidationError("item is not an object")

    for id_key, title_key, findings_key in _ITEM_SHAPES:
        if id_key in item or findings_key in item:
            document_id = item.get(id_key)
            findings = item.get(findings_key)
            if not document_id or not isinstance(document_id, str):
                raise RecordValidationError(f"missing '{id_key}'")
            if not isinstance(findings, Mapping):
                raise RecordValidationError(f"missing '{findings_key}'", document_id)
            title = item.get(title_key)
            return ImportDraft(
                document_id=document_id.strip(),
                title=str(title) if title else document_id.strip(),
                findings=dict(findings),
            )

    raise RecordValidationError("unrecognized item shape")


def parse_import(payload: Any) -> Tuple[List[ImportDraft], ImportSummary]:
    """
    Split an import payload into drafts and a summary of rejections.

    Accepts a list of items or a single item object. `summary.accepted`
    is left at 0: it counts successful writes, not parses.
    """
    summary = ImportSummary()
    items = payload if isinstance(payload, list) else [payload]

    drafts: List[ImportDraft] = []
    for position, item in enumerate(items):
        try:
            drafts.append(parse_item(item))
        except RecordValidationError as e:
            summary.reject(f"item {position}: {e}")
    return drafts, summary
