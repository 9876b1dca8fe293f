"""
Core Types for the Audit History Kernel
=======================================

Pure data structures. All computation lives in separate modules.

  AuditRecord   One completed audit of one gazette document
  FindingsView  The four analysis fields the kernel actually reads
  StorageTier   Where a record came from (remote, local cache, bundled snapshot)

The analysis payload (`findings`) is otherwise opaque: it is carried
through export/import untouched.
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import RecordValidationError


MIN_SCORE = 0.0
MAX_SCORE = 100.0

# Analysis payload keys (gazette audit schema), with English aliases accepted on read
SCORE_KEYS = ('nivel_transparencia', 'transparencyScore')
CATEGORY_KEYS = ('tipologia', 'category')
REGION_KEYS = ('comunidad_autonoma', 'region')
FLAG_KEYS = ('banderas_rojas', 'banderas_red_flags', 'flags')


# =============================================================================
# ENUMS
# =============================================================================

class StorageTier(Enum):
    """Independent storage backends for audit records."""
    REMOTE = "remote"                       # Shared database, authoritative when reachable
    LOCAL_CACHE = "local-cache"             # Durable on-device cache
    BUNDLED_SNAPSHOT = "bundled-snapshot"   # Read-only reports shipped with the app


# Merge precedence, highest first
TIER_PRECEDENCE: Tuple[StorageTier, ...] = (
    StorageTier.REMOTE,
    StorageTier.BUNDLED_SNAPSHOT,
    StorageTier.LOCAL_CACHE,
)


# =============================================================================
# FINDINGS VIEW
# =============================================================================

def _first_present(payload: Mapping[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def _optional_label(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


def normalize_findings(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of an analysis payload with the flag list under its
    canonical key.

    Models answer with either `banderas_red_flags` (schema name) or
    `banderas_rojas` (stored name); only the stored name is kept.
    """
    normalized = dict(payload)
    flags = _first_present(normalized, ('banderas_red_flags', 'banderas_rojas'))
    normalized.pop('banderas_red_flags', None)
    if flags is not None or 'flags' not in normalized:
        normalized['banderas_rojas'] = list(flags or [])
    return normalized


@dataclass(frozen=True)
class FindingsView:
    """Narrow view over the analysis payload."""
    transparency_score: float
    category: Optional[str] = None
    region: Optional[str] = None
    flags: Tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Any) -> 'FindingsView':
        """
        Read the four kernel fields from a raw payload.

        Raises RecordValidationError when the score is missing, not a
        number, or outside [0, 100].
        """
        if not isinstance(payload, Mapping):
            raise RecordValidationError("findings must be an object")

        score = _first_present(payload, SCORE_KEYS)
        if score is None:
            raise RecordValidationError("findings has no transparency score")
        if isinstance(score, bool):
            raise RecordValidationError(f"transparency score is not numeric: {score!r}")
        if not isinstance(score, (int, float)):
            try:
                score = float(score)
            except (TypeError, ValueError):
                raise RecordValidationError(f"transparency score is not numeric: {score!r}")
        score = float(score)
        if math.isnan(score) or score < MIN_SCORE or score > MAX_SCORE:
            raise RecordValidationError(f"transparency score out of range [0, 100]: {score}")

        raw_flags = _first_present(payload, FLAG_KEYS) or []
        if isinstance(raw_flags, str):
            raw_flags = [raw_flags]
        flags = tuple(
            label for label in (_optional_label(f) for f in raw_flags)
            if label is not None
        )

        return cls(
            transparency_score=score,
            category=_optional_label(_first_present(payload, CATEGORY_KEYS)),
            region=_optional_label(_first_present(payload, REGION_KEYS)),
            flags=flags,
        )


# =============================================================================
# AUDIT RECORD
# =============================================================================

@dataclass(frozen=True)
class AuditRecord:
    """
    One completed audit of one gazette document.

    `document_id` is the natural key across all tiers. Records are
    immutable; `with_shared()` is the only allowed patch.
    """
    document_id: str
    title: str
    findings: Dict[str, Any] = field(default_factory=dict, compare=True, hash=False)
    recorded_at: int = 0            # epoch milliseconds
    shared_at: Optional[int] = None  # set once a share action happened

    @property
    def view(self) -> FindingsView:
        return FindingsView.from_payload(self.findings)

    @property
    def score(self) -> float:
        return self.view.transparency_score

    @property
    def is_shared(self) -> bool:
        return self.shared_at is not None

    def with_shared(self, shared_at: int) -> 'AuditRecord':
        """Mark as shared. The first share timestamp is kept."""
        if self.shared_at is not None:
            return self
        return replace(self, shared_at=shared_at)

    def to_cache_dict(self) -> Dict[str, Any]:
        """Shape stored by the local cache and emitted by full export."""
        data = {
            'boeId': self.document_id,
            'title': self.title,
            'timestamp': self.recorded_at,
            'audit': self.findings,
        }
        if self.shared_at is not None:
            data['sharedAt'] = self.shared_at
        return data

    @classmethod
    def from_cache_dict(cls, data: Mapping[str, Any]) -> 'AuditRecord':
        """Inverse of to_cache_dict. Raises RecordValidationError on bad shape."""
        if not isinstance(data, Mapping):
            raise RecordValidationError("cache entry is not an object")
        document_id = data.get('boeId')
        findings = data.get('audit')
        timestamp = data.get('timestamp')
        if not document_id or not isinstance(findings, Mapping):
            raise RecordValidationError("cache entry missing boeId or audit", document_id)
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise RecordValidationError("cache entry has no numeric timestamp", document_id)
        shared_at = data.get('sharedAt')
        return cls(
            document_id=str(document_id),
            title=str(data.get('title') or document_id),
            findings=dict(findings),
            recorded_at=int(timestamp),
            shared_at=int(shared_at) if isinstance(shared_at, (int, float)) else None,
        )


def validate_record(record: AuditRecord) -> FindingsView:
    """
    Ingestion check applied before any tier write.

    Returns the findings view so callers don't parse twice.
    """
    if not isinstance(record.document_id, str) or not record.document_id.strip():
        raise RecordValidationError("document id is empty")
    try:
        return FindingsView.from_payload(record.findings)
    except RecordValidationError as e:
        raise RecordValidationError(str(e), record.document_id) from e


def order_key(record: AuditRecord) -> Tuple[int, str]:
    """Sort key for history order (use with reverse=True)."""
    return (record.recorded_at, record.document_id)


def sort_history(records: List[AuditRecord]) -> List[AuditRecord]:
    """Newest first; ties broken by descending document id."""
    return sorted(records, key=order_key, reverse=True)
