"""
Snapshot Audit Repository - bundled audit reports shipped with the app

Storage: a directory of report files

    Audit_<document_id>_<epoch_ms>.json   {boe_id, timestamp, title, report}
    BOE_Audit_Index_<epoch_ms>.json       published index (ignored on read)
    manifest.json                         file listing (ignored on read)

The app never writes this tier. The offline batch auditor
(scripts/audit_latest.py) produces the report files.
"""
import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from radar.errors import TierUnavailableError
from radar.exchange import iso_timestamp
from radar.reconcile import dedupe_tier
from radar.types import AuditRecord, StorageTier, sort_history
from utils.datetime_utils import now_ms, parse_timestamp

logger = logging.getLogger(__name__)

REPORT_PATTERN = re.compile(r'^Audit_(.+)_(\d+)\.json$')
INDEX_PREFIX = 'BOE_Audit_Index_'
MANIFEST_NAME = 'manifest.json'


def report_to_record(data: Dict[str, Any]) -> Optional[AuditRecord]:
    """Convert one report file body. Returns None when required keys are missing."""
    document_id = data.get('boe_id')
    report = data.get('report')
    recorded_at = parse_timestamp(data.get('timestamp'))
    if not document_id or not isinstance(report, dict) or recorded_at is None:
        return None
    return AuditRecord(
        document_id=document_id,
        title=data.get('title') or document_id,
        findings=report,
        recorded_at=recorded_at,
    )


class SnapshotAuditRepository:
    """Read-only repository over the bundled report directory."""

    tier = StorageTier.BUNDLED_SNAPSHOT

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    async def read_all(self) -> List[AuditRecord]:
        return await asyncio.to_thread(self._load)

    def _load(self) -> List[AuditRecord]:
        if not self.directory.is_dir():
            raise TierUnavailableError(self.tier.value, f"no bundled reports at {self.directory}")

        records = []
        for path in sorted(self.directory.glob('Audit_*.json')):
            if not REPORT_PATTERN.match(path.name):
                continue
            try:
                data = json.loads(path.read_text(encoding='utf-8'))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable report {path.name}: {e}")
                continue

            record = report_to_record(data) if isinstance(data, dict) else None
            if record is None:
                logger.warning(f"Skipping report {path.name}: missing boe_id, timestamp or report")
                continue
            records.append(record)

        # Several reports for one document: newest wins
        return sort_history(list(dedupe_tier(records).values()))


# =============================================================================
# OFFLINE WRITERS (batch auditor, build step)
# =============================================================================

def audited_ids(directory: Union[str, Path]) -> set:
    """Document ids that already have a report file."""
    ids = set()
    for path in Path(directory).glob('Audit_*.json'):
        match = REPORT_PATTERN.match(path.name)
        if match:
            ids.add(match.group(1))
    return ids


def write_report_file(directory: Union[str, Path], record: AuditRecord) -> Path:
    """Write one record as a report file and return its path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"Audit_{record.document_id}_{record.recorded_at}.json"
    body = {
        'boe_id': record.document_id,
        'timestamp': iso_timestamp(record.recorded_at),
        'title': record.title,
        'report': record.findings,
    }
    path.write_text(json.dumps(body, ensure_ascii=False, indent=2), encoding='utf-8')
    return path


def write_index_file(directory: Union[str, Path], entries: Sequence[Dict[str, Any]]) -> Path:
    """
    Merge `entries` with existing index files into a single new index.

    New entries win over old ones with the same id; older index files are
    removed once the new one is written.
    """
    directory = Path(directory)
    existing_files = sorted(directory.glob(f'{INDEX_PREFIX}*.json'))

    current: List[Dict[str, Any]] = []
    for path in existing_files:
        try:
            data = json.loads(path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable index {path.name}: {e}")
            continue
        if isinstance(data, list):
            current.extend(data)

    seen = set()
    merged = []
    for entry in list(entries) + current:
        entry_id = entry.get('id') if isinstance(entry, dict) else None
        if not entry_id or entry_id in seen:
            continue
        seen.add(entry_id)
        merged.append(entry)
    merged.sort(key=lambda e: parse_timestamp(e.get('fecha_auditoria')) or 0, reverse=True)

    path = directory / f"{INDEX_PREFIX}{now_ms()}.json"
    path.write_text(json.dumps(merged, ensure_ascii=False, indent=2), encoding='utf-8')
    for old in existing_files:
        if old != path:
            old.unlink()
    return path


def generate_manifest(directory: Union[str, Path]) -> Path:
    """Write manifest.json listing the JSON files of `directory`."""
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Directory not found: {directory}")

    files = sorted(
        p.name for p in directory.glob('*.json')
        if p.name != MANIFEST_NAME
    )
    manifest = {'generatedAt': iso_timestamp(now_ms()), 'files': files}
    path = directory / MANIFEST_NAME
    path.write_text(json.dumps(manifest, indent=2), encoding='utf-8')
    logger.info(f"Manifest generated with {len(files)} files")
    return path
