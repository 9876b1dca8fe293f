#!/usr/bin/env python3
"""
Batch auditor for the bundled snapshot.

Fetches the latest gazette summary, audits every legislative item that has
no report file yet, writes one report file per audit, and refreshes the
published index.

Usage:
    python scripts/audit_latest.py --date 20240315 --limit 5
    python scripts/audit_latest.py --dir audited_reports --delay 0
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from config import get_settings
from radar.errors import AnalysisError, DocumentFetchError
from radar.exchange import export_index
from radar.types import AuditRecord
from repositories.snapshot_audit_repository import audited_ids, write_index_file, write_report_file
from services.analysis_service import AuditAnalyzer
from services.gazette_client import GazetteClient
from utils.datetime_utils import now_ms
from utils.url_utils import official_url_template

logger = logging.getLogger("audit_latest")


async def run(directory: Path, date: str = None, limit: int = 20, delay: float = 60.0) -> int:
    settings = get_settings()
    gazette = GazetteClient(base_url=settings.gazette_base_url, timeout=settings.gazette_timeout)
    analyzer = AuditAnalyzer(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        max_chars=settings.analysis_max_chars,
    )

    if date:
        logger.info(f"📅 Targeting specific date: {date}")
    items = await gazette.fetch_latest(date, fallback=False)
    items = [item for item in items if item.is_legislative][:limit]
    logger.info(f"🚀 Processing {len(items)} newest legislative items (limit {limit})")

    directory.mkdir(parents=True, exist_ok=True)
    done = audited_ids(directory)

    new_records = []
    for item in items:
        if item.document_id in done:
            logger.info(f"⏩ Skipping {item.document_id} (already exists)")
            continue

        if new_records and delay > 0:
            logger.info(f"⏳ Waiting {delay:.0f}s before next audit...")
            await asyncio.sleep(delay)

        logger.info(f"🤖 Auditing {item.document_id}: {item.title}")
        try:
            document = await gazette.fetch_document(item.document_id)
            findings = await analyzer.analyze(document.raw_text, 'es')
        except (DocumentFetchError, AnalysisError) as e:
            logger.error(f"❌ Error auditing {item.document_id}: {e}")
            continue

        record = AuditRecord(
            document_id=item.document_id,
            title=item.title,
            findings=findings,
            recorded_at=now_ms(),
        )
        path = write_report_file(directory, record)
        logger.info(f"💾 Saved to {path.name}")
        new_records.append(record)

    if new_records:
        logger.info("🔄 Updating index...")
        entries = export_index(new_records, official_url_template(settings.gazette_base_url))
        path = write_index_file(directory, entries)
        logger.info(f"✅ Index written to {path.name}")
    else:
        logger.info("No new audits")

    return len(new_records)


def main():
    parser = argparse.ArgumentParser(description='Audit the latest gazette items into report files')
    parser.add_argument('--date', help='Summary date (YYYYMMDD); default today, then yesterday')
    parser.add_argument('--limit', type=int, default=20, help='Maximum items to consider')
    parser.add_argument('--delay', type=float, default=60.0, help='Seconds between audits (rate limit)')
    parser.add_argument('--dir', default=None, help='Report directory (default: settings.snapshot_dir)')
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    directory = Path(args.dir or get_settings().snapshot_dir)
    asyncio.run(run(directory, args.date, args.limit, args.delay))


if __name__ == '__main__':
    main()
