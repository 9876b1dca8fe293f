"""
Remote Audit Repository - PostgreSQL storage for the shared audit history

Storage: PostgreSQL (boe_audits table, one row per document id)

Writes are upserts keyed by document id: the last write for a key wins.
"""
import json
import logging
from typing import List, Optional

import asyncpg

from radar.errors import TierUnavailableError
from radar.types import AuditRecord, StorageTier
from utils.datetime_utils import datetime_to_epoch_ms, epoch_ms_to_datetime

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS boe_audits (
        boe_id      TEXT PRIMARY KEY,
        title       TEXT NOT NULL,
        audit       JSONB NOT NULL,
        created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
        shared_at   TIMESTAMPTZ
    )
"""


class RemoteAuditRepository:
    """
    Repository for the remote tier.

    Reads never partially succeed: any database failure surfaces as
    TierUnavailableError and the record store drops the whole tier.
    """

    tier = StorageTier.REMOTE

    def __init__(self, db_pool: asyncpg.Pool):
        self.db_pool = db_pool

    async def ensure_schema(self) -> None:
        async with self.db_pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def read_all(self) -> List[AuditRecord]:
        """
        Retrieve every audit, newest first.

        Rows whose audit payload cannot be decoded are skipped.
        """
        try:
            async with self.db_pool.acquire() as conn:
                rows = await conn.fetch("""
                    SELECT boe_id, title, audit, created_at, shared_at
                    FROM boe_audits
                    ORDER BY created_at DESC
                """)
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise TierUnavailableError(self.tier.value, str(e)) from e

        records = []
        for row in rows:
            record = self._row_to_record(row)
            if record is not None:
                records.append(record)
        return records

    def _row_to_record(self, row) -> Optional[AuditRecord]:
        audit = row['audit']
        if isinstance(audit, str):
            try:
                audit = json.loads(audit)
            except ValueError:
                logger.warning(f"Skipping remote row {row['boe_id']}: audit is not JSON")
                return None
        if not isinstance(audit, dict):
            logger.warning(f"Skipping remote row {row['boe_id']}: audit is not an object")
            return None

        return AuditRecord(
            document_id=row['boe_id'],
            title=row['title'] or row['boe_id'],
            findings=audit,
            recorded_at=datetime_to_epoch_ms(row['created_at']),
            shared_at=datetime_to_epoch_ms(row['shared_at']) if row['shared_at'] else None,
        )

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    async def upsert(self, record: AuditRecord) -> None:
        """Insert or replace the row for record.document_id."""
        async with self.db_pool.acquire() as conn:
            await conn.execute("""
                INSERT INTO boe_audits (boe_id, title, audit, created_at, shared_at)
                VALUES ($1, $2, $3::jsonb, $4, $5)
                ON CONFLICT (boe_id) DO UPDATE SET
                    title = EXCLUDED.title,
                    audit = EXCLUDED.audit,
                    created_at = EXCLUDED.created_at,
                    shared_at = COALESCE(boe_audits.shared_at, EXCLUDED.shared_at)
            """,
                record.document_id,
                record.title,
                json.dumps(record.findings, ensure_ascii=False),
                epoch_ms_to_datetime(record.recorded_at),
                epoch_ms_to_datetime(record.shared_at) if record.shared_at else None,
            )

        logger.debug(f"Upserted remote audit {record.document_id}")

    async def mark_shared(self, document_id: str, shared_at: int) -> bool:
        """Set shared_at once. Returns True if a row was updated."""
        async with self.db_pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE boe_audits
                SET shared_at = $2
                WHERE boe_id = $1 AND shared_at IS NULL
            """, document_id, epoch_ms_to_datetime(shared_at))
        return result.endswith(" 1")
