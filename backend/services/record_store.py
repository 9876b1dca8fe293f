"""
Record Store - tier-aware reads and writes of audit records

Combines the three tier repositories behind one interface:

- read_tier(): never raises; an unavailable tier reads as empty
- write(): synchronous local commit, then fire-and-forget remote upsert
- clear(): local cache only

The local cache is updated read-then-replace under a lock, so two
coroutines never interleave between the read and the replace. Only a
corrupt cache is replaced without its previous contents; a failed read
aborts the update.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Set

from radar.errors import CorruptCacheError, LocalCommitError, RecordValidationError, TierUnavailableError
from radar.reconcile import extend_local, prepend_record
from radar.types import AuditRecord, StorageTier, validate_record
from utils.datetime_utils import now_ms

logger = logging.getLogger(__name__)


@dataclass
class WriteResult:
    """
    Outcome of RecordStore.write().

    The local commit (if the tier exists) has already happened. The remote
    upsert may still be in flight; await `remote_warning()` to observe it.
    """
    record: AuditRecord
    local_committed: bool
    remote_task: Optional[asyncio.Task] = None

    async def remote_warning(self) -> Optional[str]:
        """None when the remote upsert succeeded or no remote tier exists."""
        if self.remote_task is None:
            return None
        return await self.remote_task


class RecordStore:
    """
    Record store adapter over the remote, local cache and snapshot tiers.

    Any tier may be None (not configured); that tier is skipped.
    """

    def __init__(
        self,
        remote=None,
        local=None,
        snapshot=None,
        tier_timeout: Optional[float] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.remote = remote
        self.local = local
        self.snapshot = snapshot
        self.tier_timeout = tier_timeout
        self.clock = clock
        self._local_lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()

    def repository(self, tier: StorageTier):
        return {
            StorageTier.REMOTE: self.remote,
            StorageTier.LOCAL_CACHE: self.local,
            StorageTier.BUNDLED_SNAPSHOT: self.snapshot,
        }[tier]

    # =========================================================================
    # READ
    # =========================================================================

    async def read_tier(self, tier: StorageTier) -> List[AuditRecord]:
        """
        Read one tier. Failures are logged and read as an empty tier so
        one unavailable backend never blocks the others.
        """
        repo = self.repository(tier)
        if repo is None:
            return []

        try:
            if self.tier_timeout:
                records = await asyncio.wait_for(repo.read_all(), timeout=self.tier_timeout)
            else:
                records = await repo.read_all()
        except TierUnavailableError as e:
            logger.warning(f"⚠️  {e}")
            return []
        except asyncio.TimeoutError:
            logger.warning(f"⚠️  {tier.value} tier read timed out after {self.tier_timeout}s")
            return []
        except Exception as e:
            logger.warning(f"⚠️  {tier.value} tier read failed: {e}", exc_info=True)
            return []

        logger.debug(f"Read {len(records)} records from {tier.value} tier")
        return list(records)

    async def _read_local_for_update(self) -> List[AuditRecord]:
        """
        Local contents ahead of a replace.

        A corrupt blob reads as empty and is rebuilt by the replace. Any
        other read failure propagates: the stored contents are unknown and
        must not be overwritten.
        """
        try:
            return list(await self.local.read_all())
        except CorruptCacheError as e:
            logger.warning(f"⚠️  Rebuilding local cache: {e}")
            return []

    # =========================================================================
    # WRITE
    # =========================================================================

    async def write(self, record: AuditRecord) -> WriteResult:
        """
        Store a new audit.

        1. Validate (RecordValidationError: nothing is written anywhere)
        2. Commit to the local cache (LocalCommitError: the write failed)
        3. Schedule the remote upsert; its failure is only a warning

        Raises:
            RecordValidationError, LocalCommitError
        """
        validate_record(record)

        local_committed = False
        if self.local is not None:
            try:
                async with self._local_lock:
                    current = await self._read_local_for_update()
                    await self.local.replace_all(prepend_record(current, record))
            except Exception as e:
                raise LocalCommitError(f"local cache write failed for {record.document_id}: {e}") from e
            local_committed = True
        else:
            logger.debug(f"No local cache tier; skipping local commit for {record.document_id}")

        remote_task = None
        if self.remote is not None:
            remote_task = asyncio.create_task(self._upsert_remote(record))
            self._pending.add(remote_task)
            remote_task.add_done_callback(self._pending.discard)

        logger.info(f"💾 Stored audit {record.document_id} (local={local_committed}, remote={'scheduled' if remote_task else 'none'})")
        return WriteResult(record=record, local_committed=local_committed, remote_task=remote_task)

    async def _upsert_remote(self, record: AuditRecord) -> Optional[str]:
        try:
            await self.remote.upsert(record)
            return None
        except Exception as e:
            warning = f"Remote save failed for {record.document_id}; kept in local cache: {e}"
            logger.warning(f"⚠️  {warning}")
            return warning

    async def mark_shared(self, document_id: str, shared_at: Optional[int] = None) -> Optional[AuditRecord]:
        """
        Apply the share patch. Local cache first, then best-effort remote.

        Returns the patched local record, or None when the local cache does
        not hold `document_id`.

        Raises:
            LocalCommitError: the local cache could not be read or written
        """
        shared_at = shared_at if shared_at is not None else self.clock()
        patched = None

        if self.local is not None:
            try:
                async with self._local_lock:
                    current = await self._read_local_for_update()
                    updated = []
                    for record in current:
                        if record.document_id == document_id:
                            record = record.with_shared(shared_at)
                            patched = record
                        updated.append(record)
                    if patched is not None:
                        await self.local.replace_all(updated)
            except Exception as e:
                raise LocalCommitError(f"local cache share mark failed for {document_id}: {e}") from e

        if self.remote is not None:
            try:
                await self.remote.mark_shared(document_id, shared_at)
            except Exception as e:
                logger.warning(f"⚠️  Remote share mark failed for {document_id}: {e}")

        return patched

    async def backfill_local(self, records: Sequence[AuditRecord]) -> int:
        """
        Copy records missing from the local cache into it.

        Records failing ingestion validation are skipped. Best-effort:
        errors are logged, never raised, and a failed read writes nothing.
        Returns how many records were added.
        """
        if self.local is None or not records:
            return 0

        valid = []
        for record in records:
            try:
                validate_record(record)
            except RecordValidationError as e:
                logger.warning(f"⚠️  Not back-filling {record.document_id}: {e}")
                continue
            valid.append(record)
        if not valid:
            return 0

        try:
            async with self._local_lock:
                current = await self._read_local_for_update()
                extended = extend_local(current, valid)
                added = len(extended) - len(current)
                if added:
                    await self.local.replace_all(extended)
        except Exception as e:
            logger.warning(f"⚠️  Local back-fill failed: {e}")
            return 0
        if added:
            logger.info(f"Back-filled {added} records into local cache")
        return added

    # =========================================================================
    # CLEAR
    # =========================================================================

    async def clear(self, tier: StorageTier = StorageTier.LOCAL_CACHE) -> None:
        """Delete every record of `tier`. Only the local cache supports this."""
        if tier is not StorageTier.LOCAL_CACHE:
            raise ValueError(f"{tier.value} tier cannot be cleared")
        if self.local is None:
            return
        async with self._local_lock:
            await self.local.clear()
        logger.info("🧹 Local cache cleared")

    async def drain(self) -> None:
        """Wait for in-flight remote upserts (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
