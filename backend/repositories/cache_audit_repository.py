"""
Cache Audit Repository - Redis storage for the local cache tier

The whole tier is one JSON array under a single key, newest first, in the
same shape as a full export. Writes replace the array wholesale.
"""
import json
import logging
from typing import List, Sequence

from redis.exceptions import RedisError

from radar.errors import CorruptCacheError, RecordValidationError, TierUnavailableError
from radar.types import AuditRecord, StorageTier

logger = logging.getLogger(__name__)


class CacheAuditRepository:
    """
    Repository for the local cache tier.

    Malformed entries are skipped on read. A blob that is not a JSON
    array raises CorruptCacheError; a Redis failure raises
    TierUnavailableError and says nothing about the stored contents.
    """

    tier = StorageTier.LOCAL_CACHE

    def __init__(self, redis_client, key: str = "boe_audit_history_v1"):
        self.redis = redis_client
        self.key = key

    async def read_all(self) -> List[AuditRecord]:
        try:
            raw = await self.redis.get(self.key)
        except (RedisError, OSError) as e:
            raise TierUnavailableError(self.tier.value, str(e)) from e

        if raw is None:
            return []

        try:
            entries = json.loads(raw)
        except ValueError as e:
            raise CorruptCacheError(self.tier.value, f"corrupt cache blob: {e}") from e
        if not isinstance(entries, list):
            raise CorruptCacheError(self.tier.value, "cache blob is not a list")

        records = []
        for entry in entries:
            try:
                records.append(AuditRecord.from_cache_dict(entry))
            except RecordValidationError as e:
                logger.warning(f"Skipping malformed cache entry: {e}")
        return records

    async def replace_all(self, records: Sequence[AuditRecord]) -> None:
        """Replace the tier contents. Redis errors propagate to the caller."""
        payload = json.dumps([r.to_cache_dict() for r in records], ensure_ascii=False)
        await self.redis.set(self.key, payload)

    async def clear(self) -> None:
        await self.redis.delete(self.key)
