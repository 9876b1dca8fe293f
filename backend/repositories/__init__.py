"""
Repositories - one per storage tier

    RemoteAuditRepository    PostgreSQL (remote tier)
    CacheAuditRepository     Redis (local cache tier)
    SnapshotAuditRepository  bundled report files (read-only)

All three expose `read_all()`; the writable tiers add their own write methods.
"""
from .remote_audit_repository import RemoteAuditRepository
from .cache_audit_repository import CacheAuditRepository
from .snapshot_audit_repository import SnapshotAuditRepository

__all__ = [
    'RemoteAuditRepository',
    'CacheAuditRepository',
    'SnapshotAuditRepository',
]
