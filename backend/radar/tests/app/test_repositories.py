"""
Test: Tier Repositories
=======================

Redis cache, bundled report directory and PostgreSQL repository, each
against an in-memory double (no live services needed).
"""

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import asyncpg
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from radar.errors import CorruptCacheError, LocalCommitError, TierUnavailableError
from radar.tests.fakes import make_record
from repositories import CacheAuditRepository, RemoteAuditRepository, SnapshotAuditRepository
from repositories.snapshot_audit_repository import (
    audited_ids, generate_manifest, write_index_file, write_report_file,
)
from services.record_store import RecordStore


# ============================================================================
# DOUBLES
# ============================================================================

class FakeRedis:
    def __init__(self, fail: bool = False):
        self.data = {}
        self.fail = fail
        self.fail_next = 0

    async def get(self, key):
        if self.fail:
            raise RedisConnectionError("connection refused")
        if self.fail_next:
            self.fail_next -= 1
            raise RedisTimeoutError("read timed out")
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value

    async def delete(self, key):
        self.data.pop(key, None)


class FakeConnection:
    def __init__(self, pool):
        self.pool = pool

    async def fetch(self, query, *args):
        if self.pool.fail:
            raise asyncpg.PostgresConnectionError("server closed the connection")
        return list(self.pool.rows)

    async def execute(self, query, *args):
        self.pool.executed.append((query, args))
        return self.pool.status


class FakePool:
    def __init__(self, rows=None, fail=False, status="INSERT 0 1"):
        self.rows = rows or []
        self.fail = fail
        self.status = status
        self.executed = []

    @asynccontextmanager
    async def acquire(self):
        yield FakeConnection(self)


def utc(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


# ============================================================================
# LOCAL CACHE (REDIS)
# ============================================================================

class TestCacheRepository:

    @pytest.mark.asyncio
    async def test_replace_then_read(self):
        repo = CacheAuditRepository(FakeRedis(), key='k')
        records = [make_record('A', recorded_at=2, shared_at=9), make_record('B', recorded_at=1)]

        await repo.replace_all(records)

        assert await repo.read_all() == records

    @pytest.mark.asyncio
    async def test_empty_key_reads_empty(self):
        assert await CacheAuditRepository(FakeRedis()).read_all() == []

    @pytest.mark.asyncio
    async def test_malformed_entries_skipped(self):
        redis = FakeRedis()
        redis.data['k'] = json.dumps([
            make_record('A').to_cache_dict(),
            {'boeId': 'broken'},
            'nonsense',
        ])
        records = await CacheAuditRepository(redis, key='k').read_all()
        assert [r.document_id for r in records] == ['A']

    @pytest.mark.asyncio
    @pytest.mark.parametrize("blob", ['{not json', '{"boeId": "A"}'])
    async def test_corrupt_blob_is_unavailable(self, blob):
        redis = FakeRedis()
        redis.data['k'] = blob
        with pytest.raises(CorruptCacheError):
            await CacheAuditRepository(redis, key='k').read_all()

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(self):
        with pytest.raises(TierUnavailableError) as excinfo:
            await CacheAuditRepository(FakeRedis(fail=True)).read_all()
        assert not isinstance(excinfo.value, CorruptCacheError)

    @pytest.mark.asyncio
    async def test_clear(self):
        redis = FakeRedis()
        repo = CacheAuditRepository(redis, key='k')
        await repo.replace_all([make_record('A')])
        await repo.clear()
        assert 'k' not in redis.data


class TestCacheBackedStore:

    @pytest.mark.asyncio
    async def test_transient_read_failure_keeps_cached_history(self):
        redis = FakeRedis()
        store = RecordStore(local=CacheAuditRepository(redis, key='k'))
        for i in range(5):
            await store.write(make_record(f"KEEP{i}", recorded_at=i))

        redis.fail_next = 1
        with pytest.raises(LocalCommitError):
            await store.write(make_record('NEW', recorded_at=10))
        assert len(json.loads(redis.data['k'])) == 5

        await store.write(make_record('NEW', recorded_at=10))
        ids = [r['boeId'] for r in json.loads(redis.data['k'])]
        assert len(ids) == 6
        assert ids[0] == 'NEW'

    @pytest.mark.asyncio
    async def test_transient_read_failure_skips_backfill(self):
        redis = FakeRedis()
        store = RecordStore(local=CacheAuditRepository(redis, key='k'))
        await store.write(make_record('KEEP'))

        redis.fail_next = 1
        assert await store.backfill_local([make_record('A')]) == 0
        assert [r.document_id for r in await store.local.read_all()] == ['KEEP']

    @pytest.mark.asyncio
    async def test_corrupt_blob_rebuilt_on_write(self):
        redis = FakeRedis()
        redis.data['k'] = '{not json'
        store = RecordStore(local=CacheAuditRepository(redis, key='k'))
        await store.write(make_record('A'))
        assert [r.document_id for r in await store.local.read_all()] == ['A']


# ============================================================================
# BUNDLED SNAPSHOT (REPORT FILES)
# ============================================================================

class TestSnapshotRepository:

    @pytest.mark.asyncio
    async def test_reads_report_files_newest_duplicate_wins(self, tmp_path):
        write_report_file(tmp_path, make_record('BOE-A-2024-1', title='old', recorded_at=1_000))
        write_report_file(tmp_path, make_record('BOE-A-2024-1', title='new', recorded_at=2_000))
        write_report_file(tmp_path, make_record('BOE-A-2024-2', recorded_at=1_500))
        (tmp_path / 'BOE_Audit_Index_1.json').write_text('[]')
        (tmp_path / 'Audit_broken_3.json').write_text('{not json')
        (tmp_path / 'Audit_missing_4.json').write_text('{"boe_id": "X"}')

        records = await SnapshotAuditRepository(tmp_path).read_all()

        assert [(r.document_id, r.title) for r in records] == [
            ('BOE-A-2024-1', 'new'), ('BOE-A-2024-2', 'Title BOE-A-2024-2'),
        ]
        assert records[0].recorded_at == 2_000

    @pytest.mark.asyncio
    async def test_missing_directory_is_unavailable(self, tmp_path):
        with pytest.raises(TierUnavailableError):
            await SnapshotAuditRepository(tmp_path / 'nope').read_all()

    def test_report_file_format(self, tmp_path):
        path = write_report_file(tmp_path, make_record('BOE-A-1', recorded_at=0))
        assert path.name == 'Audit_BOE-A-1_0.json'
        body = json.loads(path.read_text(encoding='utf-8'))
        assert body['boe_id'] == 'BOE-A-1'
        assert body['timestamp'] == '1970-01-01T00:00:00.000Z'
        assert body['report']['nivel_transparencia'] == 50
        assert audited_ids(tmp_path) == {'BOE-A-1'}

    def test_index_merge_replaces_old_files(self, tmp_path):
        old = tmp_path / 'BOE_Audit_Index_1.json'
        old.write_text(json.dumps([
            {'id': 'A', 'titulo': 'old A', 'fecha_auditoria': '2024-01-01T00:00:00.000Z'},
            {'id': 'B', 'titulo': 'B', 'fecha_auditoria': '2024-01-02T00:00:00.000Z'},
        ]))

        path = write_index_file(tmp_path, [
            {'id': 'A', 'titulo': 'new A', 'fecha_auditoria': '2024-02-01T00:00:00.000Z'},
        ])

        assert not old.exists()
        merged = json.loads(path.read_text(encoding='utf-8'))
        assert [(e['id'], e['titulo']) for e in merged] == [('A', 'new A'), ('B', 'B')]

    def test_manifest(self, tmp_path):
        write_report_file(tmp_path, make_record('BOE-A-1', recorded_at=5))
        (tmp_path / 'notes.txt').write_text('ignored')

        path = generate_manifest(tmp_path)
        generate_manifest(tmp_path)  # second run must not list itself

        manifest = json.loads(path.read_text())
        assert manifest['files'] == ['Audit_BOE-A-1_5.json']
        assert manifest['generatedAt'].endswith('Z')

    def test_manifest_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            generate_manifest(tmp_path / 'nope')


# ============================================================================
# REMOTE (POSTGRES)
# ============================================================================

class TestRemoteRepository:

    @pytest.mark.asyncio
    async def test_rows_to_records(self):
        pool = FakePool(rows=[
            {'boe_id': 'A', 'title': 'Ley A', 'audit': json.dumps({'nivel_transparencia': 40}),
             'created_at': utc(2_000), 'shared_at': utc(3_000)},
            {'boe_id': 'B', 'title': None, 'audit': {'nivel_transparencia': 60},
             'created_at': utc(1_000), 'shared_at': None},
            {'boe_id': 'C', 'title': 'bad', 'audit': 'not json',
             'created_at': utc(500), 'shared_at': None},
        ])

        records = await RemoteAuditRepository(pool).read_all()

        assert [(r.document_id, r.title, r.recorded_at, r.shared_at) for r in records] == [
            ('A', 'Ley A', 2_000, 3_000),
            ('B', 'B', 1_000, None),
        ]

    @pytest.mark.asyncio
    async def test_database_error_is_unavailable(self):
        with pytest.raises(TierUnavailableError):
            await RemoteAuditRepository(FakePool(fail=True)).read_all()

    @pytest.mark.asyncio
    async def test_upsert_parameters(self):
        pool = FakePool()
        await RemoteAuditRepository(pool).upsert(make_record('A', recorded_at=2_000))

        query, args = pool.executed[0]
        assert 'ON CONFLICT (boe_id)' in query
        assert args[0] == 'A'
        assert json.loads(args[2])['nivel_transparencia'] == 50
        assert args[3] == utc(2_000)
        assert args[4] is None

    @pytest.mark.asyncio
    async def test_mark_shared_reports_update(self):
        assert await RemoteAuditRepository(FakePool(status="UPDATE 1")).mark_shared('A', 5)
        assert not await RemoteAuditRepository(FakePool(status="UPDATE 0")).mark_shared('A', 5)
