"""
Test: Record Store
==================

Tier reads never raise; writes commit locally first and upsert remotely
in the background.
"""

import asyncio

import pytest

from radar.errors import LocalCommitError, RecordValidationError
from radar.types import StorageTier
from radar.tests.fakes import FakeLocalTier, FakeRemoteTier, FakeTier, make_record
from services.record_store import RecordStore


class SlowTier(FakeTier):
    async def read_all(self):
        await asyncio.sleep(5)
        return []


class TestReadTier:

    @pytest.mark.asyncio
    async def test_unavailable_tier_reads_empty(self):
        store = RecordStore(remote=FakeRemoteTier(fail=True))
        assert await store.read_tier(StorageTier.REMOTE) == []

    @pytest.mark.asyncio
    async def test_unexpected_error_reads_empty(self):
        class Broken(FakeTier):
            async def read_all(self):
                raise RuntimeError("boom")

        store = RecordStore(snapshot=Broken())
        assert await store.read_tier(StorageTier.BUNDLED_SNAPSHOT) == []

    @pytest.mark.asyncio
    async def test_unconfigured_tier_reads_empty(self):
        assert await RecordStore().read_tier(StorageTier.LOCAL_CACHE) == []

    @pytest.mark.asyncio
    async def test_timeout_reads_empty(self):
        store = RecordStore(snapshot=SlowTier(), tier_timeout=0.05)
        assert await store.read_tier(StorageTier.BUNDLED_SNAPSHOT) == []

    @pytest.mark.asyncio
    async def test_returns_records(self, store, snapshot_tier):
        snapshot_tier.records = [make_record('A')]
        assert [r.document_id for r in await store.read_tier(StorageTier.BUNDLED_SNAPSHOT)] == ['A']


class TestWrite:

    @pytest.mark.asyncio
    async def test_local_commit_then_remote_upsert(self, store, local_tier, remote_tier):
        result = await store.write(make_record('A'))

        assert result.local_committed
        assert [r.document_id for r in local_tier.records] == ['A']
        assert await result.remote_warning() is None
        assert [r.document_id for r in remote_tier.records] == ['A']

    @pytest.mark.asyncio
    async def test_new_record_goes_first(self, store, local_tier):
        local_tier.records = [make_record('OLD', recorded_at=1)]
        await store.write(make_record('NEW', recorded_at=2))
        assert [r.document_id for r in local_tier.records] == ['NEW', 'OLD']

    @pytest.mark.asyncio
    async def test_invalid_record_touches_no_tier(self, store, local_tier, remote_tier):
        with pytest.raises(RecordValidationError):
            await store.write(make_record('A', score=150))
        await store.drain()
        assert local_tier.records == []
        assert remote_tier.records == []

    @pytest.mark.asyncio
    async def test_remote_failure_is_warning(self, local_tier):
        store = RecordStore(remote=FakeRemoteTier(fail_writes=True), local=local_tier)
        result = await store.write(make_record('A'))

        warning = await result.remote_warning()
        assert 'Remote save failed for A' in warning
        assert [r.document_id for r in local_tier.records] == ['A']

    @pytest.mark.asyncio
    async def test_local_failure_raises(self, remote_tier):
        store = RecordStore(remote=remote_tier, local=FakeLocalTier(fail_writes=True))
        with pytest.raises(LocalCommitError):
            await store.write(make_record('A'))
        await store.drain()
        assert remote_tier.records == []

    @pytest.mark.asyncio
    async def test_corrupt_local_tier_is_rebuilt(self):
        local = FakeLocalTier(records=[make_record('LOST')], corrupt=True)
        store = RecordStore(local=local)
        result = await store.write(make_record('A'))
        assert result.local_committed
        assert [r.document_id for r in local.records] == ['A']

    @pytest.mark.asyncio
    async def test_unreadable_local_tier_fails_write(self, remote_tier):
        local = FakeLocalTier(records=[make_record('KEEP')], fail=True)
        store = RecordStore(remote=remote_tier, local=local)
        with pytest.raises(LocalCommitError):
            await store.write(make_record('A'))
        await store.drain()
        assert [r.document_id for r in local.records] == ['KEEP']
        assert local.replaced == 0
        assert remote_tier.records == []

    @pytest.mark.asyncio
    async def test_no_local_tier_skips_commit(self, remote_tier):
        store = RecordStore(remote=remote_tier)
        result = await store.write(make_record('A'))
        assert not result.local_committed
        await store.drain()
        assert [r.document_id for r in remote_tier.records] == ['A']

    @pytest.mark.asyncio
    async def test_concurrent_writes_do_not_lose_records(self, store, local_tier):
        await asyncio.gather(*(store.write(make_record(f"ID{i}", recorded_at=i)) for i in range(10)))
        assert {r.document_id for r in local_tier.records} == {f"ID{i}" for i in range(10)}


class TestSharePatch:

    @pytest.mark.asyncio
    async def test_marks_local_and_remote(self, store, local_tier, remote_tier):
        local_tier.records = [make_record('A'), make_record('B')]
        record = await store.mark_shared('A', 77)

        assert record.shared_at == 77
        assert local_tier.records[0].shared_at == 77
        assert local_tier.records[1].shared_at is None
        assert remote_tier.shared == {'A': 77}

    @pytest.mark.asyncio
    async def test_first_share_timestamp_kept(self, store, local_tier):
        local_tier.records = [make_record('A', shared_at=5)]
        record = await store.mark_shared('A', 99)
        assert record.shared_at == 5

    @pytest.mark.asyncio
    async def test_unknown_id(self, store, local_tier):
        assert await store.mark_shared('nope', 1) is None
        assert local_tier.replaced == 0

    @pytest.mark.asyncio
    async def test_unreadable_local_tier_fails_share(self, remote_tier):
        local = FakeLocalTier(records=[make_record('A')], fail=True)
        store = RecordStore(remote=remote_tier, local=local)
        with pytest.raises(LocalCommitError):
            await store.mark_shared('A', 1)
        assert local.replaced == 0


class TestClearAndBackfill:

    @pytest.mark.asyncio
    async def test_clear_local_only(self, store, local_tier, remote_tier):
        local_tier.records = [make_record('A')]
        remote_tier.records = [make_record('B')]
        await store.clear()
        assert local_tier.records == []
        assert len(remote_tier.records) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tier", [StorageTier.REMOTE, StorageTier.BUNDLED_SNAPSHOT])
    async def test_other_tiers_cannot_be_cleared(self, store, tier):
        with pytest.raises(ValueError):
            await store.clear(tier)

    @pytest.mark.asyncio
    async def test_backfill_adds_missing_only(self, store, local_tier):
        local_tier.records = [make_record('A', title='local')]
        added = await store.backfill_local([make_record('A', title='remote'), make_record('B')])
        assert added == 1
        titles = {r.document_id: r.title for r in local_tier.records}
        assert titles['A'] == 'local'
        assert 'B' in titles

    @pytest.mark.asyncio
    async def test_backfill_failure_swallowed(self):
        store = RecordStore(local=FakeLocalTier(fail_writes=True))
        assert await store.backfill_local([make_record('A')]) == 0

    @pytest.mark.asyncio
    async def test_backfill_skips_unreadable_local_tier(self):
        local = FakeLocalTier(records=[make_record('KEEP')], fail=True)
        store = RecordStore(local=local)
        assert await store.backfill_local([make_record('A'), make_record('B')]) == 0
        assert [r.document_id for r in local.records] == ['KEEP']
        assert local.replaced == 0

    @pytest.mark.asyncio
    async def test_backfill_rebuilds_corrupt_local_tier(self):
        local = FakeLocalTier(records=[make_record('LOST')], corrupt=True)
        store = RecordStore(local=local)
        assert await store.backfill_local([make_record('A')]) == 1
        assert [r.document_id for r in local.records] == ['A']

    @pytest.mark.asyncio
    async def test_backfill_rejects_invalid_records(self, store, local_tier):
        bad_score = make_record('BAD', score=150)
        not_numeric = make_record('TEXT', score='alto')
        added = await store.backfill_local([bad_score, make_record('OK'), not_numeric])
        assert added == 1
        assert [r.document_id for r in local_tier.records] == ['OK']

    @pytest.mark.asyncio
    async def test_backfill_of_only_invalid_records_writes_nothing(self, store, local_tier):
        assert await store.backfill_local([make_record('BAD', score=-1)]) == 0
        assert local_tier.replaced == 0
