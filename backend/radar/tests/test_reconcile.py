"""
Test: History Reconciliation
============================

Key properties tested:
1. Precedence: remote > bundled snapshot > local cache, whole records only
2. Output order: newest first, ties by descending document id
3. Idempotence: same inputs, same list
4. Back-fill only adds missing ids, never replaces local entries
"""

from radar.reconcile import (
    backfill_candidates, dedupe_tier, extend_local, merge_tiers, prepend_record,
)
from radar.tests.fakes import make_record


class TestPrecedence:

    def test_remote_beats_snapshot_and_local(self):
        remote = [make_record('X', title='remote', recorded_at=1)]
        snapshot = [make_record('X', title='snapshot', recorded_at=9)]
        local = [make_record('X', title='local', recorded_at=5)]

        merged = merge_tiers(remote=remote, snapshot=snapshot, local=local)

        assert len(merged) == 1
        assert merged[0].title == 'remote'

    def test_snapshot_beats_local(self):
        snapshot = [make_record('X', title='snapshot', score=10)]
        local = [make_record('X', title='local', score=90, category='Social')]

        merged = merge_tiers(snapshot=snapshot, local=local)

        assert merged[0].title == 'snapshot'
        # No field merging across tiers
        assert 'tipologia' not in merged[0].findings
        assert merged[0].score == 10.0

    def test_union_of_distinct_ids(self):
        merged = merge_tiers(
            remote=[make_record('A', recorded_at=1)],
            snapshot=[make_record('B', recorded_at=2)],
            local=[make_record('C', recorded_at=3)],
        )
        assert [r.document_id for r in merged] == ['C', 'B', 'A']

    def test_all_tiers_empty(self):
        assert merge_tiers() == []


class TestOrdering:

    def test_ties_broken_by_descending_id(self):
        merged = merge_tiers(local=[
            make_record('BOE-A-1', recorded_at=7),
            make_record('BOE-A-3', recorded_at=7),
            make_record('BOE-A-2', recorded_at=8),
        ])
        assert [r.document_id for r in merged] == ['BOE-A-2', 'BOE-A-3', 'BOE-A-1']

    def test_idempotent(self, sample_history):
        first = merge_tiers(remote=sample_history[:2], snapshot=sample_history[2:], local=sample_history)
        second = merge_tiers(remote=sample_history[:2], snapshot=sample_history[2:], local=sample_history)
        assert first == second

    def test_input_order_does_not_matter(self, sample_history):
        forward = merge_tiers(local=sample_history)
        backward = merge_tiers(local=list(reversed(sample_history)))
        assert forward == backward


class TestWithinTier:

    def test_newest_duplicate_wins(self):
        chosen = dedupe_tier([
            make_record('X', title='old', recorded_at=1),
            make_record('X', title='new', recorded_at=2),
        ])
        assert chosen['X'].title == 'new'

    def test_equal_timestamps_keep_first(self):
        chosen = dedupe_tier([
            make_record('X', title='first', recorded_at=1),
            make_record('X', title='second', recorded_at=1),
        ])
        assert chosen['X'].title == 'first'


class TestBackfill:

    def test_candidates_are_ids_missing_locally(self):
        merged = [make_record('A'), make_record('B'), make_record('C')]
        local = [make_record('B')]
        assert [r.document_id for r in backfill_candidates(merged, local)] == ['A', 'C']

    def test_extend_local_never_replaces(self):
        local = [make_record('A', title='local A', recorded_at=1)]
        additions = [make_record('A', title='remote A', recorded_at=5), make_record('B', recorded_at=3)]

        extended = extend_local(local, additions)

        assert [r.document_id for r in extended] == ['B', 'A']
        assert extended[1].title == 'local A'

    def test_prepend_replaces_same_id(self):
        local = [make_record('A', title='old'), make_record('B')]
        updated = prepend_record(local, make_record('A', title='new'))
        assert [r.document_id for r in updated] == ['A', 'B']
        assert updated[0].title == 'new'
