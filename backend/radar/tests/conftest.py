"""
Pytest fixtures for the audit history kernel and services.

Usage:
    def test_merge(sample_history):
        ...

    @pytest.mark.asyncio
    async def test_write(store, local_tier):
        ...
"""

import pytest

from radar.tests.fakes import FakeLocalTier, FakeRemoteTier, FakeTier, make_record
from services.record_store import RecordStore


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: long-running layout convergence checks"
    )


@pytest.fixture
def sample_history():
    """Five audits, newest first, with overlapping tags."""
    return [
        make_record('BOE-A-2024-0005', score=20, recorded_at=5_000, category='Economía',
                    region='Estatal', flags=['Gastos Fantasma', 'Opacidad']),
        make_record('BOE-A-2024-0004', score=45, recorded_at=4_000, category='Vivienda',
                    region='Madrid', flags=['Opacidad']),
        make_record('BOE-A-2024-0003', score=80, recorded_at=3_000, category='Economía',
                    region='Cataluña', flags=[]),
        make_record('BOE-A-2024-0002', score=65, recorded_at=2_000, category='Social',
                    region='Estatal', flags=['Gastos Fantasma']),
        make_record('BOE-A-2024-0001', score=95, recorded_at=1_000, category='Cultura',
                    region='Andalucía', flags=[]),
    ]


@pytest.fixture
def remote_tier():
    return FakeRemoteTier()


@pytest.fixture
def local_tier():
    return FakeLocalTier()


@pytest.fixture
def snapshot_tier():
    return FakeTier()


@pytest.fixture
def store(remote_tier, local_tier, snapshot_tier):
    return RecordStore(remote=remote_tier, local=local_tier, snapshot=snapshot_tier)
