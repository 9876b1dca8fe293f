"""
Service wiring: builds the object graph from Settings.

Each tier is optional. A missing or unreachable backend leaves that
repository as None and the record store skips it.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from config.database import create_postgres_pool, create_redis
from config.settings import Settings
from repositories import CacheAuditRepository, RemoteAuditRepository, SnapshotAuditRepository

from services.analysis_service import AuditAnalyzer
from services.audit_service import AuditService
from services.exchange_service import HistoryExchange
from services.gazette_client import GazetteClient
from services.history_reconciler import HistoryReconciler
from services.record_store import RecordStore
from utils.url_utils import DEFAULT_GAZETTE_BASE

logger = logging.getLogger(__name__)


@dataclass
class AuditServices:
    store: RecordStore
    reconciler: HistoryReconciler
    exchange: HistoryExchange
    audits: AuditService
    gazette: GazetteClient
    page_size: int = 10
    layout_steps: int = 300
    gazette_base_url: str = DEFAULT_GAZETTE_BASE
    db_pool: Optional[object] = None
    redis_client: Optional[object] = None
    http_client: Optional[httpx.AsyncClient] = None

    async def close(self) -> None:
        await self.store.drain()
        if self.http_client is not None:
            await self.http_client.aclose()
        if self.redis_client is not None:
            await self.redis_client.aclose()
        if self.db_pool is not None:
            await self.db_pool.close()


def assemble(
    store: RecordStore,
    gazette: GazetteClient,
    analyzer: AuditAnalyzer,
    settings: Settings,
    **resources,
) -> AuditServices:
    """Wire services around an existing store (also used by tests)."""
    reconciler = HistoryReconciler(store)
    return AuditServices(
        store=store,
        reconciler=reconciler,
        exchange=HistoryExchange(store, reconciler, base_url=settings.gazette_base_url),
        audits=AuditService(
            store, reconciler, gazette, analyzer,
            default_language=settings.default_language,
        ),
        gazette=gazette,
        page_size=settings.history_page_size,
        layout_steps=settings.layout_steps,
        gazette_base_url=settings.gazette_base_url,
        **resources,
    )


async def build_services(settings: Settings) -> AuditServices:
    """Connect to the configured tiers and build every service."""
    db_pool = await create_postgres_pool(settings.database_url)
    remote = None
    if db_pool is not None:
        remote = RemoteAuditRepository(db_pool)
        try:
            await remote.ensure_schema()
        except Exception as e:
            logger.warning(f"⚠️  Could not ensure remote schema: {e}")

    redis_client = await create_redis(settings.redis_url)
    local = CacheAuditRepository(redis_client, settings.local_cache_key) if redis_client is not None else None

    snapshot_dir = Path(settings.snapshot_dir)
    snapshot = SnapshotAuditRepository(snapshot_dir) if snapshot_dir.is_dir() else None

    store = RecordStore(
        remote=remote,
        local=local,
        snapshot=snapshot,
        tier_timeout=settings.tier_timeout,
    )

    http_client = httpx.AsyncClient(follow_redirects=True, timeout=settings.gazette_timeout)
    gazette = GazetteClient(base_url=settings.gazette_base_url, http_client=http_client)
    analyzer = AuditAnalyzer(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        max_chars=settings.analysis_max_chars,
    )

    logger.info(
        f"Tiers: remote={'on' if remote else 'off'}, "
        f"local={'on' if local else 'off'}, snapshot={'on' if snapshot else 'off'}"
    )
    return assemble(
        store, gazette, analyzer, settings,
        db_pool=db_pool, redis_client=redis_client, http_client=http_client,
    )
