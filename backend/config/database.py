"""
Database Configuration
======================

Connection configuration for the durable storage tiers.
Handles PostgreSQL (remote tier) and Redis (local cache tier).

Connection strings come from Settings. A tier without one is structurally
unavailable: the factories return None and the record store skips it.
"""
import logging
from typing import Optional
from dataclasses import dataclass

import asyncpg
import redis.asyncio as redis

logger = logging.getLogger(__name__)


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""
    dsn: str
    min_size: int = 1
    max_size: int = 5
    command_timeout: float = 10.0

    def to_asyncpg_kwargs(self) -> dict:
        """Convert to asyncpg.create_pool kwargs."""
        return {
            'dsn': self.dsn,
            'min_size': self.min_size,
            'max_size': self.max_size,
            'command_timeout': self.command_timeout,
        }


async def create_postgres_pool(dsn: Optional[str], min_size: int = 1, max_size: int = 5):
    """
    Create PostgreSQL connection pool, or None when the remote tier is
    not configured or unreachable at startup.
    """
    if not dsn:
        logger.info("Remote tier not configured")
        return None

    config = PostgresConfig(dsn=dsn, min_size=min_size, max_size=max_size)
    try:
        return await asyncpg.create_pool(**config.to_asyncpg_kwargs())
    except (OSError, asyncpg.PostgresError) as e:
        logger.warning(f"⚠️  Remote tier unreachable at startup: {e}")
        return None


async def create_redis(url: Optional[str]):
    """Create Redis client for the local cache tier, or None when not configured."""
    if not url:
        logger.info("Local cache tier not configured")
        return None
    return redis.from_url(url, decode_responses=True)
