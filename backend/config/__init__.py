"""
Configuration module for settings and storage tier connections.
"""
from .settings import Settings, get_settings
from .database import (
    PostgresConfig,
    create_postgres_pool,
    create_redis,
)

__all__ = [
    'Settings',
    'get_settings',
    'PostgresConfig',
    'create_postgres_pool',
    'create_redis',
]
