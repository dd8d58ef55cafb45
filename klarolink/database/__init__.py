"""Database adapter factory.

Selects the PostgreSQL (Supabase) adapter when SUPABASE_URL and SUPABASE_KEY
are configured and the in-memory mock store otherwise.

Usage:
    db = get_database()
    business = await db.get_business_by_slug("demo-business")
"""

from typing import Optional

import structlog

from klarolink.config.settings import Settings, get_settings
from klarolink.database.base import DatabaseAdapter
from klarolink.database.memory import MemoryDatabaseAdapter
from klarolink.database.supabase_adapter import SupabaseDatabaseAdapter

logger = structlog.get_logger(__name__)

_database: Optional[DatabaseAdapter] = None


def create_database(settings: Settings) -> DatabaseAdapter:
    """Build a new adapter for the given settings."""
    if not settings.use_supabase:
        logger.info("database_adapter_selected", backend="memory")
        return MemoryDatabaseAdapter()

    from supabase import create_client

    client = create_client(
        settings.supabase_url,
        settings.supabase_key.get_secret_value(),
    )
    fallback = MemoryDatabaseAdapter() if settings.database_fallback_to_mock else None
    if fallback is not None:
        logger.warning("database_mock_fallback_enabled")

    logger.info("database_adapter_selected", backend="supabase")
    return SupabaseDatabaseAdapter(client, fallback=fallback)


def get_database(settings: Optional[Settings] = None) -> DatabaseAdapter:
    """
    Get or create the process-wide database adapter.

    Args:
        settings: Application settings (uses get_settings() if not provided)

    Returns:
        Supabase-backed or in-memory adapter
    """
    global _database

    if _database is None:
        _database = create_database(settings or get_settings())
    return _database


def set_database(database: DatabaseAdapter) -> None:
    """Install a specific adapter (tests, custom wiring)."""
    global _database
    _database = database


def reset_database() -> None:
    """Drop the cached adapter (for testing and shutdown)."""
    global _database
    _database = None


__all__ = [
    "DatabaseAdapter",
    "MemoryDatabaseAdapter",
    "SupabaseDatabaseAdapter",
    "create_database",
    "get_database",
    "reset_database",
    "set_database",
]
