"""
Supabase Database Service

Holds the async Supabase client used by the entitlement reconciler.

Usage:
    from gigpay.database import get_database_async

    db = await get_database_async()
    await db.client.table("profiles").select("id").eq("id", buyer_id).execute()
"""

import asyncio
import os

from supabase._async.client import AsyncClient
from supabase._async.client import create_client as acreate_client

from gigpay.errors import ConfigurationError
from gigpay.logging import get_logger

logger = get_logger(__name__)

DATABASE_ENV_VARS = ("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY")


class Database:
    """
    Thin wrapper around the async Supabase client.

    Must be created via the async factory ``create()`` or ``init_database()``.
    """

    def __init__(self, client: AsyncClient):
        self.client = client

    @classmethod
    async def create(cls) -> "Database":
        """
        Create the async Supabase client from the environment.

        Raises:
            ConfigurationError: If SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is unset
        """
        missing = [name for name in DATABASE_ENV_VARS if not os.environ.get(name)]
        if missing:
            raise ConfigurationError(f"Database not configured. Set: {', '.join(missing)}")

        client = await acreate_client(
            os.environ["SUPABASE_URL"], os.environ["SUPABASE_SERVICE_ROLE_KEY"]
        )
        return cls(client)


# Singleton instance (initialized lazily on first use)
_db: Database | None = None
_db_lock: asyncio.Lock | None = None


def _get_lock() -> asyncio.Lock:
    global _db_lock
    if _db_lock is None:
        _db_lock = asyncio.Lock()
    return _db_lock


async def init_database() -> Database:
    """Initialize the database singleton. Safe to call concurrently."""
    global _db
    if _db is not None:
        return _db

    async with _get_lock():
        if _db is None:
            logger.info("Initializing async Supabase client...")
            _db = await Database.create()
            logger.info("Async Supabase client initialized successfully")
    return _db


async def get_database_async() -> Database:
    """Get the database instance, creating it on first use."""
    if _db is None:
        return await init_database()
    return _db


async def close_database() -> None:
    """Drop the client at shutdown."""
    global _db
    if _db is not None:
        try:
            await _db.client.auth.sign_out()
        except Exception as e:
            logger.warning("Error closing Supabase client: %s", e)
        _db = None
        logger.info("Supabase client closed")
