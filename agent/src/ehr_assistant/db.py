"""Postgres access for the read-only SQL variant.

Used by the database tools, the schema cache and the AI Chat permission
lookup. The pool is created on first use, so nothing connects when
DATABASE_URL is unset.
"""

from __future__ import annotations

import logging
from typing import Any

import asyncpg

from ehr_assistant.config import DATABASE_URL

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None


class DatabaseNotConfigured(RuntimeError):
    """Raised when a query is attempted without DATABASE_URL."""

    def __init__(self) -> None:
        super().__init__("DATABASE_URL is not set")


def is_configured() -> bool:
    return bool(DATABASE_URL)


async def get_pool() -> asyncpg.Pool:
    """Get or create the shared connection pool."""
    global _pool  # noqa: PLW0603
    if _pool is None:
        if not DATABASE_URL:
            raise DatabaseNotConfigured()
        _pool = await asyncpg.create_pool(
            DATABASE_URL,
            min_size=1,
            max_size=10,
            max_inactive_connection_lifetime=30,
            timeout=2,
        )
        logger.info("Database pool created")
    return _pool


async def fetch(query: str, *args: Any) -> list[dict[str, Any]]:
    """Run a query and return its rows as plain dicts."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch(query, *args)
    return [dict(row) for row in rows]


async def fetch_readonly(query: str, *args: Any) -> list[dict[str, Any]]:
    """Like ``fetch``, but inside a READ ONLY transaction.

    Used for model-written SQL: any statement that would write is rejected
    by the server (ReadOnlySQLTransactionError) and rolled back.
    """
    pool = await get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction(readonly=True):
            rows = await conn.fetch(query, *args)
    return [dict(row) for row in rows]


async def close_pool() -> None:
    global _pool  # noqa: PLW0603
    if _pool is not None:
        await _pool.close()
        _pool = None
