"""
Database connection pool and transactional connection manager.

All database access goes through Database.conn().
Never use pool.acquire() directly outside this module.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import asyncpg

from wikiauth.errors import StorageFailure


class Database:
    """
    Owns the asyncpg pool for one process.

    Both the bot process and the callback server create their own Database
    against the same Postgres. Cross-process correctness comes from the
    constraints and conditional updates in the repos, never from locks here.
    """

    def __init__(self, dsn: str, min_size: int = 2, max_size: int = 10) -> None:
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        self.pool: asyncpg.Pool | None = None

    async def init_pool(self) -> None:
        """
        Initialize the connection pool.
        Called once at process startup.
        """
        try:
            self.pool = await asyncpg.create_pool(
                dsn=self._dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=30,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise StorageFailure(f"Could not connect to database: {exc}") from exc

    async def close_pool(self) -> None:
        """
        Close the connection pool.
        Called at process shutdown.
        """
        if self.pool is not None:
            await self.pool.close()
            self.pool = None

    @asynccontextmanager
    async def conn(self) -> AsyncIterator[asyncpg.Connection]:
        """
        Acquire a connection inside a transaction.

        Usage:
            async with database.conn() as conn:
                row = await conn.fetchrow("SELECT * FROM linked_accounts WHERE chat_user_id = $1", user_id)

        Constraint violations propagate unchanged so repos can map them to
        domain outcomes. Every other database or network error surfaces as
        StorageFailure.

        Yields:
            asyncpg.Connection with an open transaction
        """
        if self.pool is None:
            raise StorageFailure("Database pool not initialized. Call init_pool() first.")

        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    yield conn
        except asyncpg.IntegrityConstraintViolationError:
            raise
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise StorageFailure(str(exc)) from exc
