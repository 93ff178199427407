"""Repository for linked account operations."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

import asyncpg

from wikiauth.db import Database
from wikiauth.models.linked_account import CommitResult, CommitStatus, LinkedAccount

logger = logging.getLogger(__name__)


def _row_to_linked_account(row: asyncpg.Record) -> LinkedAccount:
    """Convert a database row to a LinkedAccount model."""
    return LinkedAccount(
        chat_user_id=row["chat_user_id"],
        wiki_account_id=row["wiki_account_id"],
        linked_at=row["linked_at"],
    )


class LinkedAccountRepo:
    """All linked account database operations. One global link per chat user."""

    def __init__(self, database: Database, clock: Callable[[], datetime] = lambda: datetime.now(UTC)) -> None:
        self._db = database
        self._clock = clock

    async def commit(self, chat_user_id: int, wiki_account_id: int) -> CommitResult:
        """
        Insert the link unless the chat user already has one.

        The primary key on chat_user_id decides concurrent commits: exactly
        one insert lands, the rest see ALREADY_LINKED. An existing row is
        never updated.

        Args:
            chat_user_id: Discord user id
            wiki_account_id: Verified wiki account id

        Returns:
            CommitResult; `account` is the stored row in both cases
        """
        async with self._db.conn() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO linked_accounts (chat_user_id, wiki_account_id, linked_at)
                VALUES ($1, $2, $3)
                ON CONFLICT (chat_user_id) DO NOTHING
                RETURNING *
                """,
                chat_user_id,
                wiki_account_id,
                self._clock(),
            )
            if row:
                return CommitResult(status=CommitStatus.OK, account=_row_to_linked_account(row))

            row = await conn.fetchrow(
                "SELECT * FROM linked_accounts WHERE chat_user_id = $1",
                chat_user_id,
            )
            return CommitResult(
                status=CommitStatus.ALREADY_LINKED,
                account=_row_to_linked_account(row) if row else None,
            )

    async def lookup(self, chat_user_id: int) -> LinkedAccount | None:
        """
        Get the link for a chat user.

        Returns:
            LinkedAccount if linked, None otherwise
        """
        async with self._db.conn() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM linked_accounts WHERE chat_user_id = $1",
                chat_user_id,
            )
            return _row_to_linked_account(row) if row else None

    async def unlink(self, chat_user_id: int) -> bool:
        """
        Remove a chat user's link.

        Returns:
            True if deleted, False if the user was not linked
        """
        async with self._db.conn() as conn:
            result = await conn.execute(
                "DELETE FROM linked_accounts WHERE chat_user_id = $1",
                chat_user_id,
            )
            return result == "DELETE 1"
