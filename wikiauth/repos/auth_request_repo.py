"""Repository for link request operations (the link request registry)."""

from __future__ import annotations

import logging
import re
import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import asyncpg

from wikiauth.db import Database
from wikiauth.errors import StorageFailure
from wikiauth.models.auth_request import AuthRequest, AuthRequestState, Completion, CompletionStatus

logger = logging.getLogger(__name__)

# secrets.token_urlsafe(32) always yields 43 urlsafe base64 characters
_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{43}$")


def _generate_token() -> str:
    """Generate a 256-bit urlsafe token."""
    return secrets.token_urlsafe(32)


def is_well_formed_token(token: str) -> bool:
    return bool(_TOKEN_RE.match(token))


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _row_to_auth_request(row: asyncpg.Record) -> AuthRequest:
    """Convert a database row to an AuthRequest model."""
    return AuthRequest(
        token=row["token"],
        chat_user_id=row["chat_user_id"],
        created_at=row["created_at"],
        state=AuthRequestState(row["state"]),
        wiki_account_id=row["wiki_account_id"],
        terminal_at=row["terminal_at"],
    )


class AuthRequestRepo:
    """
    All link request database operations.

    Expiry is lazy: a request is Pending until it is strictly older than the
    TTL, checked in every query against the caller's clock. Nothing sweeps
    rows for correctness; prune() only reclaims space.
    """

    def __init__(
        self,
        database: Database,
        ttl: timedelta,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._db = database
        self.ttl = ttl
        self._clock = clock

    async def start(self, chat_user_id: int) -> AuthRequest:
        """
        Issue a link request for a chat user, or refresh the open one.

        If the user has a Pending request still inside its TTL, its created_at
        is reset to now and the same token is returned. Otherwise any stale
        pending rows are expired and a fresh token is recorded.

        Args:
            chat_user_id: Discord user id

        Returns:
            The Pending AuthRequest for this user

        Raises:
            StorageFailure: On database errors
        """
        # A concurrent start() for the same user can win the
        # partial unique index on pending rows; the retry then refreshes its row.
        for _ in range(3):
            now = self._clock()
            try:
                async with self._db.conn() as conn:
                    row = await conn.fetchrow(
                        """
                        UPDATE auth_requests
                        SET created_at = $2
                        WHERE chat_user_id = $1
                          AND state = 'pending'
                          AND created_at >= $3
                        RETURNING *
                        """,
                        chat_user_id,
                        now,
                        now - self.ttl,
                    )
                    if row:
                        logger.debug("Refreshed pending link request for %s", chat_user_id)
                        return _row_to_auth_request(row)

                    await conn.execute(
                        """
                        UPDATE auth_requests
                        SET state = 'expired', terminal_at = created_at + $2::interval
                        WHERE chat_user_id = $1 AND state = 'pending' AND created_at < $3
                        """,
                        chat_user_id,
                        self.ttl,
                        now - self.ttl,
                    )
                    row = await conn.fetchrow(
                        """
                        INSERT INTO auth_requests (token, chat_user_id, created_at, state)
                        VALUES ($1, $2, $3, 'pending')
                        RETURNING *
                        """,
                        _generate_token(),
                        chat_user_id,
                        now,
                    )
                    return _row_to_auth_request(row)
            except asyncpg.UniqueViolationError:
                continue

        raise StorageFailure(f"Could not issue a link request for {chat_user_id}")

    async def lookup(self, token: str) -> AuthRequest | None:
        """
        Get a link request by token, with lazy expiry applied.

        Args:
            token: Link request token

        Returns:
            AuthRequest if found, None otherwise
        """
        async with self._db.conn() as conn:
            row = await conn.fetchrow("SELECT * FROM auth_requests WHERE token = $1", token)
        if not row:
            return None
        return _row_to_auth_request(row).effective(self._clock(), self.ttl)

    async def complete(self, token: str, wiki_account_id: int) -> Completion:
        """
        Consume a token. Atomic compare-and-set on the row's state.

        Only one caller ever moves a token from Pending to Completed; every
        other caller, concurrent or later, gets ALREADY_COMPLETED.

        Args:
            token: Link request token from the callback
            wiki_account_id: Verified wiki account id

        Returns:
            Completion with status and the stored request when one exists
        """
        now = self._clock()
        async with self._db.conn() as conn:
            row = await conn.fetchrow(
                """
                UPDATE auth_requests
                SET state = 'completed', wiki_account_id = $2, terminal_at = $3
                WHERE token = $1
                  AND state = 'pending'
                  AND created_at >= $4
                RETURNING *
                """,
                token,
                wiki_account_id,
                now,
                now - self.ttl,
            )
            if row:
                return Completion(status=CompletionStatus.OK, request=_row_to_auth_request(row))

            row = await conn.fetchrow("SELECT * FROM auth_requests WHERE token = $1", token)
            if not row:
                return Completion(status=CompletionStatus.NOT_FOUND)

            request = _row_to_auth_request(row)
            if request.state == AuthRequestState.COMPLETED:
                return Completion(status=CompletionStatus.ALREADY_COMPLETED, request=request)

            if request.state == AuthRequestState.PENDING:
                # Stale pending row: record the expiry now that someone asked
                row = await conn.fetchrow(
                    """
                    UPDATE auth_requests
                    SET state = 'expired', terminal_at = created_at + $2::interval
                    WHERE token = $1 AND state = 'pending' AND created_at < $3
                    RETURNING *
                    """,
                    token,
                    self.ttl,
                    now - self.ttl,
                )
                if row:
                    request = _row_to_auth_request(row)

            return Completion(status=CompletionStatus.EXPIRED, request=request.effective(now, self.ttl))

    async def cancel(self, chat_user_id: int) -> bool:
        """
        Cancel the user's open link request, if any.

        Returns:
            True if a Pending request was cancelled
        """
        async with self._db.conn() as conn:
            result = await conn.execute(
                """
                UPDATE auth_requests
                SET state = 'cancelled', terminal_at = $2
                WHERE chat_user_id = $1 AND state = 'pending'
                """,
                chat_user_id,
                self._clock(),
            )
            return result != "UPDATE 0"

    async def prune(self, retention: timedelta) -> int:
        """
        Delete requests whose terminal transition is older than `retention`.

        Pending rows past their TTL count as expired at created_at + TTL.
        Safe to run from a background task in either process.

        Returns:
            Number of rows deleted
        """
        cutoff = self._clock() - retention
        async with self._db.conn() as conn:
            result = await conn.execute(
                """
                DELETE FROM auth_requests
                WHERE (state <> 'pending' AND terminal_at < $1)
                   OR (state = 'pending' AND created_at + $2::interval < $1)
                """,
                cutoff,
                self.ttl,
            )
        # asyncpg returns "DELETE N" string
        parts = result.split()
        return int(parts[1]) if len(parts) == 2 else 0
