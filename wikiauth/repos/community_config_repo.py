"""Repository for per-community configuration. Read-only."""

from __future__ import annotations

import asyncpg

from wikiauth.db import Database
from wikiauth.models.community import CommunityConfig


def _row_to_community_config(row: asyncpg.Record) -> CommunityConfig:
    """Convert a database row to a CommunityConfig model."""
    return CommunityConfig(
        community_id=row["community_id"],
        welcome_channel=row["welcome_channel"],
        authenticated_role=row["role_id"],
        locale=row["locale"],
        profile_url_template=row["profile_url_template"],
    )


class CommunityConfigRepo:
    """Rows are maintained by configuration management; this core only reads them."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def get(self, community_id: int) -> CommunityConfig | None:
        async with self._db.conn() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM community_config WHERE community_id = $1",
                community_id,
            )
            return _row_to_community_config(row) if row else None
