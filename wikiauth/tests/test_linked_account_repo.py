"""Tests for LinkedAccountRepo and CommunityConfigRepo against PostgreSQL."""

from __future__ import annotations

import asyncio
import secrets

import pytest

from wikiauth.models.linked_account import CommitStatus
from wikiauth.repos.community_config_repo import CommunityConfigRepo
from wikiauth.repos.linked_account_repo import LinkedAccountRepo

pytestmark = pytest.mark.asyncio(loop_scope="session")


async def test_commit_creates_link(database, clock, cleanup_user):
    repo = LinkedAccountRepo(database, clock=clock)

    result = await repo.commit(cleanup_user, 12345)

    assert result.status == CommitStatus.OK
    assert result.account.chat_user_id == cleanup_user
    assert result.account.wiki_account_id == 12345
    assert result.account.linked_at == clock.now


async def test_commit_existing_link_is_rejected_unchanged(database, clock, cleanup_user):
    """A second commit never overwrites the stored link."""
    repo = LinkedAccountRepo(database, clock=clock)
    first = await repo.commit(cleanup_user, 12345)

    clock.advance(minutes=1)
    second = await repo.commit(cleanup_user, 67890)

    assert second.status == CommitStatus.ALREADY_LINKED
    assert second.account == first.account
    assert await repo.lookup(cleanup_user) == first.account


async def test_concurrent_commits_single_row(database, clock, cleanup_user):
    repo = LinkedAccountRepo(database, clock=clock)

    results = await asyncio.gather(*(repo.commit(cleanup_user, 1000 + i) for i in range(6)))
    statuses = [r.status for r in results]

    assert statuses.count(CommitStatus.OK) == 1
    winner = next(r.account for r in results if r.status == CommitStatus.OK)
    assert all(r.account == winner for r in results)
    async with database.conn() as conn:
        count = await conn.fetchval("SELECT count(*) FROM linked_accounts WHERE chat_user_id = $1", cleanup_user)
    assert count == 1


async def test_lookup_missing_returns_none(database, cleanup_user):
    repo = LinkedAccountRepo(database)

    assert await repo.lookup(cleanup_user) is None


async def test_lookup_is_stable(database, cleanup_user):
    repo = LinkedAccountRepo(database)
    await repo.commit(cleanup_user, 12345)

    first = await repo.lookup(cleanup_user)
    second = await repo.lookup(cleanup_user)

    assert first == second


async def test_unlink(database, cleanup_user):
    repo = LinkedAccountRepo(database)
    await repo.commit(cleanup_user, 12345)

    assert await repo.unlink(cleanup_user) is True
    assert await repo.lookup(cleanup_user) is None
    assert await repo.unlink(cleanup_user) is False

    # A fresh link is allowed after an explicit unlink
    result = await repo.commit(cleanup_user, 67890)
    assert result.status == CommitStatus.OK


async def test_community_config_lookup(database):
    repo = CommunityConfigRepo(database)
    community_id = secrets.randbelow(2**62) + 1

    assert await repo.get(community_id) is None

    async with database.conn() as conn:
        await conn.execute(
            "INSERT INTO community_config (community_id, welcome_channel, role_id, locale) VALUES ($1, $2, $3, $4)",
            community_id,
            111,
            222,
            "de",
        )
    try:
        config = await repo.get(community_id)
        assert config.welcome_channel == 111
        assert config.authenticated_role == 222
        assert config.locale == "de"
        assert config.profile_url_template is None
    finally:
        async with database.conn() as conn:
            await conn.execute("DELETE FROM community_config WHERE community_id = $1", community_id)


async def test_community_config_profile_url_template(database):
    repo = CommunityConfigRepo(database)
    community_id = secrets.randbelow(2**62) + 1

    async with database.conn() as conn:
        await conn.execute(
            "INSERT INTO community_config (community_id, profile_url_template) VALUES ($1, $2)",
            community_id,
            "https://de.wikipedia.org/wiki/Benutzer:{name}",
        )
    try:
        config = await repo.get(community_id)
        assert config.profile_url_template == "https://de.wikipedia.org/wiki/Benutzer:{name}"
        assert config.welcome_channel is None
    finally:
        async with database.conn() as conn:
            await conn.execute("DELETE FROM community_config WHERE community_id = $1", community_id)
