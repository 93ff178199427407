"""Tests for AuthRequestRepo against PostgreSQL."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from wikiauth.models.auth_request import AuthRequestState, CompletionStatus
from wikiauth.repos.auth_request_repo import AuthRequestRepo, is_well_formed_token

pytestmark = pytest.mark.asyncio(loop_scope="session")

TTL = timedelta(minutes=10)


async def test_start_issues_pending_request(database, clock, cleanup_user):
    """A fresh start records a Pending request with an unguessable token."""
    repo = AuthRequestRepo(database, TTL, clock=clock)

    request = await repo.start(cleanup_user)

    assert request.chat_user_id == cleanup_user
    assert request.state == AuthRequestState.PENDING
    assert is_well_formed_token(request.token)
    assert request.created_at == clock.now


async def test_start_refreshes_and_reuses_open_token(database, clock, cleanup_user):
    """Starting again inside the TTL keeps the token and resets its expiry."""
    repo = AuthRequestRepo(database, TTL, clock=clock)

    first = await repo.start(cleanup_user)
    clock.advance(minutes=8)
    second = await repo.start(cleanup_user)

    assert second.token == first.token
    assert second.created_at == clock.now

    # Without the refresh this would be past the TTL
    clock.advance(minutes=5)
    looked_up = await repo.lookup(first.token)
    assert looked_up.state == AuthRequestState.PENDING


async def test_start_after_expiry_issues_new_token(database, clock, cleanup_user):
    """A stale pending request is expired and replaced."""
    repo = AuthRequestRepo(database, TTL, clock=clock)

    first = await repo.start(cleanup_user)
    clock.advance(minutes=11)
    second = await repo.start(cleanup_user)

    assert second.token != first.token
    stale = await repo.lookup(first.token)
    assert stale.state == AuthRequestState.EXPIRED
    assert stale.terminal_at == first.created_at + TTL


async def test_concurrent_starts_leave_one_pending(database, clock, cleanup_user):
    """Racing starts for one user converge on a single pending token."""
    repo = AuthRequestRepo(database, TTL, clock=clock)

    results = await asyncio.gather(*(repo.start(cleanup_user) for _ in range(5)))

    assert len({r.token for r in results}) == 1
    async with database.conn() as conn:
        pending = await conn.fetchval(
            "SELECT count(*) FROM auth_requests WHERE chat_user_id = $1 AND state = 'pending'",
            cleanup_user,
        )
    assert pending == 1


async def test_lookup_not_found(database, clock):
    repo = AuthRequestRepo(database, TTL, clock=clock)

    assert await repo.lookup("x" * 43) is None


async def test_lookup_applies_lazy_expiry(database, clock, cleanup_user):
    """Past the TTL a stored Pending row reads as Expired."""
    repo = AuthRequestRepo(database, TTL, clock=clock)
    request = await repo.start(cleanup_user)

    clock.advance(minutes=10, seconds=1)
    looked_up = await repo.lookup(request.token)

    assert looked_up.state == AuthRequestState.EXPIRED
    async with database.conn() as conn:
        stored = await conn.fetchval("SELECT state FROM auth_requests WHERE token = $1", request.token)
    assert stored == "pending"


async def test_lookup_expired_after_completion(database, clock, cleanup_user):
    """Past the TTL lookup reports Expired even for a consumed token."""
    repo = AuthRequestRepo(database, TTL, clock=clock)
    request = await repo.start(cleanup_user)
    await repo.complete(request.token, 12345)

    clock.advance(minutes=11)
    looked_up = await repo.lookup(request.token)

    assert looked_up.state == AuthRequestState.EXPIRED
    assert looked_up.wiki_account_id == 12345


async def test_complete_consumed_token_after_ttl(database, clock, cleanup_user):
    """A consumed token stays consumed, whatever the clock says."""
    repo = AuthRequestRepo(database, TTL, clock=clock)
    request = await repo.start(cleanup_user)
    await repo.complete(request.token, 12345)

    clock.advance(minutes=11)
    completion = await repo.complete(request.token, 12345)

    assert completion.status == CompletionStatus.ALREADY_COMPLETED


async def test_complete_ok_records_account(database, clock, cleanup_user):
    repo = AuthRequestRepo(database, TTL, clock=clock)
    request = await repo.start(cleanup_user)

    clock.advance(minutes=5)
    completion = await repo.complete(request.token, 12345)

    assert completion.status == CompletionStatus.OK
    assert completion.request.state == AuthRequestState.COMPLETED
    assert completion.request.wiki_account_id == 12345
    assert completion.request.terminal_at == clock.now


async def test_complete_twice_is_already_completed(database, clock, cleanup_user):
    repo = AuthRequestRepo(database, TTL, clock=clock)
    request = await repo.start(cleanup_user)

    first = await repo.complete(request.token, 12345)
    second = await repo.complete(request.token, 99999)

    assert first.status == CompletionStatus.OK
    assert second.status == CompletionStatus.ALREADY_COMPLETED
    assert second.request.wiki_account_id == 12345


async def test_complete_concurrently_single_winner(database, clock, cleanup_user):
    """Only one of many concurrent completions consumes the token."""
    repo = AuthRequestRepo(database, TTL, clock=clock)
    request = await repo.start(cleanup_user)

    results = await asyncio.gather(*(repo.complete(request.token, 12345) for _ in range(8)))
    statuses = [r.status for r in results]

    assert statuses.count(CompletionStatus.OK) == 1
    assert statuses.count(CompletionStatus.ALREADY_COMPLETED) == 7


async def test_complete_expired(database, clock, cleanup_user):
    repo = AuthRequestRepo(database, TTL, clock=clock)
    request = await repo.start(cleanup_user)

    clock.advance(minutes=11)
    completion = await repo.complete(request.token, 12345)

    assert completion.status == CompletionStatus.EXPIRED
    async with database.conn() as conn:
        row = await conn.fetchrow("SELECT state, wiki_account_id FROM auth_requests WHERE token = $1", request.token)
    assert row["state"] == "expired"
    assert row["wiki_account_id"] is None


async def test_lookup_and_complete_agree_at_exact_ttl(database, clock, cleanup_user):
    """At exactly the TTL a request is still live for both lookup and complete."""
    repo = AuthRequestRepo(database, TTL, clock=clock)
    request = await repo.start(cleanup_user)

    clock.advance(seconds=TTL.total_seconds())

    assert (await repo.lookup(request.token)).state == AuthRequestState.PENDING
    completion = await repo.complete(request.token, 12345)
    assert completion.status == CompletionStatus.OK


async def test_start_refreshes_at_exact_ttl(database, clock, cleanup_user):
    repo = AuthRequestRepo(database, TTL, clock=clock)
    first = await repo.start(cleanup_user)

    clock.advance(seconds=TTL.total_seconds())
    second = await repo.start(cleanup_user)

    assert second.token == first.token
    assert second.created_at == clock.now


async def test_complete_not_found(database, clock):
    repo = AuthRequestRepo(database, TTL, clock=clock)

    completion = await repo.complete("y" * 43, 12345)

    assert completion.status == CompletionStatus.NOT_FOUND
    assert completion.request is None


async def test_cancel_then_complete_reports_expired(database, clock, cleanup_user):
    repo = AuthRequestRepo(database, TTL, clock=clock)
    request = await repo.start(cleanup_user)

    assert await repo.cancel(cleanup_user) is True
    assert await repo.cancel(cleanup_user) is False

    completion = await repo.complete(request.token, 12345)
    assert completion.status == CompletionStatus.EXPIRED
    assert completion.request.state == AuthRequestState.CANCELLED


async def test_prune_respects_retention(database, clock, cleanup_user):
    """Finished rows go only once their terminal time is past the retention window."""
    repo = AuthRequestRepo(database, TTL, clock=clock)
    request = await repo.start(cleanup_user)
    await repo.complete(request.token, 12345)

    clock.advance(hours=1)
    await repo.prune(timedelta(hours=24))
    assert await repo.lookup(request.token) is not None

    clock.advance(hours=24)
    deleted = await repo.prune(timedelta(hours=24))
    assert deleted >= 1
    assert await repo.lookup(request.token) is None


async def test_prune_removes_abandoned_pending(database, clock, cleanup_user):
    repo = AuthRequestRepo(database, TTL, clock=clock)
    request = await repo.start(cleanup_user)

    clock.advance(hours=25)
    await repo.prune(timedelta(hours=24))

    assert await repo.lookup(request.token) is None
