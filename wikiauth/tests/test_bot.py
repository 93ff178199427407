"""Tests for the bot's event dispatch."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from wikiauth.bot import BotHandlers, EventDispatcher
from wikiauth.errors import StorageFailure
from wikiauth.models.events import AuthCommand, MemberJoined, Ready, UnlinkCommand

pytestmark = pytest.mark.asyncio(loop_scope="session")


def _handlers():
    reactor = MagicMock()
    reactor.on_member_joined = AsyncMock(return_value="welcome")
    commands = MagicMock()
    commands.on_auth_command = AsyncMock(return_value="auth_start")
    commands.on_unlink_command = AsyncMock(return_value="unlink_done")
    alerts = MagicMock()
    alerts.send = AsyncMock()
    alerts.report = AsyncMock()
    return BotHandlers(reactor, commands, alerts), reactor, commands, alerts


async def _events(*events):
    for event in events:
        yield event


async def test_each_variant_has_its_handler():
    handlers, reactor, commands, alerts = _handlers()
    joined = MemberJoined(community_id=1, chat_user_id=2)
    auth = AuthCommand(community_id=1, chat_user_id=2)
    unlink = UnlinkCommand(community_id=1, chat_user_id=2, channel_id=3)

    await handlers.handle(Ready())
    await handlers.handle(joined)
    await handlers.handle(auth)
    await handlers.handle(unlink)

    alerts.send.assert_awaited_once_with("Ready")
    reactor.on_member_joined.assert_awaited_once_with(joined)
    commands.on_auth_command.assert_awaited_once_with(auth)
    commands.on_unlink_command.assert_awaited_once_with(unlink)


async def test_failing_event_is_isolated_and_reported():
    """One event's failure neither stops the loop nor touches other events."""
    handlers, reactor, _, alerts = _handlers()
    reactor.on_member_joined.side_effect = [StorageFailure("db down"), "welcome"]
    dispatcher = EventDispatcher(handlers, alerts, concurrency=4)

    await dispatcher.run(
        _events(
            MemberJoined(community_id=1, chat_user_id=2),
            MemberJoined(community_id=1, chat_user_id=3),
        )
    )

    assert reactor.on_member_joined.await_count == 2
    alerts.report.assert_awaited_once()
    assert "member_joined" in alerts.report.call_args.args[0]


async def test_slow_event_does_not_block_others():
    handlers, reactor, _, alerts = _handlers()
    release = asyncio.Event()
    fast_done = asyncio.Event()

    async def on_member_joined(event):
        if event.chat_user_id == 1:
            await release.wait()
        else:
            fast_done.set()

    reactor.on_member_joined.side_effect = on_member_joined
    dispatcher = EventDispatcher(handlers, alerts, concurrency=4)

    await dispatcher.submit(MemberJoined(community_id=1, chat_user_id=1))
    await dispatcher.submit(MemberJoined(community_id=1, chat_user_id=2))
    await asyncio.wait_for(fast_done.wait(), timeout=1)

    release.set()
    await dispatcher.drain()


async def test_concurrency_is_bounded():
    handlers, reactor, _, alerts = _handlers()
    running = 0
    peak = 0

    async def on_member_joined(event):
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1

    reactor.on_member_joined.side_effect = on_member_joined
    dispatcher = EventDispatcher(handlers, alerts, concurrency=2)

    await dispatcher.run(_events(*(MemberJoined(community_id=1, chat_user_id=i) for i in range(6))))

    assert reactor.on_member_joined.await_count == 6
    assert peak == 2
