"""
wikiauth bot process.

Long-lived consumer of chat platform events. A gateway sidecar writes one
JSON event per line to stdin; each event is handled as its own task.
Run with: python -m wikiauth.bot
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import timedelta

from pydantic import ValidationError

from wikiauth.config import Settings
from wikiauth.db import Database
from wikiauth.logging_setup import setup_logging
from wikiauth.models.events import AuthCommand, BotEvent, MemberJoined, Ready, UnlinkCommand, parse_event
from wikiauth.repos.auth_request_repo import AuthRequestRepo
from wikiauth.repos.community_config_repo import CommunityConfigRepo
from wikiauth.repos.linked_account_repo import LinkedAccountRepo
from wikiauth.services.alerts import AlertService
from wikiauth.services.discord_client import DiscordClient
from wikiauth.services.event_reactor import EventReactor
from wikiauth.services.identity_resolver import IdentityResolver
from wikiauth.services.link_commands import LinkCommands
from wikiauth.services.messages import MessageCatalog
from wikiauth.services.wiki_oauth import WikiOAuthClient

logger = logging.getLogger(__name__)


class BotHandlers:
    """One handler per event variant."""

    def __init__(self, reactor: EventReactor, commands: LinkCommands, alerts: AlertService) -> None:
        self._alerts = alerts
        self._routes: dict[type, Callable[..., Awaitable[object]]] = {
            Ready: self.on_ready,
            MemberJoined: reactor.on_member_joined,
            AuthCommand: commands.on_auth_command,
            UnlinkCommand: commands.on_unlink_command,
        }

    async def handle(self, event: BotEvent) -> object:
        return await self._routes[type(event)](event)

    async def on_ready(self, event: Ready) -> None:
        logger.info("Bot is ready")
        await self._alerts.send("Ready")


class EventDispatcher:
    """
    Runs each event as an independent task, at most `concurrency` at a time.

    A failing event is logged and reported to the alert channel; it never
    reaches the loop reading events or any other task.
    """

    def __init__(self, handlers: BotHandlers, alerts: AlertService, concurrency: int = 16) -> None:
        self._handlers = handlers
        self._alerts = alerts
        self._slots = asyncio.Semaphore(concurrency)
        self._tasks: set[asyncio.Task] = set()

    async def submit(self, event: BotEvent) -> asyncio.Task:
        """Start handling an event. Waits for a free slot first."""
        await self._slots.acquire()
        task = asyncio.create_task(self._run(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, event: BotEvent) -> None:
        try:
            await self._handlers.handle(event)
        except Exception as exc:
            logger.exception("Error handling %s event", event.event_kind, extra={"event_kind": event.event_kind})
            await self._alerts.report(f"Error handling {event.event_kind} event", exc)
        finally:
            self._slots.release()

    async def run(self, source: AsyncIterator[BotEvent]) -> None:
        """Consume events until the source ends, then wait for in-flight tasks."""
        async for event in source:
            await self.submit(event)
        await self.drain()

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


async def stdin_events() -> AsyncIterator[BotEvent]:
    """Read newline-delimited JSON events from stdin. Malformed lines are skipped."""
    while True:
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line:
            return
        line = line.strip()
        if not line:
            continue
        try:
            yield parse_event(json.loads(line))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Skipping malformed event: %s", exc)


def build_dispatcher(settings: Settings, database: Database) -> EventDispatcher:
    """Wire the bot's components from one settings snapshot."""
    alerts = AlertService(settings)
    chat = DiscordClient(settings)
    messages = MessageCatalog(default_locale=settings.DEFAULT_LOCALE)
    links = LinkedAccountRepo(database)
    communities = CommunityConfigRepo(database)

    reactor = EventReactor(
        links=links,
        communities=communities,
        resolver=IdentityResolver(settings),
        chat=chat,
        messages=messages,
    )
    commands = LinkCommands(
        registry=AuthRequestRepo(database, ttl=timedelta(minutes=settings.AUTH_REQUEST_TTL_MINUTES)),
        links=links,
        communities=communities,
        oauth=WikiOAuthClient(settings),
        chat=chat,
        messages=messages,
        default_locale=settings.DEFAULT_LOCALE,
    )
    return EventDispatcher(BotHandlers(reactor, commands, alerts), alerts, concurrency=settings.EVENT_CONCURRENCY)


async def main() -> None:
    settings = Settings.from_env()
    settings.validate_required(bot=True)
    setup_logging(settings.LOG_LEVEL)

    database = Database(settings.DATABASE_URL)
    await database.init_pool()
    try:
        await build_dispatcher(settings, database).run(stdin_events())
    finally:
        await database.close_pool()


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
